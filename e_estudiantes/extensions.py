def init_extensions(app) -> None:
    """Register API blueprints on the runtime app.

    Safe to call more than once; already registered blueprints are skipped.
    """
    if app is None:
        return
    if not hasattr(app, 'extensions'):
        return
    from .blueprints import ALL_BLUEPRINTS

    for blueprint in ALL_BLUEPRINTS:
        if blueprint.name not in app.blueprints:
            app.register_blueprint(blueprint)
    app.extensions.setdefault('e_estudiantes', {})
    app.extensions['e_estudiantes']['factory_initialized'] = True
