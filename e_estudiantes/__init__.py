from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app():
    """App factory entrypoint.

    Runtime services (Firebase, Gemini, Sentry) are created once when
    ``e_estudiantes.runtime`` is imported; the factory wires routes onto it.
    """
    config = load_config()
    configure_logging(config.log_level)

    from .runtime import app

    init_extensions(app)
    return app
