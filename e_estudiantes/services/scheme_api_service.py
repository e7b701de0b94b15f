"""Business logic handlers for scheme (diagram) APIs."""


def _public_scheme(scheme_id, data):
    payload = dict(data)
    payload['id'] = scheme_id
    return payload


def list_templates(app_ctx, request):
    category = str(request.args.get('category', '') or '').strip().lower()
    if category and category not in app_ctx.scheme_service.TEMPLATE_CATEGORIES:
        return app_ctx.jsonify({'error': 'Unknown template category'}), 400
    if category:
        templates = app_ctx.scheme_service.get_templates_by_category(category)
    else:
        templates = app_ctx.scheme_service.list_templates()
    return app_ctx.jsonify({'templates': templates})


def list_my_schemes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        schemes = [
            _public_scheme(doc.id, doc.to_dict() or {})
            for doc in app_ctx.schemes_repo.list_by_uid(app_ctx.db, uid, app_ctx.SCHEMES_LIST_LIMIT)
        ]
        schemes.sort(key=lambda scheme: scheme.get('updated_at') or 0, reverse=True)
        return app_ctx.jsonify({'schemes': schemes})
    except Exception as e:
        app_ctx.logger.error(f"Error listing schemes for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load schemes'}), 500


def list_public_schemes(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    try:
        schemes = [
            _public_scheme(doc.id, doc.to_dict() or {})
            for doc in app_ctx.schemes_repo.list_public(app_ctx.db, app_ctx.SCHEMES_LIST_LIMIT)
        ]
        schemes.sort(key=lambda scheme: scheme.get('updated_at') or 0, reverse=True)
        return app_ctx.jsonify({'schemes': schemes})
    except Exception as e:
        app_ctx.logger.error(f"Error listing public schemes: {e}")
        return app_ctx.jsonify({'error': 'Could not load schemes'}), 500


def get_scheme(app_ctx, request, scheme_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        snapshot = app_ctx.schemes_repo.get_doc(app_ctx.db, scheme_id)
        if not snapshot.exists:
            return app_ctx.jsonify({'error': 'Scheme not found'}), 404
        data = snapshot.to_dict() or {}
        if data.get('user_id') != uid and not data.get('is_public'):
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        return app_ctx.jsonify(_public_scheme(scheme_id, data))
    except Exception as e:
        app_ctx.logger.error(f"Error loading scheme {scheme_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load scheme'}), 500


def _clean_scheme_payload(app_ctx, payload, partial):
    scheme_service = app_ctx.scheme_service
    fields = {}
    if not partial or 'name' in payload:
        name = str(payload.get('name', '') or '').strip()[:120]
        if not name:
            raise ValueError('Scheme name is required')
        fields['name'] = name
    if not partial or 'description' in payload:
        fields['description'] = str(payload.get('description', '') or '').strip()[:1000]
    if not partial or 'tags' in payload:
        fields['tags'] = scheme_service.sanitize_tags(payload.get('tags'))
    if not partial or 'is_public' in payload:
        fields['is_public'] = app_ctx.notes_service.parse_bool(payload.get('is_public'), default=False)
    if 'nodes' in payload:
        if not isinstance(payload.get('nodes'), list):
            raise ValueError('nodes must be a list')
        if len(payload['nodes']) > scheme_service.MAX_NODES:
            raise ValueError(f'A scheme can have at most {scheme_service.MAX_NODES} nodes')
        fields['nodes'] = scheme_service.sanitize_nodes(payload['nodes'])
    if 'edges' in payload:
        if not isinstance(payload.get('edges'), list):
            raise ValueError('edges must be a list')
        if len(payload['edges']) > scheme_service.MAX_EDGES:
            raise ValueError(f'A scheme can have at most {scheme_service.MAX_EDGES} edges')
    return fields


def create_scheme(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    try:
        fields = _clean_scheme_payload(app_ctx, payload, partial=False)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    template_id = str(payload.get('template_id', '') or '').strip()
    template = None
    if template_id:
        template = app_ctx.scheme_service.get_template_by_id(template_id)
        if template is None:
            return app_ctx.jsonify({'error': 'Unknown template'}), 400
    nodes = fields.pop('nodes', None)
    if nodes is None:
        nodes = template['nodes'] if template else []
    raw_edges = payload.get('edges') if 'edges' in payload else (template['edges'] if template else [])
    edges = app_ctx.scheme_service.sanitize_edges(raw_edges, nodes)

    try:
        now_ts = app_ctx.time.time()
        scheme = dict(
            fields,
            user_id=uid,
            template_id=template_id,
            nodes=nodes,
            edges=edges,
            created_at=now_ts,
            updated_at=now_ts,
        )
        scheme_ref = app_ctx.schemes_repo.create_doc_ref(app_ctx.db)
        scheme_ref.set(scheme)
        return app_ctx.jsonify(_public_scheme(scheme_ref.id, scheme)), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating scheme for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not save scheme'}), 500


def update_scheme(app_ctx, request, scheme_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict) or not payload:
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    try:
        updates = _clean_scheme_payload(app_ctx, payload, partial=True)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    try:
        scheme_ref = app_ctx.schemes_repo.doc_ref(app_ctx.db, scheme_id)
        snapshot = scheme_ref.get()
        if not snapshot.exists:
            return app_ctx.jsonify({'error': 'Scheme not found'}), 404
        existing = snapshot.to_dict() or {}
        if existing.get('user_id') != uid:
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        nodes = updates.get('nodes', existing.get('nodes') or [])
        if 'edges' in payload or 'nodes' in updates:
            raw_edges = payload['edges'] if 'edges' in payload else existing.get('edges') or []
            updates['edges'] = app_ctx.scheme_service.sanitize_edges(raw_edges, nodes)
        updates['updated_at'] = app_ctx.time.time()
        scheme_ref.update(updates)
        existing.update(updates)
        return app_ctx.jsonify(_public_scheme(scheme_id, existing))
    except Exception as e:
        app_ctx.logger.error(f"Error updating scheme {scheme_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not update scheme'}), 500


def delete_scheme(app_ctx, request, scheme_id):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        scheme_ref = app_ctx.schemes_repo.doc_ref(app_ctx.db, scheme_id)
        snapshot = scheme_ref.get()
        if not snapshot.exists:
            return app_ctx.jsonify({'error': 'Scheme not found'}), 404
        if (snapshot.to_dict() or {}).get('user_id') != uid:
            return app_ctx.jsonify({'error': 'Forbidden'}), 403
        scheme_ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting scheme {scheme_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete scheme'}), 500
