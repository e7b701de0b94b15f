"""Business logic handlers for user profile and admin user APIs."""


def get_current_user(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    try:
        user_data = app_ctx.get_or_create_user(
            uid,
            decoded_token.get('email', ''),
            decoded_token.get('name', ''),
            decoded_token.get('picture', ''),
        )
        payload = app_ctx.auth_service.build_public_user_payload(user_data)
        payload['is_admin'] = app_ctx.is_admin_user(decoded_token, user_data)
        payload['is_moderator'] = app_ctx.is_moderator_user(decoded_token, user_data)
        return app_ctx.jsonify(payload)
    except Exception as e:
        app_ctx.logger.error(f"Error loading user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load user profile'}), 500


def update_current_user(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.database_unavailable_response()
    uid = decoded_token['uid']
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400

    updates = {}
    if 'display_name' in payload:
        display_name = str(payload.get('display_name') or '').strip()
        if not display_name or len(display_name) > 120:
            return app_ctx.jsonify({'error': 'display_name must be 1-120 characters'}), 400
        updates['display_name'] = display_name
    if 'photo_url' in payload:
        photo_url = str(payload.get('photo_url') or '').strip()
        if photo_url and not photo_url.startswith('https://'):
            return app_ctx.jsonify({'error': 'photo_url must be an https URL'}), 400
        updates['photo_url'] = photo_url[:500]
    if not updates:
        return app_ctx.jsonify({'error': 'Nothing to update'}), 400

    try:
        app_ctx.get_or_create_user(uid, decoded_token.get('email', ''))
        app_ctx.users_repo.set_doc(app_ctx.db, uid, updates, merge=True)
        user_data = app_ctx.users_repo.get_doc(app_ctx.db, uid).to_dict() or {}
        return app_ctx.jsonify(app_ctx.auth_service.build_public_user_payload(user_data))
    except Exception as e:
        app_ctx.logger.error(f"Error updating user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not update user profile'}), 500


def _require_admin(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if not app_ctx.is_admin_user(decoded_token, app_ctx.get_user_data(decoded_token['uid'])):
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    if app_ctx.db is None:
        return None, app_ctx.database_unavailable_response()
    return decoded_token, None


def list_users(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    role_filter = str(request.args.get('role', '') or '').strip().lower()
    if role_filter and role_filter not in app_ctx.auth_service.ALLOWED_ROLES:
        return app_ctx.jsonify({'error': 'Invalid role filter'}), 400
    search = str(request.args.get('q', '') or '').strip().lower()[:120]
    try:
        users = []
        for doc in app_ctx.users_repo.list_users(app_ctx.db, app_ctx.ADMIN_LIST_LIMIT):
            data = doc.to_dict() or {}
            data.setdefault('uid', doc.id)
            role = data.get('role') or app_ctx.auth_service.ROLE_USER
            if role_filter and role != role_filter:
                continue
            haystack = f"{data.get('email', '')} {data.get('display_name', '')}".lower()
            if search and search not in haystack:
                continue
            users.append(app_ctx.auth_service.build_public_user_payload(data))
        users.sort(key=lambda user: user.get('created_at') or 0, reverse=True)
        counts = {role: 0 for role in sorted(app_ctx.auth_service.ALLOWED_ROLES)}
        for user in users:
            counts[user['role']] = counts.get(user['role'], 0) + 1
        return app_ctx.jsonify({'users': users, 'counts': counts})
    except Exception as e:
        app_ctx.logger.error(f"Error listing users: {e}")
        return app_ctx.jsonify({'error': 'Could not list users'}), 500


def lookup_user(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    email = str(request.args.get('email', '') or '').strip().lower()
    if not email or '@' not in email:
        return app_ctx.jsonify({'error': 'A valid email is required'}), 400
    try:
        docs = app_ctx.users_repo.find_by_email(app_ctx.db, email)
        if not docs:
            return app_ctx.jsonify({'error': 'User not found'}), 404
        data = docs[0].to_dict() or {}
        data.setdefault('uid', docs[0].id)
        return app_ctx.jsonify(app_ctx.auth_service.build_public_user_payload(data))
    except Exception as e:
        app_ctx.logger.error(f"Error looking up user by email: {e}")
        return app_ctx.jsonify({'error': 'Could not look up user'}), 500


def promote_user(app_ctx, request):
    decoded_token, error_response = _require_admin(app_ctx, request)
    if error_response:
        return error_response
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    role = str(payload.get('role', app_ctx.auth_service.ROLE_ADMIN) or '').strip().lower()
    if role not in {app_ctx.auth_service.ROLE_MODERATOR, app_ctx.auth_service.ROLE_ADMIN}:
        return app_ctx.jsonify({'error': 'Role must be moderator or admin'}), 400
    target_uid = str(payload.get('uid', '') or '').strip()
    email = str(payload.get('email', '') or '').strip().lower()
    if not target_uid and not email:
        return app_ctx.jsonify({'error': 'uid or email is required'}), 400

    try:
        if not target_uid:
            docs = app_ctx.users_repo.find_by_email(app_ctx.db, email)
            if not docs:
                return app_ctx.jsonify({'error': 'User not found'}), 404
            target_uid = docs[0].id
        elif not app_ctx.users_repo.get_doc(app_ctx.db, target_uid).exists:
            return app_ctx.jsonify({'error': 'User not found'}), 404
        app_ctx.set_user_role(target_uid, role)
        app_ctx.log_event('info', 'user_role_changed', uid=target_uid, role=role, changed_by=decoded_token['uid'])
        return app_ctx.jsonify({'ok': True, 'uid': target_uid, 'role': role})
    except Exception as e:
        app_ctx.logger.error(f"Error promoting user {target_uid or email}: {e}")
        return app_ctx.jsonify({'error': 'Could not update user role'}), 500
