"""Authentication and role helpers."""

from e_estudiantes.repositories import users_repo

ROLE_USER = 'user'
ROLE_MODERATOR = 'moderator'
ROLE_ADMIN = 'admin'
ALLOWED_ROLES = {ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN}


def extract_bearer_token(request):
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_firebase_token(request, auth_module, logger):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    token = extract_bearer_token(request)
    if not token:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def is_admin_user(decoded_token, user_data=None, *, admin_uids, admin_emails):
    if not decoded_token:
        return False
    uid = decoded_token.get('uid', '')
    email = str(decoded_token.get('email', '') or '').lower()
    if uid in admin_uids or email in admin_emails:
        return True
    return (user_data or {}).get('role') == ROLE_ADMIN


def is_moderator_user(decoded_token, user_data=None, *, admin_uids, admin_emails):
    if is_admin_user(decoded_token, user_data, admin_uids=admin_uids, admin_emails=admin_emails):
        return True
    return (user_data or {}).get('role') == ROLE_MODERATOR


def default_user_stats():
    return {
        'total_uploads': 0,
        'total_downloads': 0,
        'total_ratings': 0,
        'study_streak': 0,
    }


def build_default_user_data(uid, email, display_name='', photo_url='', now_ts=0):
    return {
        'uid': uid,
        'email': str(email or '').lower(),
        'display_name': str(display_name or '').strip()[:120],
        'photo_url': str(photo_url or '').strip()[:500],
        'created_at': now_ts,
        'last_login_at': now_ts,
        'role': ROLE_USER,
        'is_verified': False,
        'stats': default_user_stats(),
    }


def build_public_user_payload(user_data):
    stats = default_user_stats()
    stats.update({k: v for k, v in (user_data.get('stats') or {}).items() if k in stats})
    return {
        'uid': user_data.get('uid', ''),
        'email': user_data.get('email', ''),
        'display_name': user_data.get('display_name', ''),
        'photo_url': user_data.get('photo_url', ''),
        'role': user_data.get('role') or ROLE_USER,
        'is_verified': bool(user_data.get('is_verified', False)),
        'created_at': user_data.get('created_at', 0),
        'last_login_at': user_data.get('last_login_at', 0),
        'stats': stats,
    }


def get_or_create_user(uid, email, display_name='', photo_url='', *, db, admin_emails, time_module):
    """Load the user document, creating it on first sight and refreshing ``last_login_at``.

    Emails listed in ``admin_emails`` that carry no role yet are promoted to admin.
    """
    now_ts = time_module.time()
    snapshot = users_repo.get_doc(db, uid)
    if not snapshot.exists:
        user_data = build_default_user_data(uid, email, display_name, photo_url, now_ts)
        if user_data['email'] and user_data['email'] in admin_emails:
            user_data['role'] = ROLE_ADMIN
            user_data['is_verified'] = True
        users_repo.set_doc(db, uid, user_data)
        return user_data

    user_data = snapshot.to_dict() or {}
    updates = {'last_login_at': now_ts}
    safe_email = str(email or '').lower()
    if safe_email and not user_data.get('email'):
        updates['email'] = safe_email
    if not user_data.get('role') and (user_data.get('email') or safe_email) in admin_emails:
        updates['role'] = ROLE_ADMIN
        updates['is_verified'] = True
    users_repo.set_doc(db, uid, updates, merge=True)
    user_data.update(updates)
    return user_data


def set_user_role(uid, role, *, db):
    if role not in ALLOWED_ROLES:
        raise ValueError(f'Unknown role: {role}')
    users_repo.set_doc(db, uid, {'role': role, 'is_verified': role != ROLE_USER}, merge=True)
