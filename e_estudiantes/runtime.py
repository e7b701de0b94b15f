import json
import logging
import os
import re
import sys
import threading
import time
import uuid

from flask import Flask, Response, g, jsonify, request, send_file
from google import genai
from google.genai import types
from werkzeug.exceptions import RequestEntityTooLarge
try:
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
except Exception:
    sentry_sdk = None
    FlaskIntegration = None
import firebase_admin
from firebase_admin import auth, credentials, firestore, storage

from e_estudiantes.config import AppConfig, safe_int_env
from e_estudiantes.logging_config import log_event as _log_event
from e_estudiantes.repositories import (
    analytics_repo,
    favorites_repo,
    notes_repo,
    reports_repo,
    reviews_repo,
    schemes_repo,
    study_repo,
    users_repo,
)
from e_estudiantes.services import (
    admin_api_service,
    ai_api_service,
    ai_service,
    analytics_api_service,
    analytics_service,
    auth_api_service,
    auth_service,
    export_service,
    monitor_service,
    notes_api_service,
    notes_service,
    planner_service,
    pomodoro_service,
    rate_limit_service,
    review_api_service,
    scheme_api_service,
    scheme_service,
    search_service,
    security_service,
    storage_service,
    study_api_service,
)

CONFIG = AppConfig()

app = Flask(__name__)
app.secret_key = CONFIG.flask_secret_key or os.urandom(32).hex()
logger = logging.getLogger('e_estudiantes')


def log_event(level, event, **fields):
    level_value = getattr(logging, str(level).upper(), logging.INFO) if isinstance(level, str) else level
    _log_event(logger, level_value, event, **fields)


ALLOWED_NOTE_EXTENSIONS = storage_service.ALLOWED_NOTE_EXTENSIONS
MAX_UPLOAD_BYTES = safe_int_env('MAX_UPLOAD_MB', 25, minimum=1, maximum=200) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES + (1 * 1024 * 1024)
DOWNLOAD_URL_TTL_SECONDS = safe_int_env('DOWNLOAD_URL_TTL_SECONDS', 900, minimum=60, maximum=7 * 24 * 3600)

NOTES_LIST_LIMIT = 200
SEARCH_SCAN_LIMIT = safe_int_env('SEARCH_SCAN_LIMIT', 1000, minimum=50, maximum=5000)
REVIEWS_LIST_LIMIT = 200
SESSIONS_LIST_LIMIT = 500
SUBJECTS_LIST_LIMIT = 200
SCHEMES_LIST_LIMIT = 200
STATS_SCAN_LIMIT = 1000
ADMIN_LIST_LIMIT = 500
CLEANUP_BATCH_LIMIT = 500
MAX_EXPORT_FLASHCARDS = 200

GEMINI_MODEL = CONFIG.gemini_model
AI_OUTPUT_LANGUAGE = CONFIG.ai_output_language
if CONFIG.gemini_api_key:
    try:
        client = genai.Client(api_key=CONFIG.gemini_api_key)
    except Exception as e:
        client = None
        logger.info(f"Gemini client disabled: {e}")
else:
    client = None
    logger.info("GEMINI_API_KEY not set; AI features will use local fallbacks.")

# --- Firebase Setup ---
db = None
bucket = None
firebase_init_error = ''
FIREBASE_PROJECT_ID = (os.getenv('FIREBASE_PROJECT_ID', '') or '').strip()
try:
    if os.path.exists('firebase-credentials.json'):
        cred = credentials.Certificate('firebase-credentials.json')
    else:
        firebase_creds_raw = (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip()
        if not firebase_creds_raw:
            raise ValueError("FIREBASE_CREDENTIALS is not set and firebase-credentials.json was not found.")
        cred = credentials.Certificate(json.loads(firebase_creds_raw))
    FIREBASE_PROJECT_ID = FIREBASE_PROJECT_ID or str(getattr(cred, 'project_id', '') or '')
    if not firebase_admin._apps:
        options = {'storageBucket': CONFIG.firebase_storage_bucket} if CONFIG.firebase_storage_bucket else None
        firebase_admin.initialize_app(cred, options)
    db = firestore.client()
    if CONFIG.firebase_storage_bucket:
        bucket = storage.bucket()
except Exception as e:
    firebase_init_error = str(e)
    logger.info(f"Firebase initialization skipped: {firebase_init_error}")

ADMIN_EMAILS = set(CONFIG.admin_emails)
ADMIN_UIDS = set(CONFIG.admin_uids)
CORS_ALLOWED_ORIGINS = set(CONFIG.cors_allowed_origins) or {
    'http://localhost:3000',
    'http://127.0.0.1:3000',
}

# --- Rate limiting ---
RATE_LIMIT_FIRESTORE_ENABLED = str(os.getenv('RATE_LIMIT_FIRESTORE_ENABLED', '1')).strip().lower() in {'1', 'true', 'yes', 'on'}
RATE_LIMIT_COUNTER_COLLECTION = 'rate_limit_counters'
RATE_LIMIT_EVENTS = {}
RATE_LIMIT_LOCK = threading.Lock()
AI_RATE_LIMIT_MAX_REQUESTS = safe_int_env('AI_RATE_LIMIT_MAX_REQUESTS', 20, minimum=1, maximum=1000)
AI_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('AI_RATE_LIMIT_WINDOW_SECONDS', 3600, minimum=10, maximum=86400)
UPLOAD_RATE_LIMIT_MAX_REQUESTS = safe_int_env('UPLOAD_RATE_LIMIT_MAX_REQUESTS', 30, minimum=1, maximum=1000)
UPLOAD_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('UPLOAD_RATE_LIMIT_WINDOW_SECONDS', 3600, minimum=10, maximum=86400)
REPORT_RATE_LIMIT_MAX_REQUESTS = safe_int_env('REPORT_RATE_LIMIT_MAX_REQUESTS', 10, minimum=1, maximum=1000)
REPORT_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('REPORT_RATE_LIMIT_WINDOW_SECONDS', 3600, minimum=10, maximum=86400)
ANALYTICS_RATE_LIMIT_MAX_REQUESTS = safe_int_env('ANALYTICS_RATE_LIMIT_MAX_REQUESTS', 120, minimum=1, maximum=10000)
ANALYTICS_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('ANALYTICS_RATE_LIMIT_WINDOW_SECONDS', 60, minimum=1, maximum=3600)

# --- Analytics ---
ANALYTICS_NAME_RE = re.compile(r'^[a-z0-9_]{2,64}$')
ANALYTICS_SESSION_ID_RE = re.compile(r'^[A-Za-z0-9_-]{6,80}$')
ANALYTICS_ALLOWED_EVENTS = {
    'page_view',
    'interaction',
    'conversion',
    'time_on_page',
    'session_end',
    'page_hidden',
    'page_visible',
    'download',
    'note_uploaded',
    'note_favorited',
    'review_submitted',
    'search_performed',
    'pomodoro_completed',
    'study_session_completed',
    'ai_summary_requested',
    'ai_flashcards_requested',
    'ai_plan_requested',
    'scheme_saved',
}

# --- Sentry ---
SENTRY_BACKEND_DSN = (os.getenv('SENTRY_DSN_BACKEND', '') or '').strip()
SENTRY_ENVIRONMENT = CONFIG.sentry_environment
SENTRY_RELEASE = CONFIG.sentry_release


def safe_float_env(name, default=0.0):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except Exception:
        return default
    return min(max(value, 0.0), 1.0)


SENTRY_TRACES_SAMPLE_RATE = safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0)

if SENTRY_BACKEND_DSN and sentry_sdk and FlaskIntegration:
    sentry_sdk.init(
        dsn=SENTRY_BACKEND_DSN,
        integrations=[FlaskIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
        environment=SENTRY_ENVIRONMENT,
        release=SENTRY_RELEASE,
    )


def apply_cors_headers(response):
    origin = str(request.headers.get('Origin', '') or '').strip()
    if not origin:
        return response
    if not request.path.startswith('/api/'):
        return response
    if origin.lower() not in CORS_ALLOWED_ORIGINS:
        return response
    response.headers['Access-Control-Allow-Origin'] = origin
    response.headers['Vary'] = 'Origin'
    response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, X-Request-ID'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
    return response


@app.before_request
def handle_api_options_preflight():
    if request.method == 'OPTIONS' and request.path.startswith('/api/'):
        return apply_cors_headers(app.make_default_options_response())


@app.before_request
def attach_request_context():
    request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
    g.request_id = request_id
    if not sentry_sdk:
        return
    try:
        scope = sentry_sdk.get_current_scope()
        scope.set_tag('request.id', request_id)
        scope.set_tag('route.path', request.path)
        scope.set_tag('route.method', request.method)
        scope.set_tag('route.endpoint', request.endpoint or '')
    except Exception:
        pass


@app.after_request
def attach_response_context(response):
    request_id = str(getattr(g, 'request_id', '') or '').strip()
    if request_id:
        response.headers['X-Request-ID'] = request_id
    if sentry_sdk:
        try:
            sentry_sdk.get_current_scope().set_tag('route.status_code', str(response.status_code))
        except Exception:
            pass
    return apply_cors_headers(response)


@app.errorhandler(RequestEntityTooLarge)
def handle_request_entity_too_large(_error):
    limit_text = storage_service.format_file_size(MAX_UPLOAD_BYTES)
    return jsonify({'error': f'Upload too large. Maximum file size is {limit_text}.'}), 413


# =============================================
# HELPER FUNCTIONS
# =============================================

def database_unavailable_response():
    return jsonify({'error': 'Database is not configured'}), 503


def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth_module=auth, logger=logger)


def get_user_data(uid):
    if db is None or not uid:
        return {}
    try:
        snapshot = users_repo.get_doc(db, uid)
        return (snapshot.to_dict() or {}) if snapshot.exists else {}
    except Exception as e:
        logger.warning(f"Could not load user {uid}: {e}")
        return {}


def get_or_create_user(uid, email, display_name='', photo_url=''):
    return auth_service.get_or_create_user(
        uid,
        email,
        display_name,
        photo_url,
        db=db,
        admin_emails=ADMIN_EMAILS,
        time_module=time,
    )


def set_user_role(uid, role):
    return auth_service.set_user_role(uid, role, db=db)


def is_admin_user(decoded_token, user_data=None):
    return auth_service.is_admin_user(decoded_token, user_data, admin_uids=ADMIN_UIDS, admin_emails=ADMIN_EMAILS)


def is_moderator_user(decoded_token, user_data=None):
    return auth_service.is_moderator_user(decoded_token, user_data, admin_uids=ADMIN_UIDS, admin_emails=ADMIN_EMAILS)


def check_rate_limit(key, limit, window_seconds):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        firestore_enabled=RATE_LIMIT_FIRESTORE_ENABLED,
        db=db,
        firestore_module=firestore,
        counter_collection=RATE_LIMIT_COUNTER_COLLECTION,
        in_memory_events=RATE_LIMIT_EVENTS,
        in_memory_lock=RATE_LIMIT_LOCK,
        time_module=time,
    )


def build_rate_limited_response(message, retry_after):
    retry_after = int(max(1, retry_after))
    response = jsonify({'error': message, 'retry_after': retry_after, 'retry_after_seconds': retry_after})
    response.status_code = 429
    response.headers['Retry-After'] = str(retry_after)
    return response


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    raw = str(value or '').strip().lower()
    if not raw:
        return fallback
    safe = re.sub(r'[^a-z0-9_.:@-]+', '_', raw)
    return safe[:max_len] if safe else fallback


def log_rate_limit_hit(limit_name, retry_after=0):
    return rate_limit_service.log_rate_limit_hit(limit_name, retry_after, db=db, logger=logger, time_module=time)


def sanitize_analytics_event_name(raw_name):
    return analytics_service.sanitize_event_name(
        raw_name,
        name_re=ANALYTICS_NAME_RE,
        allowed_events=ANALYTICS_ALLOWED_EVENTS,
    )


def sanitize_analytics_session_id(raw_session_id):
    return analytics_service.sanitize_session_id(raw_session_id, session_id_re=ANALYTICS_SESSION_ID_RE)


def sanitize_analytics_properties(raw_props):
    return analytics_service.sanitize_properties(raw_props, name_re=ANALYTICS_NAME_RE)


def log_analytics_event(event_name, source='frontend', uid='', session_id='', properties=None, created_at=None):
    return analytics_service.log_analytics_event(
        event_name,
        source=source,
        uid=uid,
        session_id=session_id,
        properties=properties,
        created_at=created_at,
        db=db,
        name_re=ANALYTICS_NAME_RE,
        session_id_re=ANALYTICS_SESSION_ID_RE,
        allowed_events=ANALYTICS_ALLOWED_EVENTS,
        logger=logger,
        time_module=time,
    )


def _ctx():
    return sys.modules[__name__]


# =============================================
# ROUTE IMPLEMENTATIONS (wired by blueprints)
# =============================================

def get_current_user_impl():
    return auth_api_service.get_current_user(_ctx(), request)


def update_current_user_impl():
    return auth_api_service.update_current_user(_ctx(), request)


def list_users_impl():
    return auth_api_service.list_users(_ctx(), request)


def lookup_user_impl():
    return auth_api_service.lookup_user(_ctx(), request)


def promote_user_impl():
    return auth_api_service.promote_user(_ctx(), request)


def create_note_impl():
    return notes_api_service.create_note(_ctx(), request)


def list_my_notes_impl():
    return notes_api_service.list_my_notes(_ctx(), request)


def list_public_notes_impl():
    return notes_api_service.list_public_notes(_ctx(), request)


def search_notes_impl():
    return notes_api_service.search_notes(_ctx(), request)


def get_note_impl(note_id):
    return notes_api_service.get_note(_ctx(), request, note_id)


def update_note_impl(note_id):
    return notes_api_service.update_note(_ctx(), request, note_id)


def delete_note_impl(note_id):
    return notes_api_service.delete_note(_ctx(), request, note_id)


def download_note_impl(note_id):
    return notes_api_service.download_note(_ctx(), request, note_id)


def toggle_favorite_impl(note_id):
    return notes_api_service.toggle_favorite(_ctx(), request, note_id)


def list_favorites_impl():
    return notes_api_service.list_favorites(_ctx(), request)


def list_reviews_impl(note_id):
    return review_api_service.list_reviews(_ctx(), request, note_id)


def create_review_impl(note_id):
    return review_api_service.create_review(_ctx(), request, note_id)


def mark_review_helpful_impl(review_id):
    return review_api_service.mark_review_helpful(_ctx(), request, review_id)


def create_report_impl():
    return review_api_service.create_report(_ctx(), request)


def list_reports_impl():
    return review_api_service.list_reports(_ctx(), request)


def update_report_impl(report_id):
    return review_api_service.update_report(_ctx(), request, report_id)


def list_study_sessions_impl():
    return study_api_service.list_study_sessions(_ctx(), request)


def create_study_session_impl():
    return study_api_service.create_study_session(_ctx(), request)


def update_study_session_impl(session_id):
    return study_api_service.update_study_session(_ctx(), request, session_id)


def complete_study_session_impl(session_id):
    return study_api_service.complete_study_session(_ctx(), request, session_id)


def delete_study_session_impl(session_id):
    return study_api_service.delete_study_session(_ctx(), request, session_id)


def start_pomodoro_impl():
    return study_api_service.start_pomodoro(_ctx(), request)


def get_active_pomodoro_impl():
    return study_api_service.get_active_pomodoro(_ctx(), request)


def advance_pomodoro_impl(pomodoro_id):
    return study_api_service.advance_pomodoro(_ctx(), request, pomodoro_id)


def pause_pomodoro_impl(pomodoro_id):
    return study_api_service.pause_pomodoro(_ctx(), request, pomodoro_id)


def resume_pomodoro_impl(pomodoro_id):
    return study_api_service.resume_pomodoro(_ctx(), request, pomodoro_id)


def stop_pomodoro_impl(pomodoro_id):
    return study_api_service.stop_pomodoro(_ctx(), request, pomodoro_id)


def list_subjects_impl():
    return study_api_service.list_subjects(_ctx(), request)


def create_subject_impl():
    return study_api_service.create_subject(_ctx(), request)


def delete_subject_impl(subject_id):
    return study_api_service.delete_subject(_ctx(), request, subject_id)


def pin_subject_file_impl(subject_id):
    return study_api_service.pin_subject_file(_ctx(), request, subject_id)


def unpin_subject_file_impl(subject_id):
    return study_api_service.unpin_subject_file(_ctx(), request, subject_id)


def list_scheme_templates_impl():
    return scheme_api_service.list_templates(_ctx(), request)


def list_my_schemes_impl():
    return scheme_api_service.list_my_schemes(_ctx(), request)


def list_public_schemes_impl():
    return scheme_api_service.list_public_schemes(_ctx(), request)


def get_scheme_impl(scheme_id):
    return scheme_api_service.get_scheme(_ctx(), request, scheme_id)


def create_scheme_impl():
    return scheme_api_service.create_scheme(_ctx(), request)


def update_scheme_impl(scheme_id):
    return scheme_api_service.update_scheme(_ctx(), request, scheme_id)


def delete_scheme_impl(scheme_id):
    return scheme_api_service.delete_scheme(_ctx(), request, scheme_id)


def ai_summary_impl():
    return ai_api_service.generate_summary(_ctx(), request)


def ai_flashcards_impl():
    return ai_api_service.generate_flashcards(_ctx(), request)


def ai_plan_impl():
    return ai_api_service.generate_study_plan(_ctx(), request)


def ai_chat_impl():
    return ai_api_service.chat(_ctx(), request)


def export_summary_docx_impl():
    return ai_api_service.export_summary_docx(_ctx(), request)


def export_flashcards_csv_impl():
    return ai_api_service.export_flashcards_csv(_ctx(), request)


def ingest_analytics_event_impl():
    return analytics_api_service.ingest_analytics_event(_ctx(), request)


def get_my_stats_impl():
    return analytics_api_service.get_my_stats(_ctx(), request)


def get_admin_overview_impl():
    return admin_api_service.get_admin_overview(_ctx(), request)


def get_collection_stats_impl():
    return admin_api_service.get_collection_stats(_ctx(), request)


def run_security_checks_impl():
    return admin_api_service.run_security_checks(_ctx(), request)


def get_recommended_rules_impl():
    return admin_api_service.get_recommended_rules(_ctx(), request)


def check_indexes_impl():
    return admin_api_service.check_indexes(_ctx(), request)


# =============================================
# HEALTH CHECK
# =============================================
@app.route('/healthz')
def healthz():
    return jsonify({
        'status': 'ok',
        'firebase_ready': db is not None,
        'storage_ready': bucket is not None,
        'ai_ready': client is not None,
    }), 200
