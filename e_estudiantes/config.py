import os
from dataclasses import dataclass, field
from typing import FrozenSet

from dotenv import load_dotenv

load_dotenv()

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}


def _csv_env(name, lower=False):
    raw = os.getenv(name, '') or ''
    values = [part.strip() for part in raw.split(',') if part.strip()]
    if lower:
        values = [value.lower() for value in values]
    return frozenset(values)


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = str(os.getenv(name, str(default)) or '').strip()
    try:
        value = int(raw)
    except Exception:
        value = int(default)
    return min(max(value, minimum), maximum)


def resolve_runtime_env():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


@dataclass(frozen=True)
class AppConfig:
    """Central config object, read once from the environment."""

    flask_secret_key: str = field(default_factory=lambda: os.getenv('FLASK_SECRET_KEY', ''))
    log_level: str = field(default_factory=lambda: (os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper())
    sentry_environment: str = field(default_factory=lambda: (os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip())
    sentry_release: str = field(default_factory=lambda: (os.getenv('SENTRY_RELEASE', 'e-estudiantes') or 'e-estudiantes').strip())
    gemini_api_key: str = field(default_factory=lambda: (os.getenv('GEMINI_API_KEY', '') or '').strip())
    gemini_model: str = field(default_factory=lambda: (os.getenv('GEMINI_MODEL', 'gemini-2.5-flash-lite') or 'gemini-2.5-flash-lite').strip())
    ai_output_language: str = field(default_factory=lambda: (os.getenv('AI_OUTPUT_LANGUAGE', 'Spanish') or 'Spanish').strip())
    firebase_storage_bucket: str = field(default_factory=lambda: (os.getenv('FIREBASE_STORAGE_BUCKET', '') or '').strip())
    admin_emails: FrozenSet[str] = field(default_factory=lambda: _csv_env('ADMIN_EMAILS', lower=True))
    admin_uids: FrozenSet[str] = field(default_factory=lambda: _csv_env('ADMIN_UIDS'))
    cors_allowed_origins: FrozenSet[str] = field(default_factory=lambda: _csv_env('CORS_ALLOWED_ORIGINS', lower=True))


def load_config() -> AppConfig:
    config = AppConfig()
    is_dev_like = resolve_runtime_env() in DEV_ENV_NAMES
    if not is_dev_like and not config.flask_secret_key.strip():
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config
