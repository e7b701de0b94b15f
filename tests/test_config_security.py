import pytest

from e_estudiantes.config import load_config, safe_int_env


def test_load_config_requires_secret_key_in_non_dev(monkeypatch):
    monkeypatch.setenv("RENDER", "true")
    monkeypatch.delenv("FLASK_ENV", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("FLASK_SECRET_KEY", raising=False)

    with pytest.raises(RuntimeError):
        load_config()


def test_load_config_allows_missing_secret_in_dev(monkeypatch):
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.delenv("FLASK_SECRET_KEY", raising=False)

    cfg = load_config()
    assert cfg.flask_secret_key == ""


def test_admin_lists_are_parsed_from_csv(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "test")
    monkeypatch.setenv("ADMIN_EMAILS", " Admin@Example.com, ,otra@example.com")
    monkeypatch.setenv("ADMIN_UIDS", "uid-1,uid-2")

    cfg = load_config()

    assert cfg.admin_emails == frozenset({"admin@example.com", "otra@example.com"})
    assert cfg.admin_uids == frozenset({"uid-1", "uid-2"})


def test_safe_int_env_clamps_and_ignores_garbage(monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_MB", "9999")
    assert safe_int_env("MAX_UPLOAD_MB", 25, minimum=1, maximum=200) == 200

    monkeypatch.setenv("MAX_UPLOAD_MB", "lots")
    assert safe_int_env("MAX_UPLOAD_MB", 25, minimum=1, maximum=200) == 25
