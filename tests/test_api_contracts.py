import pytest

from e_estudiantes import runtime as app_module

from conftest import auth_as

LONG_TEXT = (
    "La fotosíntesis convierte la energía lumínica en energía química dentro de los cloroplastos. "
    "Las plantas absorben dióxido de carbono y liberan oxígeno durante el proceso. "
    "La clorofila captura la luz principalmente en las longitudes de onda azul y roja."
)


def _seed_admin(fake_db, uid="admin-1"):
    fake_db.seed("users", uid, {"uid": uid, "email": f"{uid}@example.com", "role": "admin", "created_at": 10})
    return uid


def test_healthz_reports_service_readiness(client, fake_db):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json() == {
        "status": "ok",
        "firebase_ready": True,
        "storage_ready": False,
        "ai_ready": False,
    }


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    generated = client.get("/healthz")

    assert echoed.headers["X-Request-ID"] == "req-123"
    assert len(generated.headers["X-Request-ID"]) == 32


def test_cors_headers_only_for_allowed_origins(client):
    allowed = client.get("/api/schemes/templates", headers={"Origin": "http://localhost:3000"})
    denied = client.get("/api/schemes/templates", headers={"Origin": "https://evil.example"})
    preflight = client.open("/api/notes", method="OPTIONS", headers={"Origin": "http://localhost:3000"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert "Access-Control-Allow-Origin" not in denied.headers
    assert preflight.status_code == 200
    assert "PATCH" in preflight.headers["Access-Control-Allow-Methods"]


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/api/auth/user"),
        ("get", "/api/admin/users"),
        ("get", "/api/schemes"),
        ("post", "/api/ai/summary"),
        ("post", "/api/ai/flashcards/export-csv"),
        ("get", "/api/analytics/me"),
        ("get", "/api/admin/overview"),
        ("get", "/api/subjects"),
    ],
)
def test_protected_routes_require_auth(client, fake_db, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.get_json()["error"] == "Unauthorized"


def test_missing_database_returns_503(client, monkeypatch):
    monkeypatch.setattr(app_module, "db", None)
    auth_as(monkeypatch)

    response = client.get("/api/auth/user")

    assert response.status_code == 503


def test_current_user_is_created_on_first_request(client, monkeypatch, fake_db):
    auth_as(monkeypatch, uid="u1", email="Ana@Example.com", name="Ana")

    response = client.get("/api/auth/user")

    assert response.status_code == 200
    body = response.get_json()
    assert body["uid"] == "u1"
    assert body["email"] == "ana@example.com"
    assert body["role"] == "user"
    assert body["is_admin"] is False
    assert body["stats"]["total_uploads"] == 0
    assert fake_db.doc("users", "u1")["display_name"] == "Ana"


def test_configured_admin_email_is_promoted_on_first_login(client, monkeypatch, fake_db):
    monkeypatch.setattr(app_module, "ADMIN_EMAILS", {"boss@example.com"})
    auth_as(monkeypatch, uid="boss", email="boss@example.com")

    body = client.get("/api/auth/user").get_json()

    assert body["is_admin"] is True
    assert body["is_moderator"] is True
    assert fake_db.doc("users", "boss")["role"] == "admin"


def test_update_current_user_validates_fields(client, monkeypatch, fake_db):
    auth_as(monkeypatch, uid="u1")

    assert client.patch("/api/auth/user", json={"photo_url": "http://insecure"}).status_code == 400
    assert client.patch("/api/auth/user", json={}).status_code == 400
    response = client.patch("/api/auth/user", json={"display_name": " Ana María "})

    assert response.status_code == 200
    assert response.get_json()["display_name"] == "Ana María"


def test_admin_user_management(client, monkeypatch, fake_db):
    admin_uid = _seed_admin(fake_db)
    fake_db.seed("users", "u1", {"uid": "u1", "email": "ana@example.com", "display_name": "Ana", "created_at": 30})
    fake_db.seed("users", "u2", {"uid": "u2", "email": "beto@example.com", "role": "moderator", "created_at": 20})

    auth_as(monkeypatch, uid="u1", email="ana@example.com")
    assert client.get("/api/admin/users").status_code == 403

    auth_as(monkeypatch, uid=admin_uid, email="admin-1@example.com")
    listed = client.get("/api/admin/users").get_json()
    assert [user["uid"] for user in listed["users"]] == ["u1", "u2", "admin-1"]
    assert listed["counts"] == {"admin": 1, "moderator": 1, "user": 1}
    assert [user["uid"] for user in client.get("/api/admin/users?role=moderator").get_json()["users"]] == ["u2"]
    assert [user["uid"] for user in client.get("/api/admin/users?q=ana").get_json()["users"]] == ["u1"]
    assert client.get("/api/admin/users?role=root").status_code == 400

    assert client.get("/api/admin/users/lookup?email=ANA@example.com").get_json()["uid"] == "u1"
    assert client.get("/api/admin/users/lookup?email=nadie@example.com").status_code == 404
    assert client.get("/api/admin/users/lookup?email=nope").status_code == 400

    promoted = client.post("/api/admin/users/promote", json={"email": "ana@example.com", "role": "moderator"})
    assert promoted.get_json() == {"ok": True, "uid": "u1", "role": "moderator"}
    assert fake_db.doc("users", "u1")["role"] == "moderator"
    assert fake_db.doc("users", "u1")["is_verified"] is True
    assert client.post("/api/admin/users/promote", json={"uid": "ghost"}).status_code == 404
    assert client.post("/api/admin/users/promote", json={"uid": "u1", "role": "user"}).status_code == 400


def test_scheme_templates_by_category(client):
    all_templates = client.get("/api/schemes/templates").get_json()["templates"]
    timelines = client.get("/api/schemes/templates?category=timeline").get_json()["templates"]

    assert len(all_templates) >= 4
    assert timelines and all(template["category"] == "timeline" for template in timelines)
    assert client.get("/api/schemes/templates?category=poster").status_code == 400


def test_scheme_crud_and_visibility(client, monkeypatch, fake_db):
    auth_as(monkeypatch, uid="u1")

    created = client.post("/api/schemes", json={"name": "Célula", "template_id": "mindmap-basic", "tags": "bio, celula"})
    assert created.status_code == 201
    scheme = created.get_json()
    assert len(scheme["nodes"]) == 3
    assert [edge["target"] for edge in scheme["edges"]] == ["2", "3"]
    assert scheme["is_public"] is False

    assert client.post("/api/schemes", json={"name": "X", "template_id": "nope"}).status_code == 400
    assert client.post("/api/schemes", json={"template_id": "mindmap-basic"}).status_code == 400
    too_many = [{"id": str(index)} for index in range(501)]
    assert client.post("/api/schemes", json={"name": "X", "nodes": too_many}).status_code == 400

    auth_as(monkeypatch, uid="u2")
    assert client.get(f"/api/schemes/{scheme['id']}").status_code == 403
    assert client.patch(f"/api/schemes/{scheme['id']}", json={"name": "Mío"}).status_code == 403

    auth_as(monkeypatch, uid="u1")
    updated = client.patch(f"/api/schemes/{scheme['id']}", json={"is_public": True, "nodes": [{"id": "1"}]})
    assert updated.status_code == 200
    assert updated.get_json()["edges"] == []
    assert [item["id"] for item in client.get("/api/schemes").get_json()["schemes"]] == [scheme["id"]]

    auth_as(monkeypatch, uid="u2")
    assert client.get(f"/api/schemes/{scheme['id']}").status_code == 200
    assert [item["id"] for item in client.get("/api/schemes/public").get_json()["schemes"]] == [scheme["id"]]

    auth_as(monkeypatch, uid="u1")
    assert client.delete(f"/api/schemes/{scheme['id']}").status_code == 200
    assert client.get(f"/api/schemes/{scheme['id']}").status_code == 404


def test_ai_endpoints_fall_back_without_client(client, monkeypatch):
    auth_as(monkeypatch, uid="u1")

    summary = client.post("/api/ai/summary", json={"content": LONG_TEXT, "subject": "Biología", "title": "Fotosíntesis"})
    flashcards = client.post("/api/ai/flashcards", json={"content": LONG_TEXT, "amount": 2})
    plan = client.post("/api/ai/plan", json={"subjects": ["Matemáticas", "Física"], "available_time": 120})
    chat = client.post("/api/ai/chat", json={"message": "¿Cómo estudio mejor?"})

    assert summary.status_code == 200
    assert summary.get_json()["source"] == "fallback"
    assert "Biología" in summary.get_json()["tags"]
    assert len(flashcards.get_json()["flashcards"]) == 2
    assert [item["time"] for item in plan.get_json()["daily_plan"]] == [60, 60]
    assert chat.get_json()["source"] == "fallback"
    assert chat.get_json()["reply"]


def test_ai_endpoints_validate_input(client, monkeypatch):
    auth_as(monkeypatch, uid="u1")

    assert client.post("/api/ai/summary", json={"content": "  "}).status_code == 400
    assert client.post("/api/ai/summary", json={"content": LONG_TEXT, "type": "poem"}).status_code == 400
    assert client.post("/api/ai/flashcards", json={"content": LONG_TEXT, "amount": 0}).status_code == 400
    assert client.post("/api/ai/plan", json={"subjects": [], "available_time": 60}).status_code == 400
    assert client.post("/api/ai/plan", json={"subjects": ["A"], "available_time": 5000}).status_code == 400
    assert client.post("/api/ai/chat", json={}).status_code == 400


def test_ai_rate_limit_returns_retry_after(client, monkeypatch):
    auth_as(monkeypatch, uid="u1")
    monkeypatch.setattr(app_module, "check_rate_limit", lambda **_kwargs: (False, 30))

    response = client.post("/api/ai/summary", json={"content": LONG_TEXT})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert response.get_json()["retry_after"] == 30


def test_summary_docx_export(client, monkeypatch):
    auth_as(monkeypatch, uid="u1")

    response = client.post("/api/ai/summary/export-docx", json={
        "title": "Mi resumen",
        "summary": {"summary": "Texto **clave**", "key_points": ["Uno", "Dos"], "difficulty": "advanced"},
    })

    assert response.status_code == 200
    assert response.mimetype.endswith("wordprocessingml.document")
    assert "Mi_resumen.docx" in response.headers["Content-Disposition"]
    assert response.data[:2] == b"PK"
    assert client.post("/api/ai/summary/export-docx", json={"summary": {}}).status_code == 400


def test_flashcards_csv_export(client, monkeypatch):
    auth_as(monkeypatch, uid="u1")

    response = client.post("/api/ai/flashcards/export-csv", json={
        "title": "Biología",
        "flashcards": [{"question": "¿Qué es ATP?", "answer": "Energía, celular"}, {"question": "", "answer": "x"}],
    })

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    lines = response.get_data(as_text=True).splitlines()
    assert lines == ["question,answer", '¿Qué es ATP?,"Energía, celular"']
    assert client.post("/api/ai/flashcards/export-csv", json={"flashcards": []}).status_code == 400


def test_analytics_ingest_stores_sanitized_event(client, fake_db):
    response = client.post("/api/analytics/event", json={
        "event": "Page_View",
        "session_id": "session-abc",
        "page": "/notes",
        "properties": {"Scroll Depth": 0.75, "bad key!": "x", "nested": {"a": 1}},
    })

    assert response.status_code == 200
    assert response.get_json() == {"ok": True, "stored": True}
    [event] = fake_db.docs("analytics_events").values()
    assert event["event"] == "page_view"
    assert event["session_id"] == "session-abc"
    assert event["properties"] == {"scroll_depth": 0.75, "page": "/notes"}


def test_analytics_ingest_rejects_unknown_events_and_tolerates_missing_db(client, monkeypatch):
    monkeypatch.setattr(app_module, "db", None)

    assert client.post("/api/analytics/event", json={"event": "drop_tables"}).status_code == 400
    response = client.post("/api/analytics/event", json={"event": "page_view"})

    assert response.status_code == 200
    assert response.get_json()["stored"] is False


def test_my_stats_aggregate_notes_sessions_and_downloads(client, monkeypatch, fake_db):
    fake_db.seed("notes", "n1", {"uploaded_by": "u1", "subject": "Física", "rating": 4.0, "rating_count": 2})
    fake_db.seed("notes", "n2", {"uploaded_by": "u1", "subject": "Física", "rating": 5.0, "rating_count": 1})
    fake_db.seed("notes", "n3", {"uploaded_by": "u1", "subject": "Química", "rating": 0, "rating_count": 0})
    fake_db.seed("study_sessions", "s1", {"user_id": "u1", "status": "completed", "start_time": 0, "end_time": 5400})
    fake_db.seed("study_sessions", "s2", {"user_id": "u1", "status": "pending", "start_time": 0, "end_time": 600})
    fake_db.seed("analytics_events", "e1", {"uid": "u1", "event": "download"})
    fake_db.seed("users", "u1", {"uid": "u1", "stats": {"study_streak": 3}})
    auth_as(monkeypatch, uid="u1")

    stats = client.get("/api/analytics/me").get_json()

    assert stats["notes_uploaded"] == 3
    assert stats["notes_downloaded"] == 1
    assert stats["average_rating"] == 4.5
    assert stats["total_study_time"] == 90
    assert stats["total_sessions"] == 1
    assert stats["favorite_subject"] == "Física"
    assert stats["study_streak"] == 3


def test_admin_monitoring_endpoints(client, monkeypatch, fake_db):
    admin_uid = _seed_admin(fake_db)
    fake_db.seed("notes", "n1", {"uploaded_by": "u1", "is_public": True, "subject": "Física", "downloads": 4})
    auth_as(monkeypatch, uid="u1")
    assert client.get("/api/admin/overview").status_code == 403
    assert client.get("/api/admin/security/rules").status_code == 403

    auth_as(monkeypatch, uid=admin_uid)
    overview = client.get("/api/admin/overview").get_json()
    assert overview["stats"]["total_notes"] == 1
    assert overview["stats"]["total_downloads"] == 4
    assert overview["stats"]["top_subjects"] == [{"subject": "Física", "count": 1}]
    assert overview["unavailable_collections"] == []

    collections = client.get("/api/admin/collections").get_json()["collections"]
    users_entry = next(entry for entry in collections if entry["collection"] == "users")
    assert users_entry["total_documents"] == 1
    assert users_entry["size_label"].endswith("Bytes")

    security = client.get("/api/admin/security").get_json()
    assert security["passed"] == security["total"] == 5
    assert set(fake_db.docs("notes")) == {"n1"}
    assert fake_db.docs("study_sessions") == {}

    assert "match /notes" in client.get("/api/admin/security/rules").get_json()["rules"]
    indexes = client.get("/api/admin/indexes").get_json()
    assert indexes["missing"] == 0
    assert {entry["status"] for entry in indexes["indexes"]} == {"ok"}
