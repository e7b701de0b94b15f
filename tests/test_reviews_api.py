from e_estudiantes import runtime as app_module

from conftest import FakeDocumentRef, auth_as


def _seed(db):
    db.seed("notes", "n1", {"title": "Física", "is_public": True, "uploaded_by": "owner", "rating": 4.0, "rating_count": 1})
    db.seed("notes", "secret", {"title": "Privada", "is_public": False, "uploaded_by": "owner"})
    db.seed("users", "u1", {"uid": "u1", "display_name": "Ana", "role": "user"})


def test_create_review_updates_running_average(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")

    response = client.post("/api/notes/n1/reviews", json={"rating": 5, "comment": "  Muy útil  "})

    assert response.status_code == 201
    body = response.get_json()
    assert body["rating"] == 4.5
    assert body["rating_count"] == 2
    assert body["review"]["comment"] == "Muy útil"
    assert body["review"]["user_display_name"] == "Ana"
    note = fake_db.doc("notes", "n1")
    assert note["rating"] == 4.5
    assert note["rating_count"] == 2
    assert fake_db.doc("users", "u1")["stats"]["total_ratings"] == 1


def test_second_review_from_same_user_is_rejected(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")

    first = client.post("/api/notes/n1/reviews", json={"rating": 3})
    second = client.post("/api/notes/n1/reviews", json={"rating": 1})

    assert first.status_code == 201
    assert second.status_code == 409
    assert fake_db.doc("notes", "n1")["rating_count"] == 2


def test_failed_rating_update_leaves_no_review_behind(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")
    original_update = FakeDocumentRef.update
    failures = []

    def _update_failing_once(ref, updates):
        if ref._collection_name == "notes" and not failures:
            failures.append(ref.id)
            raise RuntimeError("deadline exceeded")
        return original_update(ref, updates)

    monkeypatch.setattr(FakeDocumentRef, "update", _update_failing_once)

    failed = client.post("/api/notes/n1/reviews", json={"rating": 2})

    assert failed.status_code == 500
    assert failures == ["n1"]
    assert fake_db.doc("reviews", "u1__n1") is None
    assert fake_db.doc("notes", "n1")["rating_count"] == 1

    retried = client.post("/api/notes/n1/reviews", json={"rating": 2})

    assert retried.status_code == 201
    assert retried.get_json()["rating_count"] == 2
    assert fake_db.doc("notes", "n1")["rating"] == 3.0
    assert fake_db.doc("reviews", "u1__n1")["rating"] == 2


def test_review_validation(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")

    assert client.post("/api/notes/n1/reviews", json={"rating": 0}).status_code == 400
    assert client.post("/api/notes/n1/reviews", json={"rating": 4.5}).status_code == 400
    assert client.post("/api/notes/n1/reviews", json={"rating": "five"}).status_code == 400
    assert client.post("/api/notes/n1/reviews", json={"rating": 4, "comment": "x" * 1001}).status_code == 400
    assert client.post("/api/notes/missing/reviews", json={"rating": 4}).status_code == 404
    assert client.post("/api/notes/secret/reviews", json={"rating": 4}).status_code == 403


def test_list_reviews_newest_first_with_user_flag(client, monkeypatch, fake_db):
    _seed(fake_db)
    fake_db.seed("reviews", "a__n1", {"note_id": "n1", "user_id": "a", "rating": 4, "created_at": 10})
    fake_db.seed("reviews", "u1__n1", {"note_id": "n1", "user_id": "u1", "rating": 5, "created_at": 20})
    auth_as(monkeypatch, uid="u1")

    body = client.get("/api/notes/n1/reviews").get_json()

    assert [review["id"] for review in body["reviews"]] == ["u1__n1", "a__n1"]
    assert body["user_has_reviewed"] is True
    assert body["rating_count"] == 1


def test_mark_review_helpful(client, monkeypatch, fake_db):
    fake_db.seed("reviews", "r1", {"note_id": "n1", "is_helpful": 2})
    auth_as(monkeypatch, uid="u1")

    assert client.post("/api/reviews/r1/helpful").status_code == 200
    assert client.post("/api/reviews/none/helpful").status_code == 404
    assert fake_db.doc("reviews", "r1")["is_helpful"] == 3


def test_report_note_marks_it_reported(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")

    response = client.post("/api/reports", json={"item_type": "note", "item_id": "n1", "reason": "made-up"})

    assert response.status_code == 201
    report = fake_db.doc("reports", response.get_json()["report_id"])
    assert report["reason"] == "other"
    assert report["status"] == "pending"
    assert report["reported_by"] == "u1"
    note = fake_db.doc("notes", "n1")
    assert note["report_count"] == 1
    assert note["is_reported"] is True


def test_report_validation_and_missing_target(client, monkeypatch, fake_db):
    auth_as(monkeypatch, uid="u1")

    assert client.post("/api/reports", json={"item_type": "planet", "item_id": "x"}).status_code == 400
    assert client.post("/api/reports", json={"item_type": "review", "item_id": "ghost"}).status_code == 404


def test_report_rate_limit(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")
    monkeypatch.setattr(app_module, "check_rate_limit", lambda **_kwargs: (False, 120))

    response = client.post("/api/reports", json={"item_type": "note", "item_id": "n1"})

    assert response.status_code == 429
    assert response.get_json()["retry_after"] == 120
    logs = list(fake_db.docs("rate_limit_logs").values())
    assert logs[0]["limit_name"] == "report"


def test_reports_admin_requires_moderator(client, monkeypatch, fake_db):
    _seed(fake_db)
    auth_as(monkeypatch, uid="u1")

    assert client.get("/api/admin/reports").status_code == 403


def test_moderator_lists_and_resolves_reports(client, monkeypatch, fake_db):
    fake_db.seed("users", "mod", {"uid": "mod", "role": "moderator"})
    fake_db.seed("reports", "r1", {"item_type": "note", "item_id": "n1", "status": "pending", "created_at": 1})
    fake_db.seed("reports", "r2", {"item_type": "user", "item_id": "u2", "status": "dismissed", "created_at": 2})
    auth_as(monkeypatch, uid="mod")

    listed = client.get("/api/admin/reports?status=pending").get_json()
    assert [report["id"] for report in listed["reports"]] == ["r1"]
    assert listed["counts"] == {"pending": 1, "reviewed": 0, "resolved": 0, "dismissed": 1}
    assert client.get("/api/admin/reports?status=bogus").status_code == 400

    response = client.patch("/api/admin/reports/r1", json={"status": "resolved"})
    assert response.status_code == 200
    stored = fake_db.doc("reports", "r1")
    assert stored["status"] == "resolved"
    assert stored["resolved_by"] == "mod"
    assert stored["resolved_at"] is not None

    assert client.patch("/api/admin/reports/r1", json={"status": "pending"}).status_code == 400
    assert client.patch("/api/admin/reports/missing", json={"status": "reviewed"}).status_code == 404
