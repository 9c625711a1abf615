from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from lessons.dependencies import get_identity_client
from lessons.errors import IdentityServiceError
from lessons.main import app

client = TestClient(app)


def _create(auth, **fields):
    body = {"course": "PVT", "chapter": 1, "text": "intro", **fields}
    r = client.post('/lessons', json=body, headers=auth("ivan"))
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_update_lesson(auth, monkeypatch):
    t0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    ticks = iter([t0, t0 + timedelta(seconds=30)])
    monkeypatch.setattr("lessons.repositories.utcnow", lambda: next(ticks))

    created = _create(auth)
    assert created["id"] is not None
    assert created["created_at"] == created["updated_at"]

    body = {**created, "text": "revised"}
    r = client.put('/lessons', json=body, headers=auth("ivan"))
    assert r.status_code == 200
    updated = r.json()
    assert updated["id"] == created["id"]
    assert updated["text"] == "revised"
    assert updated["created_at"] == created["created_at"]
    assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(created["updated_at"])


def test_get_lesson_reads_through_cache(auth, caches):
    created = _create(auth, chapter=2)
    caches["lessons"].clear()

    r = client.get(f"/lessons/{created['id']}", headers=auth("sam"))
    assert r.status_code == 200
    assert r.json()["text"] == "intro"
    cached = caches["lessons"].get(created["id"])
    assert cached is not None

    # a fresh cache entry is served without hitting storage
    caches["lessons"].put(created["id"], cached.model_copy(update={"text": "from cache"}))
    assert client.get(f"/lessons/{created['id']}", headers=auth("sam")).json()["text"] == "from cache"


def test_missing_lesson_is_404(auth):
    r = client.get('/lessons/987654', headers=auth("alice"))
    assert r.status_code == 404
    assert r.json()["detail"] == "No lesson found for ID [987654]"


def test_delete_lesson(auth, caches):
    created = _create(auth, chapter=3)
    r = client.delete(f"/lessons/{created['id']}", headers=auth("alice"))
    assert r.status_code == 204
    assert caches["lessons"].get(created["id"]) is None
    assert client.get(f"/lessons/{created['id']}", headers=auth("alice")).status_code == 404
    assert client.delete(f"/lessons/{created['id']}", headers=auth("alice")).status_code == 404


def test_list_lessons_by_group_open_to_students(auth):
    _create(auth, course="CFI", chapter=2)
    _create(auth, course="CFI", chapter=1)
    r = client.get('/lessons/all/CFI', headers=auth("sam"))
    assert r.status_code == 200
    assert [lesson["chapter"] for lesson in r.json()] == [1, 2]
    assert all(lesson["course"] == "CFI" for lesson in r.json())


def test_student_cannot_write_or_list_all(auth):
    r = client.post('/lessons', json={"course": "PVT", "chapter": 1}, headers=auth("sam"))
    assert r.status_code == 403
    assert client.get('/lessons', headers=auth("sam")).status_code == 403
    assert client.get('/lessons', headers=auth("alice")).status_code == 200


def test_missing_credentials_denied():
    r = client.get('/lessons/1')
    assert r.status_code == 403
    assert r.json()["detail"] == "No authorization provided"


def test_unknown_user_not_found(auth):
    assert client.get('/lessons', headers=auth("nobody")).status_code == 404


def test_bad_token_rejected():
    token = jwt.encode({"sub": "alice"}, "wrong-secret", algorithm="HS256")
    r = client.get('/lessons', headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_expired_token_rejected():
    token = jwt.encode(
        {"sub": "alice", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        "test-secret",
        algorithm="HS256",
    )
    r = client.get('/lessons', headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "token expired"


def test_null_and_malformed_payloads_are_400(auth):
    r = client.post('/lessons', headers=auth("ivan"))
    assert r.status_code == 400
    assert r.json()["detail"] == "No lesson information was provided"
    r = client.post('/lessons', json={"chapter": "one"}, headers=auth("ivan"))
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["errors"]}
    assert "body.course" in fields


def test_update_without_id_is_400_and_unknown_id_404(auth):
    r = client.put('/lessons', json={"course": "PVT", "chapter": 1}, headers=auth("ivan"))
    assert r.status_code == 400
    r = client.put('/lessons', json={"id": 55555, "course": "PVT", "chapter": 1}, headers=auth("ivan"))
    assert r.status_code == 404


def test_identity_service_outage_is_503(auth):
    class Down:
        def resolve_user(self, name):
            raise IdentityServiceError("Identity service unavailable")

    app.dependency_overrides[get_identity_client] = lambda: Down()
    r = client.get('/lessons', headers=auth("alice"))
    assert r.status_code == 503


def test_request_id_header():
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "X-Request-ID" in r.headers
    r = client.get('/health', headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"
