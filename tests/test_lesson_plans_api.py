from fastapi.testclient import TestClient

from lessons.main import app

client = TestClient(app)


def _lesson_ids(auth, n):
    ids = []
    for chapter in range(1, n + 1):
        r = client.post('/lessons', json={"course": "IFR", "chapter": chapter}, headers=auth("ivan"))
        assert r.status_code == 201
        ids.append(r.json()["id"])
    return ids


def _activity_id(auth, title):
    r = client.post('/activities', json={"title": title, "activity_type": "flight", "duration": 45}, headers=auth("ivan"))
    assert r.status_code == 201
    return r.json()["id"]


def _plan(auth, **fields):
    body = {"title": "Holding patterns", "summary": "Entries and timing", **fields}
    r = client.post('/lessonplans', json=body, headers=auth("alice"))
    assert r.status_code == 201, r.text
    return r.json()


def test_create_lesson_plan_has_no_links(auth):
    plan = _plan(auth, lesson_ids=[1, 2], presentable=True)
    assert plan["presentable"] is True
    assert plan["lesson_ids"] == []
    assert plan["activity_ids"] == []


def test_update_reconciles_lesson_links(auth):
    l1, l2, l3, l4 = _lesson_ids(auth, 4)
    plan = _plan(auth)
    body = {**plan, "lesson_ids": [l2, l3, l4]}
    r = client.put('/lessonplans', json=body, headers=auth("ivan"))
    assert r.status_code == 200
    assert sorted(r.json()["lesson_ids"]) == [l2, l3, l4]

    body["lesson_ids"] = [l1, l2, l3]
    body["summary"] = "Entries, timing and wind correction"
    r = client.put('/lessonplans', json=body, headers=auth("ivan"))
    assert r.status_code == 200
    data = r.json()
    assert sorted(data["lesson_ids"]) == [l1, l2, l3]
    assert data["summary"] == "Entries, timing and wind correction"

    fetched = client.get(f"/lessonplans/{plan['id']}", headers=auth("ivan")).json()
    assert sorted(fetched["lesson_ids"]) == [l1, l2, l3]


def test_update_links_activities_and_delete_activity_evicts_plan(auth, caches):
    a1 = _activity_id(auth, "Steep turns")
    a2 = _activity_id(auth, "Chandelles")
    plan = _plan(auth)
    r = client.put('/lessonplans', json={**plan, "activity_ids": [a1, a2]}, headers=auth("ivan"))
    assert r.json()["activity_ids"] == [a1, a2]
    assert caches["lessonplans"].get(plan["id"]) is not None

    assert client.delete(f"/activities/{a1}", headers=auth("ivan")).status_code == 204
    assert caches["lessonplans"].get(plan["id"]) is None
    fetched = client.get(f"/lessonplans/{plan['id']}", headers=auth("ivan")).json()
    assert fetched["activity_ids"] == [a2]


def test_delete_lesson_plan(auth, caches):
    (lesson_id,) = _lesson_ids(auth, 1)
    plan = _plan(auth)
    client.put('/lessonplans', json={**plan, "lesson_ids": [lesson_id]}, headers=auth("ivan"))

    r = client.delete(f"/lessonplans/{plan['id']}", headers=auth("ivan"))
    assert r.status_code == 204
    assert caches["lessonplans"].get(plan["id"]) is None
    assert client.get(f"/lessonplans/{plan['id']}", headers=auth("ivan")).status_code == 404
    # the lesson itself survives
    assert client.get(f"/lessons/{lesson_id}", headers=auth("ivan")).status_code == 200


def test_list_lesson_plans_includes_links(auth):
    (lesson_id,) = _lesson_ids(auth, 1)
    plan = _plan(auth, title="Night operations")
    client.put('/lessonplans', json={**plan, "lesson_ids": [lesson_id]}, headers=auth("ivan"))

    r = client.get('/lessonplans', headers=auth("alice"))
    assert r.status_code == 200
    listed = {p["id"]: p for p in r.json()}
    assert listed[plan["id"]]["lesson_ids"] == [lesson_id]


def test_lesson_plans_are_staff_only(auth):
    plan = _plan(auth)
    assert client.get(f"/lessonplans/{plan['id']}", headers=auth("sam")).status_code == 403
    assert client.get('/lessonplans', headers=auth("sam")).status_code == 403
    assert client.put('/lessonplans', json=plan, headers=auth("sam")).status_code == 403
    assert client.delete(f"/lessonplans/{plan['id']}", headers=auth("sam")).status_code == 403


def test_lesson_plan_payload_validation(auth):
    r = client.post('/lessonplans', headers=auth("ivan"))
    assert r.status_code == 400
    assert r.json()["detail"] == "No lesson plan information was provided"
    r = client.post('/lessonplans', json={"title": "", "summary": "x"}, headers=auth("ivan"))
    assert r.status_code == 400
    r = client.put('/lessonplans', json={"title": "t", "summary": "s"}, headers=auth("ivan"))
    assert r.status_code == 400
