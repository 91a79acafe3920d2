import base64

from academy_attendance.core.enums import Role


def test_punch_requires_session(client):
    resp = client.post("/api/attendance/punch-in", json={})
    assert resp.status_code == 401


def test_students_cannot_punch(client, login):
    login(4, Role.STUDENT)
    resp = client.post("/api/attendance/punch-in", json={})
    assert resp.status_code == 403


def test_punch_in_then_duplicate(client, login):
    login(1, Role.EMPLOYEE)

    resp = client.post("/api/attendance/punch-in", json={"latitude": 21.03, "longitude": 105.85, "fingerprint_id": "F1"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["state"] == "PUNCHED_IN"
    assert data["punch_in_capture"]["location"]["latitude"] == 21.03
    assert data["punch_in_capture"]["verification"] == "F1"

    again = client.post("/api/attendance/punch-in", json={})
    assert again.status_code == 400
    assert again.get_json()["code"] == "ALREADY_PUNCHED_IN"


def test_punch_in_with_photo_data_url(client, login, tmp_path):
    login(2, Role.FACULTY)
    photo = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff-fake").decode()

    resp = client.post("/api/attendance/punch-in", json={"photo": photo})

    ref = resp.get_json()["data"]["punch_in_capture"]["photo"]
    assert (tmp_path / "uploads" / ref).exists()


def test_half_a_location_is_rejected(client, login):
    login(1, Role.EMPLOYEE)
    resp = client.post("/api/attendance/punch-in", json={"latitude": 21.03})
    assert resp.status_code == 400


def test_break_out_without_break_is_a_conflict(client, login):
    login(1, Role.EMPLOYEE)
    client.post("/api/attendance/punch-in", json={})
    resp = client.post("/api/attendance/break-out", json={})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "NO_ACTIVE_BREAK"


def test_today_reflects_break(client, login):
    login(1, Role.EMPLOYEE)
    assert client.get("/api/attendance/today").get_json()["data"]["can_punch_in"] is True

    client.post("/api/attendance/punch-in", json={})
    client.post("/api/attendance/break-in", json={"reason": "prayer"})
    data = client.get("/api/attendance/today").get_json()["data"]

    assert data["state"] == "ON_BREAK"
    assert data["on_break"] is True
    assert data["can_punch_out"] is False
    assert data["record"]["breaks"][0]["reason"] == "prayer"


def test_history_of_others_is_admin_only(client, login):
    login(1, Role.EMPLOYEE)
    client.post("/api/attendance/punch-in", json={})
    assert client.get("/api/attendance/history?user_id=2").status_code == 403

    login(5, Role.ADMIN)
    resp = client.get("/api/attendance/history?user_id=1")
    assert resp.status_code == 200
    assert len(resp.get_json()["data"]) == 1


def test_history_rejects_bad_dates(client, login):
    login(1, Role.EMPLOYEE)
    assert client.get("/api/attendance/history?from=03/02/2026").status_code == 400
    assert client.get("/api/attendance/history?from=2026-03-05&to=2026-03-01").status_code == 400


def test_daily_listing_for_admins(client, login):
    login(1, Role.EMPLOYEE)
    client.post("/api/attendance/punch-in", json={})
    assert client.get("/api/attendance/daily").status_code == 403

    login(1, Role.SUPERADMIN)
    resp = client.get("/api/attendance/daily")
    assert resp.status_code == 200
    assert [r["person_id"] for r in resp.get_json()["data"]] == [1]


def _stored_photos(tmp_path):
    root = tmp_path / "uploads"
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


def test_rejected_punch_leaves_no_photo(client, login, tmp_path):
    login(1, Role.EMPLOYEE)
    photo = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff-fake").decode()

    first = client.post("/api/attendance/punch-in", json={"photo": photo})
    second = client.post("/api/attendance/punch-in", json={"photo": photo})

    assert (first.status_code, second.status_code) == (200, 400)
    assert len(_stored_photos(tmp_path)) == 1


def test_punch_out_before_punch_in_leaves_no_photo(client, login, tmp_path):
    login(1, Role.EMPLOYEE)
    photo = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff-fake").decode()

    resp = client.post("/api/attendance/punch-out", json={"photo": photo})

    assert resp.get_json()["code"] == "NOT_PUNCHED_IN_YET"
    assert _stored_photos(tmp_path) == []


def test_bad_location_is_rejected_before_photo_is_stored(client, login, tmp_path):
    login(1, Role.EMPLOYEE)
    photo = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff-fake").decode()

    resp = client.post("/api/attendance/punch-in", json={"photo": photo, "latitude": 200, "longitude": 10})

    assert resp.status_code == 400
    assert _stored_photos(tmp_path) == []
