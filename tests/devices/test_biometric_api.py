from academy_attendance.common.datetime_utils import utc_now
from academy_attendance.core.enums import Role


def push(client, **extra):
    payload = {"emp_code": "EMP001", "datetime": utc_now().strftime("%Y-%m-%d %H:%M:%S"), "device_name": "Gate"}
    payload.update(extra)
    return client.post("/api/biometric/webhook", json=payload)


def test_webhook_applies_event(client):
    resp = push(client)
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["outcome"] == "applied"
    assert body["data"]["punch_type"] == "in"


def test_webhook_malformed_is_400_but_logged(client, events_repo):
    resp = client.post("/api/biometric/webhook", json={"emp_code": "EMP001"})
    assert resp.status_code == 400
    assert resp.get_json()["outcome"] == "malformed"
    assert len(events_repo.events) == 1


def test_webhook_conflict_is_still_200(client):
    push(client, inout_mode="IN")
    resp = push(client, inout_mode="IN")
    assert resp.status_code == 200
    assert resp.get_json()["outcome"] == "rejected"


def test_webhook_rejects_wrong_device_key(client, login):
    login(5, Role.ADMIN)
    client.post("/api/biometric/devices", json={"name": "Locked", "serial_no": "SN-L", "auth_key": "abc"})

    resp = push(client, device_serial_no="SN-L", auth_key="nope")
    assert resp.status_code == 401


def test_device_crud(client, login):
    assert client.get("/api/biometric/devices").status_code == 401
    login(1, Role.EMPLOYEE)
    assert client.get("/api/biometric/devices").status_code == 403

    login(5, Role.ADMIN)
    created = client.post(
        "/api/biometric/devices",
        json={"name": "Library", "delivery_model": "pull", "ip_address": "10.0.0.7", "port": 80, "auth_key": "s"},
    )
    assert created.status_code == 201
    device = created.get_json()["data"]
    assert device["has_auth_key"] is True
    assert "auth_key" not in device

    updated = client.put(f"/api/biometric/devices/{device['id']}", json={"name": "Library east"})
    assert updated.get_json()["data"]["name"] == "Library east"
    assert client.put("/api/biometric/devices/999", json={"name": "x"}).status_code == 404
    assert client.post("/api/biometric/devices", json={"name": ""}).status_code == 400

    assert client.delete(f"/api/biometric/devices/{device['id']}").status_code == 403
    login(5, Role.SUPERADMIN)
    assert client.delete(f"/api/biometric/devices/{device['id']}").status_code == 200
    assert client.get("/api/biometric/devices").get_json()["data"] == []


def test_test_connection_and_sync_now(client, login, device_client):
    login(5, Role.ADMIN)
    device = client.post(
        "/api/biometric/devices", json={"name": "Lab", "delivery_model": "pull", "ip_address": "10.0.0.9"}
    ).get_json()["data"]
    device_client.logs[device["id"]] = [
        {"emp_code": "EMP003", "datetime": utc_now().strftime("%Y-%m-%d %H:%M:%S")},
    ]

    probe = client.post(f"/api/biometric/devices/{device['id']}/test-connection").get_json()
    assert probe["success"] is True

    sync = client.post(f"/api/biometric/devices/{device['id']}/sync-now").get_json()
    assert sync["success"] is True
    assert sync["data"]["applied"] == 1


def test_unresolved_events_listing(client, login):
    push(client, emp_code="UNKNOWN", emp_name="Nobody Known")
    login(5, Role.ADMIN)

    resp = client.get("/api/biometric/events/unresolved")
    events = resp.get_json()["data"]
    assert resp.status_code == 200
    assert len(events) == 1
    assert events[0]["employee_code"] == "UNKNOWN"
