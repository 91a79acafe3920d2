from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import isoformat_or_none, utc_now
from ..common.validators import optional_int
from ..common.web import admin_required, current_role, json_api, json_error
from ..core.constants import DEFAULT_UNRESOLVED_LIMIT
from ..core.enums import EventOutcome
from ..core.exceptions import ValidationError
from ..container import Container
from ..events.model import RawAttendanceEvent
from .model import BiometricDevice


def device_to_dict(device: BiometricDevice) -> dict:
    return {
        "id": device.device_id,
        "name": device.name,
        "delivery_model": device.delivery_model.value,
        "vendor": device.vendor.value,
        "ip_address": device.ip_address,
        "port": device.port,
        "api_url": device.api_url,
        "serial_no": device.serial_no,
        "has_auth_key": bool(device.auth_key),
        "status": device.status.value,
        "last_sync_at": isoformat_or_none(device.last_sync_at),
        "consecutive_failures": device.consecutive_failures,
    }


def event_to_dict(event: RawAttendanceEvent) -> dict:
    return {
        "id": event.event_id,
        "person_id": event.person_id,
        "device_id": event.device_id,
        "event_time": event.event_time.isoformat(),
        "punch_type": event.punch_type.value if event.punch_type else None,
        "verification_mode": event.verification_mode.value if event.verification_mode else None,
        "employee_code": event.employee_code,
        "employee_name": event.employee_name,
        "outcome": event.outcome.value,
        "reason": event.reason,
        "received_at": event.received_at.isoformat(),
    }


_PUSH_STATUS = {EventOutcome.MALFORMED: 400, EventOutcome.FAILED: 500}


def register(app: Flask, container: Container) -> None:
    registry = container.device_registry
    orchestrator = container.sync_orchestrator

    def body() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @app.route("/api/biometric/webhook", methods=["POST"], endpoint="api_biometric_webhook")
    @json_api
    def api_biometric_webhook():
        payload = request.get_json(silent=True)
        if payload is None and request.form:
            payload = request.form.to_dict()
        if payload is None:
            return json_error("Empty payload", 400)

        event = orchestrator.handle_push(payload, now=utc_now())
        status = _PUSH_STATUS.get(event.outcome, 200)
        return (
            jsonify(
                {
                    "success": event.outcome == EventOutcome.APPLIED,
                    "outcome": event.outcome.value,
                    "message": event.reason or "Attendance recorded",
                    "data": event_to_dict(event),
                }
            ),
            status,
        )

    @app.route("/api/biometric/devices", methods=["GET"], endpoint="api_devices_list")
    @admin_required
    @json_api
    def api_devices_list():
        return jsonify({"success": True, "data": [device_to_dict(d) for d in registry.list()]})

    @app.route("/api/biometric/devices", methods=["POST"], endpoint="api_devices_create")
    @admin_required
    @json_api
    def api_devices_create():
        device = registry.register(body())
        return jsonify({"success": True, "data": device_to_dict(device)}), 201

    @app.route("/api/biometric/devices/<int:device_id>", methods=["PUT"], endpoint="api_devices_update")
    @admin_required
    @json_api
    def api_devices_update(device_id: int):
        device = registry.update(device_id, body())
        return jsonify({"success": True, "data": device_to_dict(device)})

    @app.route("/api/biometric/devices/<int:device_id>", methods=["DELETE"], endpoint="api_devices_delete")
    @admin_required
    @json_api
    def api_devices_delete(device_id: int):
        registry.delete(device_id, current_role=current_role())
        return jsonify({"success": True, "message": "Device deleted"})

    @app.route(
        "/api/biometric/devices/<int:device_id>/test-connection",
        methods=["POST"],
        endpoint="api_devices_test_connection",
    )
    @admin_required
    @json_api
    def api_devices_test_connection(device_id: int):
        device, ok, message = registry.test_connection(device_id)
        return jsonify({"success": ok, "message": message, "data": device_to_dict(device)})

    @app.route("/api/biometric/devices/<int:device_id>/sync-now", methods=["POST"], endpoint="api_devices_sync_now")
    @admin_required
    @json_api
    def api_devices_sync_now(device_id: int):
        result = orchestrator.sync_device(device_id, now=utc_now())
        return jsonify({"success": result.success, "message": result.error or "Sync completed", "data": result.to_dict()})

    @app.route("/api/biometric/events/unresolved", methods=["GET"], endpoint="api_events_unresolved")
    @admin_required
    @json_api
    def api_events_unresolved():
        limit = optional_int(request.args.get("limit"), "limit") or DEFAULT_UNRESOLVED_LIMIT
        if limit < 1:
            raise ValidationError("limit must be positive")
        events = orchestrator.list_unresolved(limit=min(limit, DEFAULT_UNRESOLVED_LIMIT))
        return jsonify({"success": True, "data": [event_to_dict(e) for e in events]})
