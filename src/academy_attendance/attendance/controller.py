from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, utc_now
from ..common.validators import optional_float, optional_int, optional_text
from ..common.web import admin_required, current_role, current_user_id, employee_required, json_api, login_required
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import ADMIN_ROLES
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .model import EMPTY_CAPTURE, AttendanceRecord, CaptureMetadata, GeoLocation
from .service import record_snapshot


def _request_data() -> Mapping[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _date_arg(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"'{name}' must be a date in YYYY-MM-DD format")


def _location(data: Mapping[str, Any]):
    latitude = optional_float(data.get("latitude"), "latitude")
    longitude = optional_float(data.get("longitude"), "longitude")
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise ValidationError("latitude and longitude must be sent together")
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise ValidationError("Coordinates out of range")
    return GeoLocation(
        latitude=latitude,
        longitude=longitude,
        accuracy=optional_float(data.get("accuracy"), "accuracy"),
        address=optional_text(data.get("address")),
    )


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def punch_with_capture(punch: Callable[..., AttendanceRecord], kind: str, now: datetime) -> AttendanceRecord:
        """Validate the request, store the photo, then punch; the photo is removed if the punch fails."""
        person_id = current_user_id()
        data = _request_data()
        location = _location(data)
        token = optional_text(data.get("fingerprint_id") or data.get("verification_token"))

        photo_ref = container.capture_storage.store(
            person_id=person_id,
            kind=kind,
            now=now,
            upload=request.files.get("photo"),
            data_url=optional_text(data.get("photo") or data.get("image")),
        )
        capture = CaptureMetadata(photo_ref=photo_ref, verification_token=token, location=location)
        try:
            return punch(person_id, now=now, capture=EMPTY_CAPTURE if capture.is_empty else capture)
        except Exception:
            if photo_ref:
                container.capture_storage.discard(photo_ref)
            raise

    @app.route("/api/attendance/punch-in", methods=["POST"], endpoint="api_punch_in")
    @employee_required
    @json_api
    def api_punch_in():
        now = utc_now()
        record = punch_with_capture(service.punch_in, "in", now)
        return jsonify({"success": True, "message": "Punched in", "data": record_snapshot(record, now=now)}), 200

    @app.route("/api/attendance/punch-out", methods=["POST"], endpoint="api_punch_out")
    @employee_required
    @json_api
    def api_punch_out():
        now = utc_now()
        record = punch_with_capture(service.punch_out, "out", now)
        return jsonify({"success": True, "message": "Punched out", "data": record_snapshot(record, now=now)}), 200

    @app.route("/api/attendance/break-in", methods=["POST"], endpoint="api_break_in")
    @employee_required
    @json_api
    def api_break_in():
        now = utc_now()
        reason = optional_text(_request_data().get("reason"))
        record = service.break_in(current_user_id(), now=now, reason=reason)
        return jsonify({"success": True, "message": "Break started", "data": record_snapshot(record, now=now)}), 200

    @app.route("/api/attendance/break-out", methods=["POST"], endpoint="api_break_out")
    @employee_required
    @json_api
    def api_break_out():
        now = utc_now()
        record = service.break_out(current_user_id(), now=now)
        return jsonify({"success": True, "message": "Break ended", "data": record_snapshot(record, now=now)}), 200

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @login_required
    @json_api
    def api_attendance_today():
        now = utc_now()
        status = service.get_today(current_user_id(), now=now)
        return jsonify(
            {
                "success": True,
                "data": {
                    "record": record_snapshot(status.record, now=now) if status.record else None,
                    "state": status.state.value,
                    "can_punch_in": status.can_punch_in,
                    "can_punch_out": status.can_punch_out,
                    "on_break": status.on_break,
                },
            }
        )

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @login_required
    @json_api
    def api_attendance_history():
        now = utc_now()
        person_id = current_user_id()
        requested = optional_int(request.args.get("user_id"), "user_id")
        if requested is not None and requested != person_id:
            if current_role() not in ADMIN_ROLES:
                raise AuthorizationError("Only admins can view other people's attendance")
            person_id = requested

        end = _date_arg("to") or now.date()
        start = _date_arg("from") or end - timedelta(days=DEFAULT_HISTORY_LIMIT - 1)
        records = service.history(person_id, start=start, end=end)
        return jsonify(
            {
                "success": True,
                "data": [record_snapshot(r, now=now) for r in records],
                "from": start.isoformat(),
                "to": end.isoformat(),
            }
        )

    @app.route("/api/attendance/daily", methods=["GET"], endpoint="api_attendance_daily")
    @admin_required
    @json_api
    def api_attendance_daily():
        now = utc_now()
        day = _date_arg("date") or now.date()
        records = service.daily(day)
        return jsonify({"success": True, "date": day.isoformat(), "data": [record_snapshot(r, now=now) for r in records]})
