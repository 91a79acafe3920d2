from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_device_timestamp
from ..common.validators import optional_text
from ..core.constants import MAX_EMPLOYEE_CODE_LENGTH, MAX_EMPLOYEE_NAME_LENGTH, MAX_VERIFICATION_TOKEN_LENGTH
from ..core.enums import PunchType, VerificationMode
from ..core.exceptions import MalformedPayloadError
from .model import DeviceIdentity, ParsedDeviceEvent

# Vendors disagree on field names; first non-empty alias wins.
CODE_KEYS = ("emp_code", "employeeCode", "employee_code", "employee_id", "employeeId", "emp_id")
NAME_KEYS = ("emp_name", "employeeName", "name")
TIME_KEYS = ("datetime", "punchTime", "punch_time", "timestamp")
VERIFY_MODE_KEYS = ("verify_mode", "verifyMode", "verification_mode")
TOKEN_KEYS = ("finger_id", "thumb_data", "fingerprintId", "fingerprint_id")
DIRECTION_KEYS = ("inout_mode", "inOutMode", "in_out_mode")

DEVICE_ID_KEYS = ("deviceId", "device_id")
AUTH_KEY_KEYS = ("deviceAuthKey", "auth_key")
SERIAL_KEYS = ("device_serial_no", "serialNumber", "serial_number")
DEVICE_NAME_KEYS = ("device_name", "deviceName")
IP_KEYS = ("ip_address", "ipAddress")


def _first(payload: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _verification_mode(value: Any) -> Optional[VerificationMode]:
    if value is None:
        return None
    text = str(value).strip().lower()
    try:
        return VerificationMode(text)
    except ValueError:
        raise MalformedPayloadError(f"Unknown verification mode: {value!r}")


def _direction(value: Any) -> Optional[PunchType]:
    if value is None:
        return None
    text = str(value).strip().lower()
    try:
        return PunchType(text)
    except ValueError:
        raise MalformedPayloadError(f"Unknown in/out mode: {value!r}")


def _bounded(value: Optional[str], limit: int, label: str) -> Optional[str]:
    if value is not None and len(value) > limit:
        raise MalformedPayloadError(f"{label} longer than {limit} characters")
    return value


def extract_device_identity(payload: Any) -> DeviceIdentity:
    """Best effort: used before the payload is validated, so it never raises."""

    if not isinstance(payload, Mapping):
        return DeviceIdentity()

    device_id = _first(payload, DEVICE_ID_KEYS)
    try:
        device_id = int(device_id) if device_id is not None else None
    except (TypeError, ValueError):
        device_id = None

    return DeviceIdentity(
        device_id=device_id,
        auth_key=optional_text(_first(payload, AUTH_KEY_KEYS)),
        serial_no=optional_text(_first(payload, SERIAL_KEYS)),
        device_name=optional_text(_first(payload, DEVICE_NAME_KEYS)),
        ip_address=optional_text(_first(payload, IP_KEYS)),
    )


def parse_device_event(payload: Any) -> ParsedDeviceEvent:
    """Validate a device log entry (push body or one pulled log).

    Raises MalformedPayloadError when the timestamp is missing or unparseable,
    when neither an employee code nor a name is present, or when an enumerated
    field carries an unknown value.
    """

    if not isinstance(payload, Mapping):
        raise MalformedPayloadError("Payload must be a JSON object")

    raw_time = _first(payload, TIME_KEYS)
    if raw_time is None:
        raise MalformedPayloadError("Missing punch timestamp")
    event_time = parse_device_timestamp(raw_time)
    if event_time is None:
        raise MalformedPayloadError(f"Unparseable punch timestamp: {raw_time!r}")

    code = _bounded(optional_text(_first(payload, CODE_KEYS)), MAX_EMPLOYEE_CODE_LENGTH, "Employee code")
    name = _bounded(optional_text(_first(payload, NAME_KEYS)), MAX_EMPLOYEE_NAME_LENGTH, "Employee name")
    if not code and not name:
        raise MalformedPayloadError("Payload carries neither an employee code nor a name")

    return ParsedDeviceEvent(
        event_time=event_time,
        employee_code=code,
        employee_name=name,
        verification_mode=_verification_mode(_first(payload, VERIFY_MODE_KEYS)),
        verification_token=_bounded(
            optional_text(_first(payload, TOKEN_KEYS)), MAX_VERIFICATION_TOKEN_LENGTH, "Verification token"
        ),
        declared_punch_type=_direction(_first(payload, DIRECTION_KEYS)),
        raw=dict(payload),
    )
