from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.enums import EventOutcome, PunchType, VerificationMode


@dataclass(frozen=True)
class DeviceIdentity:
    """How a push payload names its sender; any field may be missing."""

    device_id: Optional[int] = None
    auth_key: Optional[str] = None
    serial_no: Optional[str] = None
    device_name: Optional[str] = None
    ip_address: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.device_id or self.auth_key or self.serial_no or self.device_name or self.ip_address)


@dataclass(frozen=True)
class ParsedDeviceEvent:
    """Typed view of one device log entry. The raw payload travels alongside, untouched."""

    event_time: datetime
    employee_code: Optional[str]
    employee_name: Optional[str]
    verification_mode: Optional[VerificationMode] = None
    verification_token: Optional[str] = None
    declared_punch_type: Optional[PunchType] = None
    raw: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RawAttendanceEvent:
    """Thực thể miền (domain): Nhật ký sự kiện chấm công từ thiết bị (chỉ ghi thêm).

    person_id = None nghĩa là chưa xác định được người (quarantine).
    """

    event_id: Optional[int]
    person_id: Optional[int]
    device_id: Optional[int]
    event_time: datetime
    punch_type: Optional[PunchType]
    verification_mode: Optional[VerificationMode]
    employee_code: Optional[str]
    employee_name: Optional[str]
    outcome: EventOutcome
    reason: Optional[str]
    raw_payload: Mapping[str, Any]
    received_at: datetime
