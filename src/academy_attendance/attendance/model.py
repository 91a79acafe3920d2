from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import PunchState


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class CaptureMetadata:
    """What was captured at punch time. Every field is independently optional.

    `photo_ref` is the path returned by the capture storage, never image bytes.
    """

    photo_ref: Optional[str] = None
    verification_token: Optional[str] = None
    location: Optional[GeoLocation] = None

    @property
    def is_empty(self) -> bool:
        return self.photo_ref is None and self.verification_token is None and self.location is None


EMPTY_CAPTURE = CaptureMetadata()


@dataclass(frozen=True)
class BreakInterval:
    start: datetime
    end: Optional[datetime] = None
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công theo ngày của một người."""

    attendance_id: Optional[int]
    person_id: int
    work_date: date
    punch_in_at: Optional[datetime] = None
    punch_out_at: Optional[datetime] = None
    punch_in_capture: CaptureMetadata = EMPTY_CAPTURE
    punch_out_capture: CaptureMetadata = EMPTY_CAPTURE
    breaks: tuple[BreakInterval, ...] = field(default_factory=tuple)
    effective_working_hours: Optional[float] = None
    hours_anomaly: bool = False
    version: int = 0

    @property
    def open_break(self) -> Optional[BreakInterval]:
        for b in reversed(self.breaks):
            if b.is_open:
                return b
        return None

    @property
    def state(self) -> PunchState:
        if self.punch_in_at is None:
            return PunchState.NOT_PUNCHED_IN
        if self.punch_out_at is not None:
            return PunchState.PUNCHED_OUT
        if self.open_break is not None:
            return PunchState.ON_BREAK
        return PunchState.PUNCHED_IN
