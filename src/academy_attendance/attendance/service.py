from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import isoformat_or_none, to_utc_naive, work_day
from ..common.locks import KeyedLocks
from ..core.constants import HOURS_PRECISION
from ..core.enums import PunchState, PunchType
from ..core.exceptions import (
    AlreadyPunchedIn,
    AuthorizationError,
    ConcurrentUpdateError,
    DuplicateRecordError,
    ValidationError,
)
from ..hours.standard_calculator import total_break_seconds
from ..persons.repository import PersonDirectory
from .model import EMPTY_CAPTURE, AttendanceRecord, CaptureMetadata, GeoLocation
from .repository import AttendanceRepository
from .state_machine import PunchStateMachine

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class TodayStatus:
    record: Optional[AttendanceRecord]
    state: PunchState
    can_punch_in: bool
    can_punch_out: bool
    on_break: bool


class AttendanceService:
    """Applies punch/break transitions to the per-day record, one writer per (person, day)."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        persons: Optional[PersonDirectory] = None,
        *,
        state_machine: Optional[PunchStateMachine] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        self._attendance = attendance
        self._persons = persons
        self._machine = state_machine or PunchStateMachine()
        self._locks = locks or KeyedLocks()

    def _require_employee(self, person_id: int) -> None:
        if self._persons is None:
            return
        person = self._persons.get_by_id(person_id)
        if not person:
            raise ValidationError("Person does not exist")
        if not person.is_employee_like:
            raise AuthorizationError("Only staff and faculty can record attendance")

    def _mutate(
        self,
        person_id: int,
        work_date: date,
        transition: Callable[[Optional[AttendanceRecord]], AttendanceRecord],
    ) -> AttendanceRecord:
        with self._locks.hold(("record", person_id, work_date)):
            for attempt in range(1, _MAX_ATTEMPTS + 1):
                current = self._attendance.get_for_person_and_date(person_id, work_date)
                updated = transition(current)
                try:
                    if current is None:
                        return self._attendance.create(updated)
                    return self._attendance.update(updated)
                except DuplicateRecordError:
                    # Another process created the day's record first; only punch-in creates.
                    raise AlreadyPunchedIn("Already punched in today")
                except ConcurrentUpdateError:
                    if attempt == _MAX_ATTEMPTS:
                        raise
                    logger.info("Retrying stale update for person=%s day=%s", person_id, work_date)
            raise AssertionError("unreachable")

    def punch_in(
        self,
        person_id: int,
        *,
        now: datetime,
        capture: CaptureMetadata = EMPTY_CAPTURE,
        check_role: bool = True,
    ) -> AttendanceRecord:
        if check_role:
            self._require_employee(person_id)
        now = to_utc_naive(now)
        day = work_day(now)
        record = self._mutate(
            person_id,
            day,
            lambda rec: self._machine.punch_in(rec, person_id=person_id, work_date=day, now=now, capture=capture),
        )
        logger.info("Punch-in person=%s at %s", person_id, now)
        return record

    def punch_out(
        self,
        person_id: int,
        *,
        now: datetime,
        capture: CaptureMetadata = EMPTY_CAPTURE,
        check_role: bool = True,
    ) -> AttendanceRecord:
        if check_role:
            self._require_employee(person_id)
        now = to_utc_naive(now)
        record = self._mutate(
            person_id,
            work_day(now),
            lambda rec: self._machine.punch_out(rec, now=now, capture=capture),
        )
        logger.info(
            "Punch-out person=%s at %s effective_hours=%s", person_id, now, record.effective_working_hours
        )
        if record.hours_anomaly:
            logger.warning("Hours anomaly on attendance %s (person=%s)", record.attendance_id, person_id)
        return record

    def break_in(self, person_id: int, *, now: datetime, reason: Optional[str] = None) -> AttendanceRecord:
        self._require_employee(person_id)
        now = to_utc_naive(now)
        return self._mutate(person_id, work_day(now), lambda rec: self._machine.break_in(rec, now=now, reason=reason))

    def break_out(self, person_id: int, *, now: datetime) -> AttendanceRecord:
        self._require_employee(person_id)
        now = to_utc_naive(now)
        return self._mutate(person_id, work_day(now), lambda rec: self._machine.break_out(rec, now=now))

    def apply_device_punch(
        self,
        person_id: int,
        punch_type: PunchType,
        *,
        at: datetime,
        capture: CaptureMetadata = EMPTY_CAPTURE,
    ) -> AttendanceRecord:
        """Device events: the day and the punch time both come from the event timestamp."""

        if punch_type == PunchType.IN:
            return self.punch_in(person_id, now=at, capture=capture, check_role=False)
        return self.punch_out(person_id, now=at, capture=capture, check_role=False)

    def get_today(self, person_id: int, *, now: datetime) -> TodayStatus:
        record = self._attendance.get_for_person_and_date(person_id, work_day(now))
        state = record.state if record else PunchState.NOT_PUNCHED_IN
        return TodayStatus(
            record=record,
            state=state,
            can_punch_in=state == PunchState.NOT_PUNCHED_IN,
            can_punch_out=state == PunchState.PUNCHED_IN,
            on_break=state == PunchState.ON_BREAK,
        )

    def history(self, person_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        if end < start:
            raise ValidationError("'from' must not be after 'to'")
        return self._attendance.list_for_person(person_id, start=start, end=end)

    def daily(self, work_date: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_date(work_date)


def _capture_dict(capture: CaptureMetadata) -> Optional[dict]:
    if capture.is_empty:
        return None
    loc: Optional[GeoLocation] = capture.location
    return {
        "photo": capture.photo_ref,
        "verification": capture.verification_token,
        "location": (
            {"latitude": loc.latitude, "longitude": loc.longitude, "accuracy": loc.accuracy, "address": loc.address}
            if loc
            else None
        ),
    }


def record_snapshot(record: AttendanceRecord, *, now: datetime) -> dict:
    """JSON-ready view of a record plus the computed fields the UI shows."""

    until = record.punch_out_at or now
    break_seconds = total_break_seconds(record.breaks, until=until)
    worked_so_far = None
    if record.punch_in_at is not None:
        worked = (until - record.punch_in_at).total_seconds() - break_seconds
        worked_so_far = round(max(worked, 0.0) / 3600.0, HOURS_PRECISION)

    return {
        "id": record.attendance_id,
        "person_id": record.person_id,
        "date": record.work_date.isoformat(),
        "state": record.state.value,
        "punch_in_at": isoformat_or_none(record.punch_in_at),
        "punch_out_at": isoformat_or_none(record.punch_out_at),
        "punch_in_capture": _capture_dict(record.punch_in_capture),
        "punch_out_capture": _capture_dict(record.punch_out_capture),
        "breaks": [
            {
                "start": b.start.isoformat(),
                "end": isoformat_or_none(b.end),
                "reason": b.reason,
                "minutes": round(((b.end or until) - b.start).total_seconds() / 60.0, HOURS_PRECISION),
            }
            for b in record.breaks
        ],
        "total_break_minutes": round(break_seconds / 60.0, HOURS_PRECISION),
        "effective_working_hours": record.effective_working_hours,
        "worked_hours_so_far": worked_so_far,
        "hours_anomaly": record.hours_anomaly,
    }
