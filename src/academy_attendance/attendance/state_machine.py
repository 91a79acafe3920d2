from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import PunchState
from ..core.exceptions import (
    AlreadyOnBreak,
    AlreadyPunchedIn,
    AlreadyPunchedOut,
    BreakStillOpen,
    InvalidPunchTime,
    NoActiveBreak,
    NotPunchedInYet,
)
from ..hours.base import WorkingHoursCalculator
from ..hours.standard_calculator import StandardHoursCalculator
from .model import EMPTY_CAPTURE, AttendanceRecord, BreakInterval, CaptureMetadata


class PunchStateMachine:
    """Legal transitions over one AttendanceRecord.

    NOT_PUNCHED_IN -> PUNCHED_IN -> [ON_BREAK -> PUNCHED_IN]* -> PUNCHED_OUT

    Pure: every method returns a new record and never touches storage or the clock.
    """

    def __init__(self, calculator: Optional[WorkingHoursCalculator] = None):
        self._calculator = calculator or StandardHoursCalculator()

    @staticmethod
    def blank(person_id: int, work_date: date) -> AttendanceRecord:
        return AttendanceRecord(attendance_id=None, person_id=person_id, work_date=work_date)

    @staticmethod
    def _last_mark(record: AttendanceRecord) -> datetime:
        """Latest timestamp already on the record; new marks may not precede it."""
        mark = record.punch_in_at
        for b in record.breaks:
            mark = max(mark, b.end or b.start)
        return mark

    def punch_in(
        self,
        record: Optional[AttendanceRecord],
        *,
        person_id: int,
        work_date: date,
        now: datetime,
        capture: CaptureMetadata = EMPTY_CAPTURE,
    ) -> AttendanceRecord:
        if record is not None and record.punch_in_at is not None:
            raise AlreadyPunchedIn("Already punched in today")
        if now.date() != work_date:
            raise InvalidPunchTime("Punch-in time does not fall on the record's day")

        base = record or self.blank(person_id, work_date)
        return replace(base, punch_in_at=now, punch_in_capture=capture)

    def punch_out(
        self,
        record: Optional[AttendanceRecord],
        *,
        now: datetime,
        capture: CaptureMetadata = EMPTY_CAPTURE,
    ) -> AttendanceRecord:
        if record is None or record.punch_in_at is None:
            raise NotPunchedInYet("You must punch in first")
        if record.punch_out_at is not None:
            raise AlreadyPunchedOut("Already punched out today")
        if record.open_break is not None:
            raise BreakStillOpen("End the current break before punching out")
        if now < record.punch_in_at or (record.breaks and now <= self._last_mark(record)):
            raise InvalidPunchTime("Punch-out cannot precede punch-in or a break")

        result = self._calculator.effective_hours(
            punch_in_at=record.punch_in_at,
            punch_out_at=now,
            breaks=record.breaks,
        )
        return replace(
            record,
            punch_out_at=now,
            punch_out_capture=capture,
            effective_working_hours=result.hours,
            hours_anomaly=result.anomaly,
        )

    def break_in(
        self,
        record: Optional[AttendanceRecord],
        *,
        now: datetime,
        reason: Optional[str] = None,
    ) -> AttendanceRecord:
        state = record.state if record is not None else PunchState.NOT_PUNCHED_IN
        if state == PunchState.NOT_PUNCHED_IN:
            raise NotPunchedInYet("You must punch in first")
        if state == PunchState.PUNCHED_OUT:
            raise AlreadyPunchedOut("Cannot start a break after punching out")
        if state == PunchState.ON_BREAK:
            raise AlreadyOnBreak("A break is already in progress")
        if now <= self._last_mark(record):
            raise InvalidPunchTime("Break must start after punch-in and previous breaks")

        return replace(record, breaks=record.breaks + (BreakInterval(start=now, reason=reason),))

    def break_out(self, record: Optional[AttendanceRecord], *, now: datetime) -> AttendanceRecord:
        if record is None or record.open_break is None:
            raise NoActiveBreak("No active break to end")

        breaks = list(record.breaks)
        idx = max(i for i, b in enumerate(breaks) if b.is_open)
        if now <= breaks[idx].start:
            raise InvalidPunchTime("Break cannot end before it starts")
        breaks[idx] = replace(breaks[idx], end=now)
        return replace(record, breaks=tuple(breaks))
