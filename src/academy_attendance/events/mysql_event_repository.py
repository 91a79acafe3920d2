from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import EventOutcome, PunchType, VerificationMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import RawAttendanceEvent
from .repository import EventRepository

_COLUMNS = """
    event_id, person_id, device_id, event_time, punch_type, verification_mode,
    employee_code, employee_name, outcome, reason, raw_payload, received_at
"""


def _enum_or_none(enum_cls, value: Any):
    return enum_cls(value) if value else None


def _to_event(r: dict) -> RawAttendanceEvent:
    return RawAttendanceEvent(
        event_id=int(r["event_id"]),
        person_id=int(r["person_id"]) if r.get("person_id") is not None else None,
        device_id=int(r["device_id"]) if r.get("device_id") is not None else None,
        event_time=r["event_time"],
        punch_type=_enum_or_none(PunchType, r.get("punch_type")),
        verification_mode=_enum_or_none(VerificationMode, r.get("verification_mode")),
        employee_code=r.get("employee_code"),
        employee_name=r.get("employee_name"),
        outcome=EventOutcome(r["outcome"]),
        reason=r.get("reason"),
        raw_payload=load_json(r.get("raw_payload")) or {},
        received_at=r["received_at"],
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, event: RawAttendanceEvent) -> RawAttendanceEvent:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_events(
                    person_id, device_id, event_time, punch_type, verification_mode,
                    employee_code, employee_name, outcome, reason, raw_payload, received_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    event.person_id,
                    event.device_id,
                    event.event_time,
                    event.punch_type.value if event.punch_type else None,
                    event.verification_mode.value if event.verification_mode else None,
                    event.employee_code,
                    event.employee_name,
                    event.outcome.value,
                    event.reason,
                    dump_json(dict(event.raw_payload)),
                    event.received_at,
                ),
            )
            return replace(event, event_id=int(cur.lastrowid))

    def latest_before(self, person_id: int, before: datetime) -> Optional[RawAttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE person_id=%s AND event_time < %s AND punch_type IS NOT NULL
                ORDER BY event_time DESC, event_id DESC
                LIMIT 1
                """,
                (person_id, before),
            )
            r = fetchone(cur)
            return _to_event(r) if r else None

    def list_unresolved(self, *, limit: int) -> Sequence[RawAttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE person_id IS NULL AND outcome=%s
                ORDER BY received_at DESC, event_id DESC
                LIMIT %s
                """,
                (EventOutcome.UNRESOLVED.value, int(limit)),
            )
            return [_to_event(r) for r in fetchall(cur)]
