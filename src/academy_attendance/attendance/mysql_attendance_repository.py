from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_device_timestamp
from ..core.exceptions import ConcurrentUpdateError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import EMPTY_CAPTURE, AttendanceRecord, BreakInterval, CaptureMetadata, GeoLocation
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, person_id, work_date,
    punch_in_at, punch_in_photo, punch_in_verification, punch_in_location,
    punch_out_at, punch_out_photo, punch_out_verification, punch_out_location,
    breaks, effective_working_hours, hours_anomaly, version
"""


def _location_to_json(location: Optional[GeoLocation]) -> Optional[str]:
    if location is None:
        return None
    return dump_json(
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "accuracy": location.accuracy,
            "address": location.address,
        }
    )


def _location_from_json(value: Any) -> Optional[GeoLocation]:
    data = load_json(value)
    if not data:
        return None
    return GeoLocation(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        accuracy=data.get("accuracy"),
        address=data.get("address"),
    )


def _breaks_to_json(breaks: Sequence[BreakInterval]) -> str:
    return dump_json(
        [
            {
                "start": b.start.isoformat(),
                "end": b.end.isoformat() if b.end else None,
                "reason": b.reason,
            }
            for b in breaks
        ]
    )


def _breaks_from_json(value: Any) -> tuple[BreakInterval, ...]:
    items = load_json(value) or []
    return tuple(
        BreakInterval(
            start=parse_device_timestamp(item["start"]),
            end=parse_device_timestamp(item.get("end")),
            reason=item.get("reason"),
        )
        for item in items
    )


def _capture(photo: Any, verification: Any, location: Any) -> CaptureMetadata:
    if photo is None and verification is None and location is None:
        return EMPTY_CAPTURE
    return CaptureMetadata(photo_ref=photo, verification_token=verification, location=_location_from_json(location))


def _to_record(r: dict) -> AttendanceRecord:
    hours = r.get("effective_working_hours")
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        person_id=int(r["person_id"]),
        work_date=r["work_date"],
        punch_in_at=r.get("punch_in_at"),
        punch_out_at=r.get("punch_out_at"),
        punch_in_capture=_capture(r.get("punch_in_photo"), r.get("punch_in_verification"), r.get("punch_in_location")),
        punch_out_capture=_capture(r.get("punch_out_photo"), r.get("punch_out_verification"), r.get("punch_out_location")),
        breaks=_breaks_from_json(r.get("breaks")),
        effective_working_hours=float(hours) if hours is not None else None,
        hours_anomaly=bool(r.get("hours_anomaly")),
        version=int(r.get("version") or 0),
    )


def _params(record: AttendanceRecord) -> tuple:
    return (
        record.punch_in_at,
        record.punch_in_capture.photo_ref,
        record.punch_in_capture.verification_token,
        _location_to_json(record.punch_in_capture.location),
        record.punch_out_at,
        record.punch_out_capture.photo_ref,
        record.punch_out_capture.verification_token,
        _location_to_json(record.punch_out_capture.location),
        _breaks_to_json(record.breaks),
        record.effective_working_hours,
        int(record.hours_anomaly),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_person_and_date(self, person_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE person_id=%s AND work_date=%s",
                (person_id, work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    person_id, work_date,
                    punch_in_at, punch_in_photo, punch_in_verification, punch_in_location,
                    punch_out_at, punch_out_photo, punch_out_verification, punch_out_location,
                    breaks, effective_working_hours, hours_anomaly, version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (record.person_id, record.work_date) + _params(record),
            )
            return replace(record, attendance_id=int(cur.lastrowid), version=1)

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET punch_in_at=%s, punch_in_photo=%s, punch_in_verification=%s, punch_in_location=%s,
                    punch_out_at=%s, punch_out_photo=%s, punch_out_verification=%s, punch_out_location=%s,
                    breaks=%s, effective_working_hours=%s, hours_anomaly=%s,
                    version=version + 1
                WHERE attendance_id=%s AND version=%s
                """,
                _params(record) + (record.attendance_id, record.version),
            )
            if cur.rowcount == 0:
                raise ConcurrentUpdateError(
                    f"attendance record {record.attendance_id} changed since version {record.version}"
                )
            return replace(record, version=record.version + 1)

    def list_for_person(self, person_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE person_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date DESC
                """,
                (person_id, start, end),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE work_date=%s ORDER BY person_id ASC",
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]
