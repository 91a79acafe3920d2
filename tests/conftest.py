from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Collection, Dict, List, Optional, Sequence

import pytest

from academy_attendance.attendance.model import AttendanceRecord
from academy_attendance.captures.storage import LocalCaptureStorage
from academy_attendance.container import wire
from academy_attendance.core.enums import EventOutcome, Role
from academy_attendance.core.exceptions import ConcurrentUpdateError, DeviceCommunicationError, DuplicateRecordError
from academy_attendance.devices.model import BiometricDevice
from academy_attendance.events.model import RawAttendanceEvent
from academy_attendance.persons.model import Person


PEOPLE = [
    Person(1, "Nguyen Van An", Role.EMPLOYEE, employee_code="EMP001", email="an@academy.edu"),
    Person(2, "Tran Thi Binh", Role.FACULTY, employee_code="FAC002", email="binh@academy.edu"),
    Person(3, "Le Van An", Role.EMPLOYEE, employee_code="EMP003"),
    Person(4, "Pham Minh Chau", Role.STUDENT, employee_code="STU004"),
    Person(5, "Admin User", Role.ADMIN, employee_code="ADM005"),
    Person(6, "Hoang Duc", Role.EMPLOYEE, phone="0900000006"),
]


@dataclass
class InMemoryPersons:
    people: List[Person]

    def _eligible(self, roles: Collection[Role]) -> List[Person]:
        return sorted((p for p in self.people if p.is_active and p.role in roles), key=lambda p: p.person_id)

    def get_by_id(self, person_id: int) -> Optional[Person]:
        return next((p for p in self.people if p.person_id == person_id), None)

    def find_by_identifier(self, identifier: str, *, roles: Collection[Role]) -> Sequence[Person]:
        return [p for p in self._eligible(roles) if identifier in (p.employee_code, p.email, p.phone)]

    def search_by_name(self, fragment: str, *, roles: Collection[Role]) -> Sequence[Person]:
        return self.search_by_name_tokens([fragment], roles=roles)

    def search_by_name_tokens(self, tokens: Sequence[str], *, roles: Collection[Role]) -> Sequence[Person]:
        lowered = [t.lower() for t in tokens]
        return [p for p in self._eligible(roles) if all(t in p.full_name.lower() for t in lowered)]


class InMemoryAttendance:
    """Mimics the MySQL repo: unique (person, day) and optimistic versions."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_person_date: Dict[tuple, AttendanceRecord] = {}
        self._id = 0
        self.stale_updates = 0

    def get_for_person_and_date(self, person_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_person_date.get((person_id, work_date))

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            key = (record.person_id, record.work_date)
            if key in self._by_person_date:
                raise DuplicateRecordError(f"Duplicate entry {key}")
            self._id += 1
            stored = replace(record, attendance_id=self._id, version=1)
            self._by_person_date[key] = stored
            return stored

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            key = (record.person_id, record.work_date)
            current = self._by_person_date.get(key)
            if self.stale_updates:
                self.stale_updates -= 1
                raise ConcurrentUpdateError("simulated concurrent writer")
            if current is None or current.version != record.version:
                raise ConcurrentUpdateError(f"record {record.attendance_id} changed")
            stored = replace(record, version=record.version + 1)
            self._by_person_date[key] = stored
            return stored

    def list_for_person(self, person_id: int, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        items = [
            r for (pid, d), r in self._by_person_date.items() if pid == person_id and start <= d <= end
        ]
        return sorted(items, key=lambda r: r.work_date, reverse=True)

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        return sorted((r for (_, d), r in self._by_person_date.items() if d == work_date), key=lambda r: r.person_id)

    def all(self) -> List[AttendanceRecord]:
        return list(self._by_person_date.values())


class InMemoryEvents:
    def __init__(self):
        self.events: List[RawAttendanceEvent] = []

    def append(self, event: RawAttendanceEvent) -> RawAttendanceEvent:
        stored = replace(event, event_id=len(self.events) + 1)
        self.events.append(stored)
        return stored

    def latest_before(self, person_id: int, before: datetime) -> Optional[RawAttendanceEvent]:
        prior = [
            e
            for e in self.events
            if e.person_id == person_id and e.event_time < before and e.punch_type is not None
        ]
        if not prior:
            return None
        return max(prior, key=lambda e: (e.event_time, e.event_id))

    def list_unresolved(self, *, limit: int) -> Sequence[RawAttendanceEvent]:
        items = [e for e in self.events if e.person_id is None and e.outcome == EventOutcome.UNRESOLVED]
        return list(reversed(items))[:limit]

    def with_outcome(self, outcome: EventOutcome) -> List[RawAttendanceEvent]:
        return [e for e in self.events if e.outcome == outcome]


class InMemoryDevices:
    def __init__(self, devices: Sequence[BiometricDevice] = ()):
        self._devices: Dict[int, BiometricDevice] = {}
        self._id = 0
        for d in devices:
            self.create(d)

    def get(self, device_id: int) -> Optional[BiometricDevice]:
        return self._devices.get(device_id)

    def list_all(self) -> Sequence[BiometricDevice]:
        return [self._devices[k] for k in sorted(self._devices)]

    def _find(self, predicate: Callable[[BiometricDevice], bool]) -> Optional[BiometricDevice]:
        return next((d for d in self.list_all() if predicate(d)), None)

    def find_by_auth_key(self, auth_key: str) -> Optional[BiometricDevice]:
        return self._find(lambda d: d.auth_key == auth_key)

    def find_by_serial_no(self, serial_no: str) -> Optional[BiometricDevice]:
        return self._find(lambda d: d.serial_no == serial_no)

    def find_by_ip_address(self, ip_address: str) -> Optional[BiometricDevice]:
        return self._find(lambda d: d.ip_address == ip_address)

    def find_by_name(self, name: str) -> Optional[BiometricDevice]:
        return self._find(lambda d: d.name == name)

    def create(self, device: BiometricDevice) -> BiometricDevice:
        self._id += 1
        stored = replace(device, device_id=self._id)
        self._devices[self._id] = stored
        return stored

    def update(self, device: BiometricDevice) -> BiometricDevice:
        self._devices[device.device_id] = device
        return device

    def delete(self, device_id: int) -> bool:
        return self._devices.pop(device_id, None) is not None


@dataclass
class FakeDeviceClient:
    """Stands in for the HTTP client; logs/errors are keyed by device id."""

    logs: Dict[int, list] = field(default_factory=dict)
    errors: Dict[int, Exception] = field(default_factory=dict)
    unreachable: set = field(default_factory=set)
    fetch_calls: List[tuple] = field(default_factory=list)

    def probe(self, device: BiometricDevice) -> None:
        if device.device_id in self.unreachable:
            raise DeviceCommunicationError("Timed out after 5s")

    def fetch_logs(self, device: BiometricDevice, *, since: Optional[datetime]) -> list:
        self.fetch_calls.append((device.device_id, since))
        if device.device_id in self.errors:
            raise self.errors[device.device_id]
        return list(self.logs.get(device.device_id, []))


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def persons() -> InMemoryPersons:
    return InMemoryPersons(list(PEOPLE))


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def events_repo() -> InMemoryEvents:
    return InMemoryEvents()


@pytest.fixture
def devices_repo() -> InMemoryDevices:
    return InMemoryDevices()


@pytest.fixture
def device_client() -> FakeDeviceClient:
    return FakeDeviceClient()


@pytest.fixture
def container(persons, attendance_repo, events_repo, devices_repo, device_client, tmp_path):
    return wire(
        persons=persons,
        attendance_repo=attendance_repo,
        events_repo=events_repo,
        devices_repo=devices_repo,
        capture_storage=LocalCaptureStorage(str(tmp_path / "uploads")),
        device_client=device_client,
        failure_threshold=3,
        strict_fuzzy=True,
    )


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from academy_attendance.main import create_app

    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user_id: int, role: Role) -> None:
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["role"] = role.value

    return _login
