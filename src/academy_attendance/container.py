from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .captures.storage import CaptureStorage, LocalCaptureStorage
from .common.locks import KeyedLocks
from .core.constants import DEFAULT_DEVICE_FAILURE_THRESHOLD, DEFAULT_FETCH_TIMEOUT, DEFAULT_PROBE_TIMEOUT
from .database.connection import DBConfig, DatabaseConnection
from .devices.client import DeviceClient
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.repository import DeviceRepository
from .devices.service import DeviceRegistry
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .persons.mysql_person_directory import MySQLPersonDirectory
from .persons.repository import PersonDirectory
from .resolution.classifier import PunchTypeClassifier
from .resolution.factory import ResolutionStrategyFactory
from .resolution.resolver import EventResolver
from .sync.orchestrator import SyncOrchestrator


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    persons: PersonDirectory
    attendance_repo: AttendanceRepository
    events_repo: EventRepository
    devices_repo: DeviceRepository

    capture_storage: CaptureStorage
    attendance_service: AttendanceService
    device_registry: DeviceRegistry
    sync_orchestrator: SyncOrchestrator


def wire(
    *,
    persons: PersonDirectory,
    attendance_repo: AttendanceRepository,
    events_repo: EventRepository,
    devices_repo: DeviceRepository,
    capture_storage: CaptureStorage,
    device_client: Optional[DeviceClient] = None,
    failure_threshold: int = DEFAULT_DEVICE_FAILURE_THRESHOLD,
    strict_fuzzy: bool = True,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build services on top of any repository implementations (MySQL or in-memory)."""

    client = device_client or DeviceClient()
    locks = KeyedLocks()

    attendance_service = AttendanceService(attendance_repo, persons, locks=locks)
    device_registry = DeviceRegistry(devices_repo, client, failure_threshold=failure_threshold, locks=locks)
    sync_orchestrator = SyncOrchestrator(
        registry=device_registry,
        client=client,
        events=events_repo,
        resolver=EventResolver(persons, strategies=ResolutionStrategyFactory(strict_fuzzy=strict_fuzzy).chain()),
        classifier=PunchTypeClassifier(events_repo),
        attendance=attendance_service,
        locks=locks,
    )

    return Container(
        conn=conn,
        persons=persons,
        attendance_repo=attendance_repo,
        events_repo=events_repo,
        devices_repo=devices_repo,
        capture_storage=capture_storage,
        attendance_service=attendance_service,
        device_registry=device_registry,
        sync_orchestrator=sync_orchestrator,
    )


def build_container(*, db_config: dict, settings=None) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    client = DeviceClient(
        probe_timeout=getattr(settings, "DEVICE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT),
        fetch_timeout=getattr(settings, "DEVICE_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
    )

    return wire(
        persons=MySQLPersonDirectory(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        events_repo=MySQLEventRepository(conn),
        devices_repo=MySQLDeviceRepository(conn),
        capture_storage=LocalCaptureStorage(getattr(settings, "UPLOAD_DIR", "uploads/attendance")),
        device_client=client,
        failure_threshold=int(getattr(settings, "DEVICE_FAILURE_THRESHOLD", DEFAULT_DEVICE_FAILURE_THRESHOLD)),
        strict_fuzzy=bool(getattr(settings, "STRICT_FUZZY_MATCH", True)),
        conn=conn,
    )
