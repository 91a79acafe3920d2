from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional

from ..attendance.model import EMPTY_CAPTURE, CaptureMetadata
from ..attendance.service import AttendanceService
from ..common.locks import KeyedLocks
from ..core.constants import MAX_EVENT_REASON_LENGTH
from ..core.enums import EventOutcome, PunchType
from ..core.exceptions import (
    DeviceCommunicationError,
    DeviceNotFound,
    MalformedPayloadError,
    PersonNotResolved,
    PunchStateError,
    StorageError,
    ValidationError,
)
from ..devices.client import DeviceClient
from ..devices.service import DeviceRegistry
from ..events.model import ParsedDeviceEvent, RawAttendanceEvent
from ..events.parser import extract_device_identity, parse_device_event
from ..events.repository import EventRepository
from ..resolution.classifier import PunchTypeClassifier
from ..resolution.resolver import EventResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    device_id: int
    success: bool
    fetched: int = 0
    applied: int = 0
    rejected: int = 0
    unresolved: int = 0
    malformed: int = 0
    failed: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def _opaque(payload: Any) -> Mapping[str, Any]:
    return dict(payload) if isinstance(payload, Mapping) else {"payload": payload}


def _clip(reason: Optional[str]) -> Optional[str]:
    if reason is None or len(reason) <= MAX_EVENT_REASON_LENGTH:
        return reason
    return reason[: MAX_EVENT_REASON_LENGTH - 3] + "..."


class SyncOrchestrator:
    """Turns device events (pushed or pulled) into attendance mutations.

    Each event goes resolve -> classify -> apply and is then appended to the
    event log with its outcome, whatever that outcome is.
    """

    def __init__(
        self,
        *,
        registry: DeviceRegistry,
        client: DeviceClient,
        events: EventRepository,
        resolver: EventResolver,
        classifier: PunchTypeClassifier,
        attendance: AttendanceService,
        locks: Optional[KeyedLocks] = None,
    ):
        self._registry = registry
        self._client = client
        self._events = events
        self._resolver = resolver
        self._classifier = classifier
        self._attendance = attendance
        self._locks = locks or KeyedLocks()

    def _append(
        self,
        payload: Any,
        *,
        device_id: Optional[int],
        received_at: datetime,
        outcome: EventOutcome,
        reason: Optional[str] = None,
        parsed: Optional[ParsedDeviceEvent] = None,
        person_id: Optional[int] = None,
        punch_type: Optional[PunchType] = None,
    ) -> RawAttendanceEvent:
        return self._events.append(
            RawAttendanceEvent(
                event_id=None,
                person_id=person_id,
                device_id=device_id,
                event_time=parsed.event_time if parsed else received_at,
                punch_type=punch_type,
                verification_mode=parsed.verification_mode if parsed else None,
                employee_code=parsed.employee_code if parsed else None,
                employee_name=parsed.employee_name if parsed else None,
                outcome=outcome,
                reason=_clip(reason),
                raw_payload=_opaque(payload),
                received_at=received_at,
            )
        )

    def process_event(self, payload: Any, *, device_id: Optional[int], received_at: datetime) -> RawAttendanceEvent:
        """Process one device event and return the event as logged.

        StorageError propagates; everything else ends up as the event's outcome.
        """

        try:
            parsed = parse_device_event(payload)
        except MalformedPayloadError as e:
            logger.warning("Malformed event from device %s: %s", device_id, e)
            return self._append(
                payload, device_id=device_id, received_at=received_at, outcome=EventOutcome.MALFORMED, reason=str(e)
            )

        try:
            person = self._resolver.resolve(parsed)
        except PersonNotResolved as e:
            logger.warning("Unresolved event from device %s: %s", device_id, e)
            return self._append(
                payload,
                device_id=device_id,
                received_at=received_at,
                outcome=EventOutcome.UNRESOLVED,
                reason=str(e),
                parsed=parsed,
            )

        # Classification reads the event log, so classify/apply/append must not interleave per person.
        with self._locks.hold(("person", person.person_id)):
            punch_type = self._classifier.classify(
                person.person_id, parsed.event_time, declared=parsed.declared_punch_type
            )
            capture = (
                CaptureMetadata(verification_token=parsed.verification_token)
                if parsed.verification_token
                else EMPTY_CAPTURE
            )
            outcome, reason = EventOutcome.APPLIED, None
            try:
                self._attendance.apply_device_punch(person.person_id, punch_type, at=parsed.event_time, capture=capture)
            except PunchStateError as e:
                outcome, reason = EventOutcome.REJECTED, f"{e.code}: {e}"
                logger.info("Device %s %s for person %s rejected: %s", device_id, punch_type.value, person.person_id, e)
            except StorageError:
                raise
            except Exception as e:
                logger.exception("Failed to apply device event for person %s", person.person_id)
                outcome, reason = EventOutcome.FAILED, str(e) or e.__class__.__name__

            return self._append(
                payload,
                device_id=device_id,
                received_at=received_at,
                outcome=outcome,
                reason=reason,
                parsed=parsed,
                person_id=person.person_id,
                punch_type=punch_type,
            )

    def handle_push(self, payload: Any, *, now: datetime) -> RawAttendanceEvent:
        """Webhook entry point. Raises AuthenticationError/ValidationError for bad senders."""

        device = self._registry.find_or_register_push(extract_device_identity(payload))
        device_id = device.device_id if device else None
        event = self.process_event(payload, device_id=device_id, received_at=now)
        if device_id is not None:
            self._registry.mark_synced(device_id, at=now)
        return event

    def sync_device(self, device_id: int, *, now: datetime) -> SyncResult:
        with self._locks.hold(("sync", device_id)):
            # Re-read under the lock so the watermark is the one the previous sync left.
            device = self._registry.get(device_id)
            if not device.is_pull:
                raise ValidationError(f"Device '{device.name}' pushes its events; nothing to pull")

            try:
                logs = self._client.fetch_logs(device, since=device.last_sync_at)
            except DeviceCommunicationError as e:
                logger.error("Sync of device %s failed: %s", device_id, e)
                self._registry.mark_failed(device_id)
                return SyncResult(device_id=device_id, success=False, error=str(e))

            counts: Counter = Counter()
            for log in logs:
                try:
                    event = self.process_event(log, device_id=device_id, received_at=now)
                except StorageError:
                    raise
                except Exception:
                    logger.exception("Unexpected error processing a log from device %s", device_id)
                    counts[EventOutcome.FAILED] += 1
                else:
                    counts[event.outcome] += 1

            self._registry.mark_synced(device_id, at=now)

        result = SyncResult(
            device_id=device_id,
            success=True,
            fetched=len(logs),
            applied=counts[EventOutcome.APPLIED],
            rejected=counts[EventOutcome.REJECTED],
            unresolved=counts[EventOutcome.UNRESOLVED],
            malformed=counts[EventOutcome.MALFORMED],
            failed=counts[EventOutcome.FAILED],
        )
        logger.info("Synced device %s: %s", device_id, result)
        return result

    def sync_all(self, *, now: datetime) -> List[SyncResult]:
        results: List[SyncResult] = []
        for device in self._registry.list_active_pull():
            try:
                results.append(self.sync_device(device.device_id, now=now))
            except DeviceNotFound:
                logger.info("Device %s disappeared before it could be synced", device.device_id)
        return results

    def list_unresolved(self, *, limit: int) -> List[RawAttendanceEvent]:
        return list(self._events.list_unresolved(limit=limit))
