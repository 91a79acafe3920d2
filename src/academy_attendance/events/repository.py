from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import RawAttendanceEvent


class EventRepository(Protocol):
    """Append-only event log. Events are never updated or deleted."""

    def append(self, event: RawAttendanceEvent) -> RawAttendanceEvent:
        raise NotImplementedError

    def latest_before(self, person_id: int, before: datetime) -> Optional[RawAttendanceEvent]:
        """Most recent event for the person strictly before `before` that carries a punch type."""

        raise NotImplementedError

    def list_unresolved(self, *, limit: int) -> Sequence[RawAttendanceEvent]:
        raise NotImplementedError
