from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import PunchType
from ..events.repository import EventRepository


class PunchTypeClassifier:
    """Decides IN/OUT for a device event by alternating on the person's previous event.

    No prior event, or a prior OUT, means IN; a prior IN means OUT.
    """

    def __init__(self, events: EventRepository):
        self._events = events

    def classify(
        self,
        person_id: int,
        event_time: datetime,
        *,
        declared: Optional[PunchType] = None,
    ) -> PunchType:
        if declared is not None:
            return declared

        previous = self._events.latest_before(person_id, event_time)
        if previous is None or previous.punch_type == PunchType.OUT:
            return PunchType.IN
        return PunchType.OUT
