from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Collection, Optional, Sequence

from ...core.enums import Role
from ...core.exceptions import PersonNotResolved
from ...events.model import ParsedDeviceEvent
from ...persons.model import Person
from ...persons.repository import PersonDirectory


class ResolutionStrategy(ABC):
    """Strategy Pattern: one way of mapping a device event to a person.

    `strict` strategies refuse to guess between several candidates.
    """

    name = "base"

    def __init__(self, *, strict: bool = False):
        self.strict = strict

    @abstractmethod
    def candidates(
        self,
        event: ParsedDeviceEvent,
        directory: PersonDirectory,
        *,
        roles: Collection[Role],
    ) -> Sequence[Person]:
        raise NotImplementedError

    def select(self, candidates: Sequence[Person]) -> Optional[Person]:
        if not candidates:
            return None
        if len(candidates) > 1 and self.strict:
            ids = [p.person_id for p in candidates]
            raise PersonNotResolved(
                f"Ambiguous {self.name} match; candidates: {', '.join(str(i) for i in ids)}",
                candidates=ids,
            )
        return candidates[0]
