from __future__ import annotations

from typing import Collection, Sequence

from ...core.enums import Role
from ...events.model import ParsedDeviceEvent
from ...persons.model import Person
from ...persons.repository import PersonDirectory
from .base import ResolutionStrategy


class NameSubstringStrategy(ResolutionStrategy):
    """Reported name appears (case-insensitive) inside the stored full name."""

    name = "name"

    def candidates(
        self,
        event: ParsedDeviceEvent,
        directory: PersonDirectory,
        *,
        roles: Collection[Role],
    ) -> Sequence[Person]:
        if not event.employee_name:
            return []
        return directory.search_by_name(event.employee_name.strip(), roles=roles)
