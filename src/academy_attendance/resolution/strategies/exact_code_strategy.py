from __future__ import annotations

from typing import Collection, Sequence

from ...core.enums import Role
from ...events.model import ParsedDeviceEvent
from ...persons.model import Person
from ...persons.repository import PersonDirectory
from .base import ResolutionStrategy


class ExactCodeStrategy(ResolutionStrategy):
    """Employee code equals the stored identifier, email or phone."""

    name = "employee code"

    def __init__(self, *, strict: bool = True):
        super().__init__(strict=strict)

    def candidates(
        self,
        event: ParsedDeviceEvent,
        directory: PersonDirectory,
        *,
        roles: Collection[Role],
    ) -> Sequence[Person]:
        if not event.employee_code:
            return []
        return directory.find_by_identifier(event.employee_code, roles=roles)
