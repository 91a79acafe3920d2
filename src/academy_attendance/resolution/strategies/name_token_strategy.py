from __future__ import annotations

from typing import Collection, Sequence

from ...core.enums import Role
from ...events.model import ParsedDeviceEvent
from ...persons.model import Person
from ...persons.repository import PersonDirectory
from .base import ResolutionStrategy


class NameTokenStrategy(ResolutionStrategy):
    """Fuzzy fallback: every whitespace token of the reported name is in the stored name.

    Catches reordered names ("Nguyen Van An" vs "An Nguyen Van").
    """

    name = "fuzzy name"

    def candidates(
        self,
        event: ParsedDeviceEvent,
        directory: PersonDirectory,
        *,
        roles: Collection[Role],
    ) -> Sequence[Person]:
        tokens = (event.employee_name or "").split()
        if not tokens:
            return []
        return directory.search_by_name_tokens(tokens, roles=roles)
