from __future__ import annotations

import logging
from typing import Collection, Optional, Sequence

from ..core.enums import EMPLOYEE_LIKE_ROLES, Role
from ..core.exceptions import PersonNotResolved
from ..events.model import ParsedDeviceEvent
from ..persons.model import Person
from ..persons.repository import PersonDirectory
from .factory import ResolutionStrategyFactory
from .strategies.base import ResolutionStrategy

logger = logging.getLogger(__name__)


class EventResolver:
    """Maps a device event to exactly one employee-like person or raises PersonNotResolved."""

    def __init__(
        self,
        directory: PersonDirectory,
        *,
        strategies: Optional[Sequence[ResolutionStrategy]] = None,
        roles: Collection[Role] = EMPLOYEE_LIKE_ROLES,
    ):
        self._directory = directory
        self._strategies = list(strategies) if strategies is not None else ResolutionStrategyFactory().chain()
        self._roles = frozenset(roles)

    def resolve(self, event: ParsedDeviceEvent) -> Person:
        for strategy in self._strategies:
            person = strategy.select(strategy.candidates(event, self._directory, roles=self._roles))
            if person is not None:
                logger.debug("Resolved event (code=%s, name=%s) by %s -> person %s",
                             event.employee_code, event.employee_name, strategy.name, person.person_id)
                return person

        raise PersonNotResolved(
            f"No employee matches code={event.employee_code!r} name={event.employee_name!r}"
        )
