from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ..attendance.model import BreakInterval


@dataclass(frozen=True)
class HoursResult:
    hours: float
    break_seconds: float
    anomaly: bool = False


class WorkingHoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for working hours)."""

    @abstractmethod
    def effective_hours(
        self,
        *,
        punch_in_at: datetime,
        punch_out_at: datetime,
        breaks: Sequence[BreakInterval],
    ) -> HoursResult:
        raise NotImplementedError
