from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from ..attendance.model import BreakInterval
from ..core.constants import HOURS_PRECISION
from .base import HoursResult, WorkingHoursCalculator

logger = logging.getLogger(__name__)


def total_break_seconds(breaks: Sequence[BreakInterval], *, until: datetime) -> float:
    """Sum of break durations; an open break counts up to `until`."""
    total = 0.0
    for b in breaks:
        end = b.end or until
        if end > b.start:
            total += (end - b.start).total_seconds()
    return total


class StandardHoursCalculator(WorkingHoursCalculator):
    """Standard rule: (out - in) - sum(breaks), in hours, not below 0."""

    def effective_hours(
        self,
        *,
        punch_in_at: datetime,
        punch_out_at: datetime,
        breaks: Sequence[BreakInterval],
    ) -> HoursResult:
        elapsed = (punch_out_at - punch_in_at).total_seconds()
        on_break = total_break_seconds(breaks, until=punch_out_at)
        effective = elapsed - on_break

        if effective < 0:
            logger.warning(
                "Break time %.0fs exceeds elapsed time %.0fs (in=%s out=%s); clamping to 0",
                on_break,
                elapsed,
                punch_in_at,
                punch_out_at,
            )
            return HoursResult(hours=0.0, break_seconds=on_break, anomaly=True)

        return HoursResult(hours=round(effective / 3600.0, HOURS_PRECISION), break_seconds=on_break)
