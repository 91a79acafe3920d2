from datetime import datetime

from academy_attendance.attendance.model import BreakInterval
from academy_attendance.hours.standard_calculator import StandardHoursCalculator, total_break_seconds


def test_effective_hours_rounds_to_two_decimals():
    calc = StandardHoursCalculator()
    result = calc.effective_hours(
        punch_in_at=datetime(2026, 3, 2, 9, 0),
        punch_out_at=datetime(2026, 3, 2, 17, 20),
        breaks=[BreakInterval(datetime(2026, 3, 2, 12, 0), datetime(2026, 3, 2, 12, 30))],
    )
    # 7h50m = 7.8333...
    assert result.hours == 7.83
    assert result.break_seconds == 1800
    assert result.anomaly is False


def test_break_time_exceeding_elapsed_is_clamped_and_flagged():
    calc = StandardHoursCalculator()
    overlapping = [
        BreakInterval(datetime(2026, 3, 2, 9, 10), datetime(2026, 3, 2, 9, 50)),
        BreakInterval(datetime(2026, 3, 2, 9, 5), datetime(2026, 3, 2, 9, 55)),
    ]
    result = calc.effective_hours(
        punch_in_at=datetime(2026, 3, 2, 9, 0),
        punch_out_at=datetime(2026, 3, 2, 10, 0),
        breaks=overlapping,
    )

    assert result.hours == 0.0
    assert result.anomaly is True


def test_open_break_counts_until_reference_time():
    breaks = [BreakInterval(datetime(2026, 3, 2, 12, 0))]
    assert total_break_seconds(breaks, until=datetime(2026, 3, 2, 12, 20)) == 1200
