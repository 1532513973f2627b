"""Working-day arithmetic on inclusive date ranges.

Fixed 5-day week (Saturday and Sunday excluded); no holiday calendar.
"""

from __future__ import annotations

from datetime import date, timedelta

SATURDAY = 5


def is_working_day(day: date) -> bool:
    return day.weekday() < SATURDAY


def count_working_days(start: date, end: date) -> int:
    """Count weekdays in ``[start, end]``; 0 when start is after end."""
    if start > end:
        return 0
    count = 0
    current = start
    while current <= end:
        if is_working_day(current):
            count += 1
        current += timedelta(days=1)
    return count


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive overlap test."""
    return start_a <= end_b and end_a >= start_b


def overlap_window(
    request_start: date,
    request_end: date,
    period_start: date,
    period_end: date,
) -> tuple[date, date] | None:
    """Clip a leave request to a pay period; None when they do not overlap."""
    if not ranges_overlap(request_start, request_end, period_start, period_end):
        return None
    return max(request_start, period_start), min(request_end, period_end)
