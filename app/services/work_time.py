from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import time
from typing import Any

from app.services.break_math import calculate_total_break_time
from app.services.time_windows import minutes_between


@dataclass(frozen=True)
class WorkTimeStats:
    total_work_minutes: int
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int
    effective_work_minutes: int
    unpaid_breaks_exceed_work: bool
    total_hours: float
    effective_hours: float
    break_hours: float
    paid_break_hours: float
    unpaid_break_hours: float


def _hours(minutes: int) -> float:
    return round(minutes / 60, 2)


def calculate_effective_work_time(
    work_start: time | None,
    work_end: time | None,
    breaks: Iterable[Any],
) -> WorkTimeStats | None:
    if work_start is None or work_end is None:
        return None

    total_work_minutes = minutes_between(work_start, work_end)
    totals = calculate_total_break_time(breaks)
    # Unpaid time larger than the work window yields a negative value; it is flagged, not clamped.
    effective_work_minutes = total_work_minutes - totals.unpaid

    return WorkTimeStats(
        total_work_minutes=total_work_minutes,
        total_break_minutes=totals.total,
        paid_break_minutes=totals.paid,
        unpaid_break_minutes=totals.unpaid,
        effective_work_minutes=effective_work_minutes,
        unpaid_breaks_exceed_work=effective_work_minutes < 0,
        total_hours=_hours(total_work_minutes),
        effective_hours=_hours(effective_work_minutes),
        break_hours=totals.total_hours,
        paid_break_hours=totals.paid_hours,
        unpaid_break_hours=totals.unpaid_hours,
    )
