from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.models import BreakType
from app.services.time_windows import minutes_between, to_minutes


BREAK_TYPE_DEFAULT_PAID: dict[BreakType, bool] = {
    BreakType.PAID: True,
    BreakType.UNPAID: False,
    BreakType.MEAL: False,
    BreakType.REST: True,
    BreakType.PERSONAL: False,
    BreakType.OTHER: True,
}


@dataclass(frozen=True, slots=True)
class BreakTotals:
    total: int
    paid: int
    unpaid: int

    @property
    def total_hours(self) -> float:
        return round(self.total / 60, 2)

    @property
    def paid_hours(self) -> float:
        return round(self.paid / 60, 2)

    @property
    def unpaid_hours(self) -> float:
        return round(self.unpaid / 60, 2)


def break_is_paid(brk: Any) -> bool:
    is_paid = getattr(brk, "is_paid", None)
    if is_paid is not None:
        return bool(is_paid)
    raw_type = getattr(brk, "break_type", None)
    if raw_type is None:
        return True
    return BREAK_TYPE_DEFAULT_PAID.get(BreakType(raw_type), True)


def break_duration_minutes(brk: Any) -> int:
    duration = getattr(brk, "duration", None)
    if duration is not None:
        return int(duration)
    return minutes_between(brk.start_time, brk.end_time)


def flexible_window(brk: Any) -> tuple[int, int]:
    start = to_minutes(brk.start_time)
    end = to_minutes(brk.end_time)
    if getattr(brk, "is_flexible", False):
        slack = max(0, int(getattr(brk, "flexibility_minutes", 0) or 0))
        return start - slack, end + slack
    return start, end


def has_overlap(first: Any, second: Any) -> bool:
    first_start, first_end = flexible_window(first)
    second_start, second_end = flexible_window(second)
    return first_start < second_end and first_end > second_start


def calculate_total_break_time(breaks: Iterable[Any]) -> BreakTotals:
    total = 0
    paid = 0
    unpaid = 0
    for brk in breaks:
        duration = break_duration_minutes(brk)
        total += duration
        if break_is_paid(brk):
            paid += duration
        else:
            unpaid += duration
    return BreakTotals(total=total, paid=paid, unpaid=unpaid)
