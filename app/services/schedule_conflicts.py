from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time

from sqlalchemy.orm import Session

from app.services.break_validation import BreakValidationIssue, validate_breaks_for_parent
from app.services.calendar_weeks import iter_days, parse_iso_date
from app.services.schedule_resolver import effective_breaks, resolve_range
from app.services.time_windows import format_hhmm


@dataclass(frozen=True)
class ScheduleConflict:
    date: date
    type: str
    message: str
    start_time: time | None = None
    end_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None


@dataclass(frozen=True)
class ConflictReport:
    has_conflicts: bool
    conflict_count: int
    conflicts: list[ScheduleConflict] = field(default_factory=list)


@dataclass(frozen=True)
class BreakConflictDay:
    date: date
    source: str
    source_id: int | None
    work_hours: str
    breaks_count: int
    errors: list[BreakValidationIssue]


@dataclass(frozen=True)
class BreakConflictReport:
    start_date: date
    end_date: date
    has_conflicts: bool
    conflict_count: int
    conflicts: list[BreakConflictDay] = field(default_factory=list)


def validate_schedule_conflicts(
    db: Session,
    *,
    employee_id: int,
    start_date: date | str,
    end_date: date | str,
) -> ConflictReport:
    """Check every resolved working day for broken work and legacy break windows.

    Only days that resolve to a working schedule with both bounds are inspected.
    Problems are collected, never raised.
    """
    conflicts: list[ScheduleConflict] = []
    for schedule in resolve_range(db, employee_id=employee_id, start_date=start_date, end_date=end_date):
        if not schedule.is_working_day or schedule.start_time is None or schedule.end_time is None:
            continue
        start, end = schedule.start_time, schedule.end_time
        if start >= end:
            conflicts.append(
                ScheduleConflict(
                    date=schedule.date,
                    type="invalid_time_range",
                    message="Start time must be before end time",
                    start_time=start,
                    end_time=end,
                )
            )

        break_start, break_end = schedule.break_start_time, schedule.break_end_time
        if break_start is None or break_end is None:
            continue
        if break_start < start or break_end > end:
            conflicts.append(
                ScheduleConflict(
                    date=schedule.date,
                    type="break_outside_work_hours",
                    message=(
                        f"Break time {format_hhmm(break_start)} - {format_hhmm(break_end)} must be within "
                        f"work hours {format_hhmm(start)} - {format_hhmm(end)}"
                    ),
                    start_time=start,
                    end_time=end,
                    break_start_time=break_start,
                    break_end_time=break_end,
                )
            )
        if break_start >= break_end:
            conflicts.append(
                ScheduleConflict(
                    date=schedule.date,
                    type="invalid_break_range",
                    message="Break start time must be before break end time",
                    break_start_time=break_start,
                    break_end_time=break_end,
                )
            )

    return ConflictReport(has_conflicts=bool(conflicts), conflict_count=len(conflicts), conflicts=conflicts)


def analyze_break_conflicts(
    db: Session,
    *,
    employee_id: int,
    start_date: date | str,
    end_date: date | str,
) -> BreakConflictReport:
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    conflicts: list[BreakConflictDay] = []
    for day in iter_days(start, end):
        day_breaks = effective_breaks(db, employee_id=employee_id, day=day)
        if not day_breaks.is_working_day or not day_breaks.breaks:
            continue
        result = validate_breaks_for_parent(
            None,
            day_breaks.breaks,
            day_breaks.work_start_time,
            day_breaks.work_end_time,
        )
        if result.is_valid:
            continue
        conflicts.append(
            BreakConflictDay(
                date=day,
                source=day_breaks.source,
                source_id=day_breaks.source_id,
                work_hours=f"{format_hhmm(day_breaks.work_start_time)} - {format_hhmm(day_breaks.work_end_time)}",
                breaks_count=len(day_breaks.breaks),
                errors=result.errors,
            )
        )
    return BreakConflictReport(
        start_date=start,
        end_date=end,
        has_conflicts=bool(conflicts),
        conflict_count=len(conflicts),
        conflicts=conflicts,
    )
