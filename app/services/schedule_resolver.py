"""Resolve an employee's effective day: exception, then weekly template, then fixed schedule."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.models import DailyScheduleException, FixedSchedule, ScheduleBreak, ScheduleTemplateDay
from app.services.break_parents import DailyExceptionParent, ParentRef, ScheduleParent, TemplateDayParent
from app.services.calendar_weeks import day_of_week, iso_week_year, iter_days, parse_iso_date, week_number
from app.services.schedule_breaks import list_breaks_for_parent
from app.services.weekly_assignments import find_weekly_assignment

NO_SCHEDULE_NOTE = "No hay horario definido para esta fecha"


@dataclass(frozen=True)
class ResolvedSource:
    type: str
    source: str
    parent: ParentRef
    is_working_day: bool
    start_time: time | None
    end_time: time | None
    break_start_time: time | None
    break_end_time: time | None
    notes: str | None
    reason: str | None = None
    week_notes: str | None = None


@dataclass(frozen=True)
class EffectiveSchedule:
    date: date
    day_of_week: int
    type: str
    source: str
    source_id: int | None
    is_working_day: bool
    start_time: time | None
    end_time: time | None
    break_start_time: time | None
    break_end_time: time | None
    notes: str | None
    reason: str | None = None
    week_notes: str | None = None


@dataclass(frozen=True)
class EffectiveBreaks:
    date: date
    source: str
    source_id: int | None
    work_start_time: time | None
    work_end_time: time | None
    is_working_day: bool
    breaks: list[ScheduleBreak] = field(default_factory=list)


SourceStrategy = Callable[[Session, int, date], "ResolvedSource | None"]


def _from_daily_exception(db: Session, employee_id: int, day: date) -> ResolvedSource | None:
    exception = db.scalar(
        select(DailyScheduleException).where(
            DailyScheduleException.employee_id == employee_id,
            DailyScheduleException.date == day,
            DailyScheduleException.is_active.is_(True),
        )
    )
    if exception is None:
        return None
    working = exception.is_working_day
    return ResolvedSource(
        type="daily_exception",
        source="daily_exception",
        parent=DailyExceptionParent(id=exception.id),
        is_working_day=working,
        start_time=exception.start_time if working else None,
        end_time=exception.end_time if working else None,
        break_start_time=exception.break_start_time if working else None,
        break_end_time=exception.break_end_time if working else None,
        notes=exception.notes,
        reason=exception.reason,
    )


def _from_weekly_template(db: Session, employee_id: int, day: date) -> ResolvedSource | None:
    assignment = find_weekly_assignment(
        db,
        employee_id=employee_id,
        year=iso_week_year(day),
        week_number=week_number(day),
    )
    if assignment is None or assignment.template is None:
        return None
    weekday = day_of_week(day)
    template_day: ScheduleTemplateDay | None = next(
        (item for item in assignment.template.days if item.day_of_week == weekday),
        None,
    )
    if template_day is None:
        return None
    return ResolvedSource(
        type="weekly_template",
        source="weekly_schedule",
        parent=TemplateDayParent(id=template_day.id),
        is_working_day=template_day.is_working_day,
        start_time=template_day.start_time,
        end_time=template_day.end_time,
        break_start_time=template_day.break_start_time,
        break_end_time=template_day.break_end_time,
        notes=template_day.notes,
        week_notes=assignment.notes,
    )


def _from_regular_schedule(db: Session, employee_id: int, day: date) -> ResolvedSource | None:
    schedule = db.scalar(
        select(FixedSchedule).where(
            FixedSchedule.employee_id == employee_id,
            FixedSchedule.day_of_week == day_of_week(day),
        )
    )
    if schedule is None:
        return None
    return ResolvedSource(
        type="regular_schedule",
        source="regular_schedule",
        parent=ScheduleParent(id=schedule.id),
        is_working_day=schedule.is_working_day,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        break_start_time=schedule.break_start_time,
        break_end_time=schedule.break_end_time,
        notes=schedule.notes,
    )


RESOLUTION_STRATEGIES: tuple[SourceStrategy, ...] = (
    _from_daily_exception,
    _from_weekly_template,
    _from_regular_schedule,
)


def _validate_employee_id(employee_id: int) -> int:
    if isinstance(employee_id, bool) or not isinstance(employee_id, int) or employee_id <= 0:
        raise ValidationError("employee_id must be a positive integer")
    return employee_id


def resolve_source(db: Session, *, employee_id: int, day: date) -> ResolvedSource | None:
    _validate_employee_id(employee_id)
    for strategy in RESOLUTION_STRATEGIES:
        resolved = strategy(db, employee_id, day)
        if resolved is not None:
            return resolved
    return None


def resolve(db: Session, *, employee_id: int, day: date | str) -> EffectiveSchedule:
    target = parse_iso_date(day)
    resolved = resolve_source(db, employee_id=employee_id, day=target)
    if resolved is None:
        return EffectiveSchedule(
            date=target,
            day_of_week=day_of_week(target),
            type="no_schedule",
            source="none",
            source_id=None,
            is_working_day=False,
            start_time=None,
            end_time=None,
            break_start_time=None,
            break_end_time=None,
            notes=NO_SCHEDULE_NOTE,
        )
    return EffectiveSchedule(
        date=target,
        day_of_week=day_of_week(target),
        type=resolved.type,
        source=resolved.source,
        source_id=resolved.parent.id,
        is_working_day=resolved.is_working_day,
        start_time=resolved.start_time,
        end_time=resolved.end_time,
        break_start_time=resolved.break_start_time,
        break_end_time=resolved.break_end_time,
        notes=resolved.notes,
        reason=resolved.reason,
        week_notes=resolved.week_notes,
    )


def resolve_range(
    db: Session,
    *,
    employee_id: int,
    start_date: date | str,
    end_date: date | str,
) -> list[EffectiveSchedule]:
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    return [resolve(db, employee_id=employee_id, day=day) for day in iter_days(start, end)]


def effective_breaks(db: Session, *, employee_id: int, day: date | str) -> EffectiveBreaks:
    target = parse_iso_date(day)
    resolved = resolve_source(db, employee_id=employee_id, day=target)
    if resolved is None:
        return EffectiveBreaks(
            date=target,
            source="none",
            source_id=None,
            work_start_time=None,
            work_end_time=None,
            is_working_day=False,
        )
    return EffectiveBreaks(
        date=target,
        source=resolved.type,
        source_id=resolved.parent.id,
        work_start_time=resolved.start_time,
        work_end_time=resolved.end_time,
        is_working_day=resolved.is_working_day,
        breaks=list_breaks_for_parent(db, resolved.parent),
    )
