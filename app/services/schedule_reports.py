from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.errors import ApiError
from app.models import DailyScheduleException, ScheduleTemplate, WeeklyScheduleAssignment
from app.services.break_math import calculate_total_break_time
from app.services.calendar_weeks import day_of_week, iter_days, parse_iso_date, weeks_in_year
from app.services.persistence import ensure_employee_exists
from app.services.schedule_resolver import effective_breaks
from app.services.time_windows import format_hhmm
from app.services.work_time import WorkTimeStats, calculate_effective_work_time


@dataclass(frozen=True, slots=True)
class TemplateUsage:
    template_id: int
    template_name: str
    weeks_used: int


@dataclass(frozen=True)
class SchedulingStats:
    year: int
    total_weeks: int
    scheduled_weeks: int
    unscheduled_weeks: int
    scheduled_weeks_percentage: float
    daily_exceptions: int
    templates_used: int
    template_usage: list[TemplateUsage] = field(default_factory=list)


@dataclass(frozen=True)
class BreakReportDay:
    date: date
    day_of_week: int
    is_working_day: bool
    source: str
    work_hours: str | None
    breaks_count: int
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int
    work_time: WorkTimeStats | None


@dataclass(frozen=True)
class BreakReportSummary:
    total_days: int
    working_days: int
    total_breaks: int
    total_break_minutes: int
    total_paid_break_minutes: int
    total_unpaid_break_minutes: int
    total_effective_work_minutes: int
    average_breaks_per_day: float
    average_break_minutes_per_day: float
    total_break_hours: float
    total_paid_break_hours: float
    total_unpaid_break_hours: float


@dataclass(frozen=True)
class BreakReport:
    employee_id: int
    employee_name: str
    start_date: date
    end_date: date
    days: list[BreakReportDay]
    summary: BreakReportSummary


def get_scheduling_stats(db: Session, *, employee_id: int, year: int) -> SchedulingStats:
    ensure_employee_exists(db, employee_id)
    total_weeks = weeks_in_year(year)

    scheduled_weeks = int(
        db.scalar(
            select(func.count(WeeklyScheduleAssignment.id)).where(
                WeeklyScheduleAssignment.employee_id == employee_id,
                WeeklyScheduleAssignment.year == year,
            )
        )
        or 0
    )
    daily_exceptions = int(
        db.scalar(
            select(func.count(DailyScheduleException.id)).where(
                DailyScheduleException.employee_id == employee_id,
                DailyScheduleException.date >= date(year, 1, 1),
                DailyScheduleException.date <= date(year, 12, 31),
                DailyScheduleException.is_active.is_(True),
            )
        )
        or 0
    )
    usage_rows = db.execute(
        select(
            ScheduleTemplate.id,
            ScheduleTemplate.name,
            func.count(WeeklyScheduleAssignment.id),
        )
        .select_from(WeeklyScheduleAssignment)
        .join(ScheduleTemplate, ScheduleTemplate.id == WeeklyScheduleAssignment.template_id)
        .where(
            WeeklyScheduleAssignment.employee_id == employee_id,
            WeeklyScheduleAssignment.year == year,
        )
        .group_by(ScheduleTemplate.id, ScheduleTemplate.name)
        .order_by(func.count(WeeklyScheduleAssignment.id).desc(), ScheduleTemplate.name.asc())
    ).all()
    template_usage = [
        TemplateUsage(template_id=template_id, template_name=name, weeks_used=int(weeks_used))
        for template_id, name, weeks_used in usage_rows
    ]

    return SchedulingStats(
        year=year,
        total_weeks=total_weeks,
        scheduled_weeks=scheduled_weeks,
        unscheduled_weeks=total_weeks - scheduled_weeks,
        scheduled_weeks_percentage=round(scheduled_weeks / total_weeks * 100, 1),
        daily_exceptions=daily_exceptions,
        templates_used=len(template_usage),
        template_usage=template_usage,
    )


def generate_break_report(
    db: Session,
    *,
    employee_id: int,
    start_date: date | str,
    end_date: date | str,
) -> BreakReport:
    employee = ensure_employee_exists(db, employee_id)
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)

    days: list[BreakReportDay] = []
    working_days = 0
    total_breaks = 0
    total_minutes = 0
    paid_minutes = 0
    unpaid_minutes = 0
    effective_minutes = 0

    for day in iter_days(start, end):
        day_breaks = effective_breaks(db, employee_id=employee_id, day=day)
        if not day_breaks.is_working_day:
            days.append(
                BreakReportDay(
                    date=day,
                    day_of_week=day_of_week(day),
                    is_working_day=False,
                    source=day_breaks.source,
                    work_hours=None,
                    breaks_count=0,
                    total_break_minutes=0,
                    paid_break_minutes=0,
                    unpaid_break_minutes=0,
                    work_time=None,
                )
            )
            continue

        totals = calculate_total_break_time(day_breaks.breaks)
        work_time = calculate_effective_work_time(
            day_breaks.work_start_time,
            day_breaks.work_end_time,
            day_breaks.breaks,
        )
        working_days += 1
        total_breaks += len(day_breaks.breaks)
        total_minutes += totals.total
        paid_minutes += totals.paid
        unpaid_minutes += totals.unpaid
        if work_time is not None:
            effective_minutes += work_time.effective_work_minutes

        days.append(
            BreakReportDay(
                date=day,
                day_of_week=day_of_week(day),
                is_working_day=True,
                source=day_breaks.source,
                work_hours=f"{format_hhmm(day_breaks.work_start_time)} - {format_hhmm(day_breaks.work_end_time)}",
                breaks_count=len(day_breaks.breaks),
                total_break_minutes=totals.total,
                paid_break_minutes=totals.paid,
                unpaid_break_minutes=totals.unpaid,
                work_time=work_time,
            )
        )

    summary = BreakReportSummary(
        total_days=len(days),
        working_days=working_days,
        total_breaks=total_breaks,
        total_break_minutes=total_minutes,
        total_paid_break_minutes=paid_minutes,
        total_unpaid_break_minutes=unpaid_minutes,
        total_effective_work_minutes=effective_minutes,
        average_breaks_per_day=round(total_breaks / working_days, 2) if working_days else 0.0,
        average_break_minutes_per_day=round(total_minutes / working_days, 2) if working_days else 0.0,
        total_break_hours=round(total_minutes / 60, 2),
        total_paid_break_hours=round(paid_minutes / 60, 2),
        total_unpaid_break_hours=round(unpaid_minutes / 60, 2),
    )
    return BreakReport(
        employee_id=employee.id,
        employee_name=employee.full_name,
        start_date=start,
        end_date=end,
        days=days,
        summary=summary,
    )


@dataclass(frozen=True)
class EmployeeBreakStats:
    employee_id: int
    employee_name: str | None = None
    employee_code: str | None = None
    is_working_day: bool = False
    source: str | None = None
    breaks_count: int = 0
    work_time: WorkTimeStats | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class EmployeeBreakStatsSummary:
    total_employees: int
    working_employees: int
    total_breaks: int
    average_breaks_per_employee: float
    average_effective_hours: float


@dataclass(frozen=True)
class EmployeesBreakStats:
    date: date
    stats: list[EmployeeBreakStats]
    summary: EmployeeBreakStatsSummary


@dataclass(frozen=True, slots=True)
class YearCalendarStats:
    total_weeks: int
    scheduled_weeks: int
    unscheduled_weeks: int
    daily_exceptions: int
    templates_used: int


@dataclass(frozen=True)
class YearCalendar:
    employee_id: int
    employee_name: str
    employee_code: str | None
    year: int
    weekly_assignments: list[WeeklyScheduleAssignment]
    daily_exceptions: list[DailyScheduleException]
    stats: YearCalendarStats


def get_employees_break_stats(db: Session, *, employee_ids: Sequence[int], day: date | str) -> EmployeesBreakStats:
    target = parse_iso_date(day)
    stats: list[EmployeeBreakStats] = []

    for employee_id in employee_ids:
        try:
            employee = ensure_employee_exists(db, employee_id)
        except ApiError as exc:
            stats.append(EmployeeBreakStats(employee_id=employee_id, error=exc.message))
            continue

        day_breaks = effective_breaks(db, employee_id=employee_id, day=target)
        work_time = None
        if day_breaks.is_working_day:
            work_time = calculate_effective_work_time(
                day_breaks.work_start_time,
                day_breaks.work_end_time,
                day_breaks.breaks,
            )
        stats.append(
            EmployeeBreakStats(
                employee_id=employee.id,
                employee_name=employee.full_name,
                employee_code=employee.employee_code,
                is_working_day=day_breaks.is_working_day,
                source=day_breaks.source,
                breaks_count=len(day_breaks.breaks),
                work_time=work_time,
            )
        )

    working = [item for item in stats if item.error is None and item.is_working_day]
    total_breaks = sum(item.breaks_count for item in working)
    effective_hours = sum(item.work_time.effective_hours for item in working if item.work_time is not None)
    summary = EmployeeBreakStatsSummary(
        total_employees=len(employee_ids),
        working_employees=len(working),
        total_breaks=total_breaks,
        average_breaks_per_employee=round(total_breaks / len(working), 2) if working else 0.0,
        average_effective_hours=round(effective_hours / len(working), 2) if working else 0.0,
    )
    return EmployeesBreakStats(date=target, stats=stats, summary=summary)


def get_year_calendar(db: Session, *, employee_id: int, year: int) -> YearCalendar:
    employee = ensure_employee_exists(db, employee_id)
    assignments = list(
        db.scalars(
            select(WeeklyScheduleAssignment)
            .options(selectinload(WeeklyScheduleAssignment.template))
            .where(
                WeeklyScheduleAssignment.employee_id == employee_id,
                WeeklyScheduleAssignment.year == year,
            )
            .order_by(WeeklyScheduleAssignment.week_number.asc())
        ).all()
    )
    exceptions = list(
        db.scalars(
            select(DailyScheduleException)
            .where(
                DailyScheduleException.employee_id == employee_id,
                DailyScheduleException.date >= date(year, 1, 1),
                DailyScheduleException.date <= date(year, 12, 31),
                DailyScheduleException.is_active.is_(True),
            )
            .order_by(DailyScheduleException.date.asc())
        ).all()
    )

    total_weeks = weeks_in_year(year)
    stats = YearCalendarStats(
        total_weeks=total_weeks,
        scheduled_weeks=len(assignments),
        unscheduled_weeks=total_weeks - len(assignments),
        daily_exceptions=len(exceptions),
        templates_used=len({item.template_id for item in assignments if item.template_id is not None}),
    )
    return YearCalendar(
        employee_id=employee.id,
        employee_name=employee.full_name,
        employee_code=employee.employee_code,
        year=year,
        weekly_assignments=assignments,
        daily_exceptions=exceptions,
        stats=stats,
    )
