from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ApiError
from app.models import WeeklyScheduleAssignment
from app.schemas import ScheduleBreakInput
from app.services.break_parents import ScheduleParent, TemplateDayParent, load_parent
from app.services.break_validation import validate_breaks_for_parent
from app.services.bulk_results import BulkSummary, UnitError
from app.services.calendar_weeks import weeks_in_year
from app.services.fixed_schedules import list_fixed_schedules
from app.services.persistence import ensure_employee_exists
from app.services.schedule_breaks import (
    break_input_from_row,
    default_breaks,
    list_breaks_for_parent,
    replace_breaks_for_parent,
)
from app.services.schedule_templates import get_template, get_template_day
from app.services.weekly_assignments import upsert_weekly_assignment
from app.settings import get_settings

logger = logging.getLogger("app.scheduling")


@dataclass(frozen=True)
class PlanifyYearOptions:
    skip_existing_weeks: bool = False
    specific_weeks: Sequence[int] | None = None
    exclude_weeks: Sequence[int] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class PlannedWeek:
    week_number: int
    action: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class PlanifyYearResult:
    template_id: int
    template_name: str
    summary: BulkSummary
    results: list[PlannedWeek] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AppliedSchedule:
    schedule_id: int
    success: bool
    breaks_applied: int = 0
    error: str | None = None


@dataclass(frozen=True)
class ApplyTemplateBreaksResult:
    message: str
    summary: BulkSummary
    results: list[AppliedSchedule] = field(default_factory=list)


def _target_weeks(year: int, options: PlanifyYearOptions) -> list[int]:
    if options.specific_weeks is not None:
        candidates = list(dict.fromkeys(options.specific_weeks))
    else:
        candidates = list(range(1, weeks_in_year(year) + 1))
    return candidates


def _assignment_exists(db: Session, *, employee_id: int, year: int, week_number: int) -> bool:
    return (
        db.scalar(
            select(WeeklyScheduleAssignment.id).where(
                WeeklyScheduleAssignment.employee_id == employee_id,
                WeeklyScheduleAssignment.year == year,
                WeeklyScheduleAssignment.week_number == week_number,
            )
        )
        is not None
    )


def planify_year_with_template(
    db: Session,
    *,
    employee_id: int,
    year: int,
    template_id: int,
    created_by: int | None,
    options: PlanifyYearOptions | None = None,
) -> PlanifyYearResult:
    """Assign one template to many weeks of a year, committing each week on its own."""
    options = options or PlanifyYearOptions()
    ensure_employee_exists(db, employee_id)
    template = get_template(db, template_id, active_only=True)
    notes = options.notes or f"{get_settings().planner_default_notes_prefix}: {template.name}"

    weeks = _target_weeks(year, options)
    excluded = set(options.exclude_weeks)
    results: list[PlannedWeek] = []
    errors: list[UnitError] = []
    skipped = 0

    for week in weeks:
        if week in excluded:
            skipped += 1
            continue
        if options.skip_existing_weeks and _assignment_exists(db, employee_id=employee_id, year=year, week_number=week):
            skipped += 1
            continue
        try:
            assignment, created = upsert_weekly_assignment(
                db,
                employee_id=employee_id,
                year=year,
                week_number=week,
                template_id=template.id,
                notes=notes,
                created_by=created_by,
            )
        except ApiError as exc:
            db.rollback()
            errors.append(UnitError(unit=str(week), error=exc.message, code=exc.code))
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "planify_week_failed",
                extra={"employee_id": employee_id, "year": year, "week_number": week, "error": str(exc)},
            )
            errors.append(UnitError(unit=str(week), error="Storage error while saving the week", code="STORAGE_ERROR"))
            continue

        results.append(
            PlannedWeek(
                week_number=week,
                action="created" if created else "updated",
                start_date=assignment.start_date,
                end_date=assignment.end_date,
            )
        )

    summary = BulkSummary(
        total=len(weeks),
        successful=len(results),
        failed=len(errors),
        skipped=skipped,
    )
    logger.info(
        "planify_year_completed",
        extra={
            "employee_id": employee_id,
            "year": year,
            "template_id": template.id,
            "total": summary.total,
            "successful": summary.successful,
            "failed": summary.failed,
            "skipped": summary.skipped,
        },
    )
    return PlanifyYearResult(
        template_id=template.id,
        template_name=template.name,
        summary=summary,
        results=results,
        errors=errors,
    )


def apply_template_breaks_to_schedules(
    db: Session,
    *,
    template_day_id: int,
    schedule_ids: Sequence[int],
    created_by: int | None,
) -> ApplyTemplateBreaksResult:
    get_template_day(db, template_day_id)
    template_parent = TemplateDayParent(id=template_day_id)
    template_breaks = [break_input_from_row(row) for row in list_breaks_for_parent(db, template_parent)]
    if not template_breaks:
        return ApplyTemplateBreaksResult(
            message="No breaks found in template",
            summary=BulkSummary(total=len(schedule_ids), successful=0, failed=0, skipped=len(schedule_ids)),
        )

    results: list[AppliedSchedule] = []
    for schedule_id in schedule_ids:
        parent = ScheduleParent(id=schedule_id)
        try:
            load_parent(db, parent)
            replace_breaks_for_parent(db, parent=parent, breaks=template_breaks, created_by=created_by)
        except ApiError as exc:
            results.append(AppliedSchedule(schedule_id=schedule_id, success=False, error=exc.message))
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "template_breaks_schedule_failed",
                extra={"template_day_id": template_day_id, "schedule_id": schedule_id, "error": str(exc)},
            )
            results.append(
                AppliedSchedule(schedule_id=schedule_id, success=False, error="Storage error while saving breaks")
            )
            continue
        results.append(AppliedSchedule(schedule_id=schedule_id, success=True, breaks_applied=len(template_breaks)))

    successful = sum(1 for item in results if item.success)
    summary = BulkSummary(total=len(schedule_ids), successful=successful, failed=len(results) - successful)
    logger.info(
        "template_breaks_applied",
        extra={
            "template_day_id": template_day_id,
            "breaks": len(template_breaks),
            "successful": summary.successful,
            "failed": summary.failed,
        },
    )
    return ApplyTemplateBreaksResult(
        message=f"Template breaks applied to {summary.successful} of {summary.total} schedules",
        summary=summary,
        results=results,
    )


@dataclass(frozen=True, slots=True)
class WeekPlan:
    week_number: int
    template_id: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class WeeklyBulkResult:
    message: str
    summary: BulkSummary
    results: list[PlannedWeek] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)


@dataclass(frozen=True)
class CopyTemplateResult:
    message: str
    template_id: int
    template_name: str
    summary: BulkSummary
    results: list[PlannedWeek] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class EmployeeBreaksApplied:
    employee_id: int
    success: bool
    employee_name: str | None = None
    schedules_processed: int = 0
    breaks_applied: int = 0
    error: str | None = None


@dataclass(frozen=True)
class StandardBreaksResult:
    message: str
    summary: BulkSummary
    results: list[EmployeeBreaksApplied] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)


def bulk_assign_weeks(
    db: Session,
    *,
    employee_id: int,
    year: int,
    weeks: Sequence[WeekPlan],
    created_by: int | None,
) -> WeeklyBulkResult:
    ensure_employee_exists(db, employee_id)
    if created_by is not None:
        ensure_employee_exists(db, created_by)

    results: list[PlannedWeek] = []
    errors: list[UnitError] = []

    for plan in weeks:
        unit = str(plan.week_number)
        try:
            if plan.template_id is not None:
                get_template(db, plan.template_id, active_only=True)
            assignment, created = upsert_weekly_assignment(
                db,
                employee_id=employee_id,
                year=year,
                week_number=plan.week_number,
                template_id=plan.template_id,
                notes=plan.notes,
                created_by=created_by,
            )
        except ApiError as exc:
            db.rollback()
            errors.append(UnitError(unit=unit, error=exc.message, code=exc.code))
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "bulk_week_failed",
                extra={"employee_id": employee_id, "year": year, "week_number": plan.week_number, "error": str(exc)},
            )
            errors.append(UnitError(unit=unit, error="Storage error while saving the week", code="STORAGE_ERROR"))
            continue

        results.append(
            PlannedWeek(
                week_number=plan.week_number,
                action="created" if created else "updated",
                start_date=assignment.start_date,
                end_date=assignment.end_date,
            )
        )

    summary = BulkSummary(total=len(weeks), successful=len(results), failed=len(errors))
    logger.info(
        "weekly_bulk_completed",
        extra={
            "employee_id": employee_id,
            "year": year,
            "successful": summary.successful,
            "failed": summary.failed,
        },
    )
    return WeeklyBulkResult(
        message=(
            f"Bulk operation completed. {summary.successful} weeks processed successfully, {summary.failed} errors"
        ),
        summary=summary,
        results=results,
        errors=errors,
    )


def copy_template_to_weeks(
    db: Session,
    *,
    employee_id: int,
    template_id: int,
    year: int,
    week_numbers: Sequence[int],
    created_by: int | None,
) -> CopyTemplateResult:
    template = get_template(db, template_id, active_only=True)
    planned = planify_year_with_template(
        db,
        employee_id=employee_id,
        year=year,
        template_id=template.id,
        created_by=created_by,
        options=PlanifyYearOptions(specific_weeks=week_numbers, notes=f"Applied template: {template.name}"),
    )
    return CopyTemplateResult(
        message=f'Template "{template.name}" applied to {planned.summary.successful} weeks successfully',
        template_id=planned.template_id,
        template_name=planned.template_name,
        summary=planned.summary,
        results=planned.results,
        errors=planned.errors,
    )


def create_standard_breaks_for_employees(
    db: Session,
    *,
    employee_ids: Sequence[int],
    created_by: int | None,
    breaks: Sequence[ScheduleBreakInput] | None = None,
    work_start: time = time(9, 0),
    work_end: time = time(17, 0),
) -> StandardBreaksResult:
    """Copy one break set onto every working fixed schedule of each employee.

    Schedules without their own hours are checked against ``work_start``/``work_end``.
    A schedule whose hours reject the set keeps its current breaks and is listed in ``errors``.
    """
    break_set = list(breaks) if breaks is not None else default_breaks()
    if not break_set:
        return StandardBreaksResult(
            message="No breaks template provided",
            summary=BulkSummary(total=len(employee_ids), successful=0, failed=0, skipped=len(employee_ids)),
        )

    results: list[EmployeeBreaksApplied] = []
    errors: list[UnitError] = []

    for employee_id in employee_ids:
        try:
            employee = ensure_employee_exists(db, employee_id)
        except ApiError as exc:
            results.append(EmployeeBreaksApplied(employee_id=employee_id, success=False, error=exc.message))
            errors.append(UnitError(unit=str(employee_id), error=exc.message, code=exc.code))
            continue

        schedules = list_fixed_schedules(db, employee_id=employee_id)
        applied = 0
        for schedule in schedules:
            if not schedule.is_working_day:
                continue
            parent = ScheduleParent(id=schedule.id)
            unit = f"{employee_id}:{schedule.id}"
            validation = validate_breaks_for_parent(
                parent,
                break_set,
                schedule.start_time or work_start,
                schedule.end_time or work_end,
            )
            if not validation.is_valid:
                errors.append(
                    UnitError(
                        unit=unit,
                        error="; ".join(issue.message for issue in validation.errors),
                        code="VALIDATION_ERROR",
                    )
                )
                continue
            try:
                replace_breaks_for_parent(db, parent=parent, breaks=break_set, created_by=created_by)
            except ApiError as exc:
                errors.append(UnitError(unit=unit, error=exc.message, code=exc.code))
                continue
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning(
                    "standard_breaks_schedule_failed",
                    extra={"employee_id": employee_id, "schedule_id": schedule.id, "error": str(exc)},
                )
                errors.append(UnitError(unit=unit, error="Storage error while saving breaks", code="STORAGE_ERROR"))
                continue
            applied += 1

        results.append(
            EmployeeBreaksApplied(
                employee_id=employee_id,
                success=True,
                employee_name=employee.full_name,
                schedules_processed=len(schedules),
                breaks_applied=applied,
            )
        )

    successful = sum(1 for item in results if item.success)
    summary = BulkSummary(total=len(employee_ids), successful=successful, failed=len(employee_ids) - successful)
    logger.info(
        "standard_breaks_applied",
        extra={
            "employee_count": len(employee_ids),
            "breaks": len(break_set),
            "successful": summary.successful,
            "failed": summary.failed,
            "schedule_errors": len(errors) - summary.failed,
        },
    )
    return StandardBreaksResult(
        message=f"Standard breaks applied to {summary.successful}/{summary.total} employees",
        summary=summary,
        results=results,
        errors=errors,
    )
