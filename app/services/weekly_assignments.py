from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.errors import NotFoundError
from app.models import ScheduleTemplate, WeeklyScheduleAssignment
from app.services.calendar_weeks import week_dates
from app.services.persistence import commit_or_conflict, ensure_employee_exists


def find_weekly_assignment(
    db: Session,
    *,
    employee_id: int,
    year: int,
    week_number: int,
) -> WeeklyScheduleAssignment | None:
    return db.scalar(
        select(WeeklyScheduleAssignment)
        .options(selectinload(WeeklyScheduleAssignment.template).selectinload(ScheduleTemplate.days))
        .where(
            WeeklyScheduleAssignment.employee_id == employee_id,
            WeeklyScheduleAssignment.year == year,
            WeeklyScheduleAssignment.week_number == week_number,
        )
    )


def upsert_weekly_assignment(
    db: Session,
    *,
    employee_id: int,
    year: int,
    week_number: int,
    template_id: int | None,
    notes: str | None,
    created_by: int | None,
    commit: bool = True,
) -> tuple[WeeklyScheduleAssignment, bool]:
    """Find-or-create the (employee, year, week) row; returns (row, created)."""
    week_range = week_dates(year, week_number)
    assignment = db.scalar(
        select(WeeklyScheduleAssignment).where(
            WeeklyScheduleAssignment.employee_id == employee_id,
            WeeklyScheduleAssignment.year == year,
            WeeklyScheduleAssignment.week_number == week_number,
        )
    )
    created = assignment is None
    if assignment is None:
        assignment = WeeklyScheduleAssignment(
            employee_id=employee_id,
            year=year,
            week_number=week_number,
        )
        db.add(assignment)

    assignment.template_id = template_id
    assignment.start_date = week_range.start_date
    assignment.end_date = week_range.end_date
    assignment.notes = notes
    assignment.created_by = created_by
    assignment.is_active = True

    if commit:
        commit_or_conflict(db, f"A weekly schedule already exists for week {week_number}/{year}")
        db.refresh(assignment)
    return assignment, created


def assign_template_to_week(
    db: Session,
    *,
    employee_id: int,
    year: int,
    week_number: int,
    template_id: int | None,
    notes: str | None = None,
    created_by: int | None = None,
) -> tuple[WeeklyScheduleAssignment, bool]:
    ensure_employee_exists(db, employee_id)
    if template_id is not None:
        template = db.get(ScheduleTemplate, template_id)
        if template is None or not template.is_active:
            raise NotFoundError(f"Template {template_id} not found or inactive")
    return upsert_weekly_assignment(
        db,
        employee_id=employee_id,
        year=year,
        week_number=week_number,
        template_id=template_id,
        notes=notes,
        created_by=created_by,
    )


def get_weekly_assignment(db: Session, assignment_id: int) -> WeeklyScheduleAssignment:
    assignment = db.get(WeeklyScheduleAssignment, assignment_id)
    if assignment is None:
        raise NotFoundError(f"Weekly schedule {assignment_id} not found")
    return assignment


def list_weekly_assignments(db: Session, *, employee_id: int, year: int) -> list[WeeklyScheduleAssignment]:
    ensure_employee_exists(db, employee_id)
    return list(
        db.scalars(
            select(WeeklyScheduleAssignment)
            .where(
                WeeklyScheduleAssignment.employee_id == employee_id,
                WeeklyScheduleAssignment.year == year,
            )
            .order_by(WeeklyScheduleAssignment.week_number.asc())
        ).all()
    )


def delete_weekly_assignment(db: Session, assignment_id: int) -> None:
    assignment = get_weekly_assignment(db, assignment_id)
    db.delete(assignment)
    db.commit()


def delete_weekly_assignment_for_week(db: Session, *, employee_id: int, year: int, week_number: int) -> None:
    assignment = find_weekly_assignment(db, employee_id=employee_id, year=year, week_number=week_number)
    if assignment is None:
        raise NotFoundError(f"No weekly schedule for employee {employee_id} in week {week_number}/{year}")
    db.delete(assignment)
    db.commit()
