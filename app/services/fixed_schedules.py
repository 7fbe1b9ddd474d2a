from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.models import BreakParentType, FixedSchedule
from app.schemas import FixedScheduleUpsert
from app.services.calendar_weeks import validate_day_of_week
from app.services.persistence import commit_or_conflict, ensure_employee_exists
from app.services.schedule_breaks import delete_breaks_for_parents
from app.services.time_windows import ensure_window


def upsert_fixed_schedule(
    db: Session,
    *,
    employee_id: int,
    day_of_week: int,
    payload: FixedScheduleUpsert,
) -> FixedSchedule:
    ensure_employee_exists(db, employee_id)
    validate_day_of_week(day_of_week)
    if payload.is_working_day:
        ensure_window(payload.start_time, payload.end_time)
        if payload.break_start_time is not None or payload.break_end_time is not None:
            ensure_window(payload.break_start_time, payload.break_end_time, label="Break")

    schedule = db.scalar(
        select(FixedSchedule).where(
            FixedSchedule.employee_id == employee_id,
            FixedSchedule.day_of_week == day_of_week,
        )
    )
    if schedule is None:
        schedule = FixedSchedule(employee_id=employee_id, day_of_week=day_of_week)
        db.add(schedule)

    schedule.is_working_day = payload.is_working_day
    schedule.start_time = payload.start_time
    schedule.end_time = payload.end_time
    schedule.break_start_time = payload.break_start_time
    schedule.break_end_time = payload.break_end_time
    schedule.notes = payload.notes

    commit_or_conflict(db, f"A fixed schedule already exists for day {day_of_week}")
    db.refresh(schedule)
    return schedule


def get_fixed_schedule(db: Session, schedule_id: int) -> FixedSchedule:
    schedule = db.get(FixedSchedule, schedule_id)
    if schedule is None:
        raise NotFoundError(f"Schedule {schedule_id} not found")
    return schedule


def delete_fixed_schedule(db: Session, schedule_id: int) -> None:
    schedule = get_fixed_schedule(db, schedule_id)
    delete_breaks_for_parents(db, BreakParentType.SCHEDULE, [schedule.id])
    db.delete(schedule)
    db.commit()


def list_fixed_schedules(db: Session, *, employee_id: int) -> list[FixedSchedule]:
    ensure_employee_exists(db, employee_id)
    return list(
        db.scalars(
            select(FixedSchedule)
            .where(FixedSchedule.employee_id == employee_id)
            .order_by(FixedSchedule.day_of_week.asc())
        ).all()
    )
