from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import BreakParentType, ScheduleTemplate, ScheduleTemplateDay, WeeklyScheduleAssignment
from app.schemas import ScheduleTemplateCreate, ScheduleTemplateUpdate, TemplateDayInput
from app.services.persistence import commit_or_conflict
from app.services.schedule_breaks import delete_breaks_for_parents
from app.services.time_windows import ensure_window


def _validate_days(days: list[TemplateDayInput]) -> None:
    seen: set[int] = set()
    for day in days:
        if day.day_of_week in seen:
            raise ValidationError(f"Template defines day_of_week {day.day_of_week} more than once")
        seen.add(day.day_of_week)
        if day.is_working_day:
            ensure_window(day.start_time, day.end_time, label=f"Template day {day.day_of_week}")


def _build_day(day: TemplateDayInput) -> ScheduleTemplateDay:
    return ScheduleTemplateDay(
        day_of_week=day.day_of_week,
        is_working_day=day.is_working_day,
        start_time=day.start_time,
        end_time=day.end_time,
        break_start_time=day.break_start_time,
        break_end_time=day.break_end_time,
        notes=day.notes,
    )


def _ensure_name_available(db: Session, name: str, *, exclude_id: int | None = None) -> None:
    stmt = select(ScheduleTemplate.id).where(ScheduleTemplate.name == name)
    if exclude_id is not None:
        stmt = stmt.where(ScheduleTemplate.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError(f"Template name {name!r} already exists")


def create_template(db: Session, payload: ScheduleTemplateCreate) -> ScheduleTemplate:
    name = payload.name.strip()
    _validate_days(payload.days)
    _ensure_name_available(db, name)

    template = ScheduleTemplate(
        name=name,
        description=payload.description,
        created_by=payload.created_by,
        is_active=True,
    )
    template.days = [_build_day(day) for day in payload.days]
    db.add(template)
    commit_or_conflict(db, f"Template name {name!r} already exists")
    db.refresh(template)
    return template


def get_template(db: Session, template_id: int, *, active_only: bool = False) -> ScheduleTemplate:
    stmt = (
        select(ScheduleTemplate)
        .options(selectinload(ScheduleTemplate.days))
        .where(ScheduleTemplate.id == template_id)
    )
    if active_only:
        stmt = stmt.where(ScheduleTemplate.is_active.is_(True))
    template = db.scalar(stmt)
    if template is None:
        suffix = " or inactive" if active_only else ""
        raise NotFoundError(f"Template {template_id} not found{suffix}")
    return template


def list_templates(db: Session, *, active_only: bool = False) -> list[ScheduleTemplate]:
    stmt = select(ScheduleTemplate).options(selectinload(ScheduleTemplate.days)).order_by(ScheduleTemplate.name.asc())
    if active_only:
        stmt = stmt.where(ScheduleTemplate.is_active.is_(True))
    return list(db.scalars(stmt).all())


def update_template(db: Session, template_id: int, payload: ScheduleTemplateUpdate) -> ScheduleTemplate:
    template = get_template(db, template_id)
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_name_available(db, name, exclude_id=template.id)
        template.name = name
    if payload.description is not None:
        template.description = payload.description
    if payload.days is not None:
        _validate_days(payload.days)
        existing_by_day = {day.day_of_week: day for day in template.days}
        incoming_days = {day.day_of_week for day in payload.days}
        # Keep row identity for days that survive so breaks attached to them stay valid.
        for day in payload.days:
            current = existing_by_day.get(day.day_of_week)
            if current is None:
                template.days.append(_build_day(day))
                continue
            current.is_working_day = day.is_working_day
            current.start_time = day.start_time
            current.end_time = day.end_time
            current.break_start_time = day.break_start_time
            current.break_end_time = day.break_end_time
            current.notes = day.notes
        removed_ids = [day.id for day in template.days if day.day_of_week not in incoming_days and day.id is not None]
        delete_breaks_for_parents(db, BreakParentType.TEMPLATE_DAY, removed_ids)
        template.days = [day for day in template.days if day.day_of_week in incoming_days]

    commit_or_conflict(db, "Template name already exists")
    db.refresh(template)
    return template


def set_template_active(db: Session, template_id: int, *, is_active: bool) -> ScheduleTemplate:
    template = get_template(db, template_id)
    template.is_active = is_active
    db.commit()
    db.refresh(template)
    return template


def count_template_assignments(db: Session, template_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(WeeklyScheduleAssignment.id)).where(
                WeeklyScheduleAssignment.template_id == template_id
            )
        )
        or 0
    )


def delete_template(db: Session, template_id: int) -> None:
    template = get_template(db, template_id)
    in_use = count_template_assignments(db, template_id)
    if in_use:
        raise ConflictError(f"Cannot delete template. It is being used by {in_use} weekly schedule(s)")
    delete_breaks_for_parents(db, BreakParentType.TEMPLATE_DAY, [day.id for day in template.days])
    db.delete(template)
    db.commit()


def get_template_day(db: Session, template_day_id: int) -> ScheduleTemplateDay:
    template_day = db.get(ScheduleTemplateDay, template_day_id)
    if template_day is None:
        raise NotFoundError(f"Template day {template_day_id} not found")
    return template_day
