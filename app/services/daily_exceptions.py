from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ApiError, ConflictError, NotFoundError, ValidationError
from app.models import BreakParentType, DailyScheduleException, ExceptionType
from app.schemas import DailyExceptionCreate, HolidayInput
from app.services.bulk_results import BulkSummary, UnitError
from app.services.persistence import commit_or_conflict, ensure_employee_exists
from app.services.schedule_breaks import delete_breaks_for_parents
from app.services.time_windows import ensure_window

logger = logging.getLogger("app.scheduling")

EXCEPTION_TYPE_REQUIRES_HOURS: dict[ExceptionType, bool] = {
    ExceptionType.CUSTOM_HOURS: True,
    ExceptionType.DAY_OFF: False,
    ExceptionType.HOLIDAY: False,
    ExceptionType.VACATION: False,
    ExceptionType.SICK_LEAVE: False,
    ExceptionType.SPECIAL_EVENT: True,
}

EXCEPTION_TYPE_LABELS: dict[ExceptionType, str] = {
    ExceptionType.CUSTOM_HOURS: "Horario Personalizado",
    ExceptionType.DAY_OFF: "Día Libre",
    ExceptionType.HOLIDAY: "Día Festivo",
    ExceptionType.VACATION: "Vacaciones",
    ExceptionType.SICK_LEAVE: "Baja Médica",
    ExceptionType.SPECIAL_EVENT: "Evento Especial",
}


@dataclass(frozen=True, slots=True)
class HolidayCreated:
    employee_id: int
    date: date
    exception_id: int
    reason: str | None


@dataclass(frozen=True)
class HolidayBulkResult:
    summary: BulkSummary
    results: list[HolidayCreated] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)


def _apply_type_rules(exception: DailyScheduleException, payload: DailyExceptionCreate) -> None:
    requires_hours = EXCEPTION_TYPE_REQUIRES_HOURS[payload.exception_type]
    is_working_day = requires_hours if payload.is_working_day is None else payload.is_working_day
    if not requires_hours:
        is_working_day = False

    exception.exception_type = payload.exception_type
    exception.is_working_day = is_working_day
    exception.reason = payload.reason
    exception.notes = payload.notes

    if not is_working_day:
        exception.start_time = None
        exception.end_time = None
        exception.break_start_time = None
        exception.break_end_time = None
        return

    ensure_window(payload.start_time, payload.end_time, label="Exception")
    if payload.break_start_time is not None or payload.break_end_time is not None:
        ensure_window(payload.break_start_time, payload.break_end_time, label="Break")
    exception.start_time = payload.start_time
    exception.end_time = payload.end_time
    exception.break_start_time = payload.break_start_time
    exception.break_end_time = payload.break_end_time


def create_daily_exception(
    db: Session,
    *,
    employee_id: int,
    payload: DailyExceptionCreate,
    created_by: int | None = None,
) -> DailyScheduleException:
    ensure_employee_exists(db, employee_id)
    existing_id = db.scalar(
        select(DailyScheduleException.id).where(
            DailyScheduleException.employee_id == employee_id,
            DailyScheduleException.date == payload.date,
        )
    )
    if existing_id is not None:
        raise ConflictError(f"An exception already exists for {payload.date.isoformat()}")

    exception = DailyScheduleException(
        employee_id=employee_id,
        date=payload.date,
        is_active=True,
        created_by=created_by,
    )
    _apply_type_rules(exception, payload)
    db.add(exception)
    commit_or_conflict(db, f"An exception already exists for {payload.date.isoformat()}")
    db.refresh(exception)
    return exception


def get_daily_exception(db: Session, exception_id: int) -> DailyScheduleException:
    exception = db.get(DailyScheduleException, exception_id)
    if exception is None:
        raise NotFoundError(f"Daily exception {exception_id} not found")
    return exception


def update_daily_exception(
    db: Session,
    exception_id: int,
    payload: DailyExceptionCreate,
) -> DailyScheduleException:
    exception = get_daily_exception(db, exception_id)
    if payload.date != exception.date:
        clash = db.scalar(
            select(DailyScheduleException.id).where(
                DailyScheduleException.employee_id == exception.employee_id,
                DailyScheduleException.date == payload.date,
                DailyScheduleException.id != exception.id,
            )
        )
        if clash is not None:
            raise ConflictError(f"An exception already exists for {payload.date.isoformat()}")
        exception.date = payload.date
    _apply_type_rules(exception, payload)
    commit_or_conflict(db, f"An exception already exists for {payload.date.isoformat()}")
    db.refresh(exception)
    return exception


def approve_daily_exception(
    db: Session,
    exception_id: int,
    *,
    approved_by: int,
    now: datetime | None = None,
) -> DailyScheduleException:
    exception = get_daily_exception(db, exception_id)
    if exception.is_approved:
        raise ConflictError(f"Daily exception {exception_id} is already approved")
    approver = ensure_employee_exists(db, approved_by)
    exception.approved_by = approver.id
    exception.approved_at = now or datetime.now(timezone.utc)
    db.commit()
    db.refresh(exception)
    return exception


def deactivate_daily_exception(db: Session, exception_id: int) -> DailyScheduleException:
    exception = get_daily_exception(db, exception_id)
    exception.is_active = False
    db.commit()
    db.refresh(exception)
    return exception


def delete_daily_exception(db: Session, exception_id: int) -> None:
    exception = get_daily_exception(db, exception_id)
    delete_breaks_for_parents(db, BreakParentType.DAILY_EXCEPTION, [exception.id])
    db.delete(exception)
    db.commit()


def list_daily_exceptions(
    db: Session,
    *,
    employee_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    include_inactive: bool = False,
) -> list[DailyScheduleException]:
    ensure_employee_exists(db, employee_id)
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    stmt = select(DailyScheduleException).where(DailyScheduleException.employee_id == employee_id)
    if start_date is not None:
        stmt = stmt.where(DailyScheduleException.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(DailyScheduleException.date <= end_date)
    if not include_inactive:
        stmt = stmt.where(DailyScheduleException.is_active.is_(True))
    return list(db.scalars(stmt.order_by(DailyScheduleException.date.asc())).all())


def create_holiday_exceptions(
    db: Session,
    *,
    employee_ids: Sequence[int],
    holidays: Sequence[HolidayInput],
    created_by: int | None = None,
) -> HolidayBulkResult:
    """One non-working holiday exception per (employee, holiday) pair."""
    results: list[HolidayCreated] = []
    errors: list[UnitError] = []

    for employee_id in employee_ids:
        try:
            ensure_employee_exists(db, employee_id)
        except ApiError as exc:
            for holiday in holidays:
                errors.append(
                    UnitError(unit=f"{employee_id}:{holiday.date.isoformat()}", error=exc.message, code=exc.code)
                )
            continue

        for holiday in holidays:
            unit = f"{employee_id}:{holiday.date.isoformat()}"
            payload = DailyExceptionCreate(
                date=holiday.date,
                exception_type=ExceptionType.HOLIDAY,
                is_working_day=False,
                reason=holiday.reason,
                notes=holiday.notes,
            )
            try:
                exception = create_daily_exception(
                    db,
                    employee_id=employee_id,
                    payload=payload,
                    created_by=created_by,
                )
            except ApiError as exc:
                errors.append(UnitError(unit=unit, error=exc.message, code=exc.code))
                continue
            except SQLAlchemyError as exc:
                db.rollback()
                errors.append(UnitError(unit=unit, error=str(exc.__class__.__name__), code="STORAGE_ERROR"))
                continue
            results.append(
                HolidayCreated(
                    employee_id=employee_id,
                    date=holiday.date,
                    exception_id=exception.id,
                    reason=holiday.reason,
                )
            )

    summary = BulkSummary(
        total=len(employee_ids) * len(holidays),
        successful=len(results),
        failed=len(errors),
    )
    logger.info(
        "holiday_exceptions_created",
        extra={
            "employee_count": len(employee_ids),
            "holiday_count": len(holidays),
            "successful": summary.successful,
            "failed": summary.failed,
        },
    )
    return HolidayBulkResult(summary=summary, results=results, errors=errors)
