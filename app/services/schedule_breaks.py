from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError
from app.models import BreakParentType, BreakType, ScheduleBreak
from app.schemas import ScheduleBreakInput
from app.services.break_math import BREAK_TYPE_DEFAULT_PAID
from app.services.break_parents import ParentRef, load_parent
from app.services.break_validation import validate_breaks_for_parent
from app.services.time_windows import parse_hhmm

logger = logging.getLogger("app.scheduling")


def default_breaks() -> list[ScheduleBreakInput]:
    return [
        ScheduleBreakInput(
            name="Desayuno",
            start_time=parse_hhmm("10:00"),
            end_time=parse_hhmm("10:15"),
            break_type=BreakType.REST,
            is_paid=True,
            sort_order=1,
        ),
        ScheduleBreakInput(
            name="Almuerzo",
            start_time=parse_hhmm("13:00"),
            end_time=parse_hhmm("14:00"),
            break_type=BreakType.MEAL,
            is_paid=False,
            is_required=True,
            sort_order=2,
        ),
        ScheduleBreakInput(
            name="Merienda",
            start_time=parse_hhmm("16:00"),
            end_time=parse_hhmm("16:15"),
            break_type=BreakType.REST,
            is_paid=True,
            sort_order=3,
        ),
    ]


def break_input_from_row(row: ScheduleBreak) -> ScheduleBreakInput:
    return ScheduleBreakInput(
        name=row.name,
        start_time=row.start_time,
        end_time=row.end_time,
        break_type=row.break_type,
        is_paid=row.is_paid,
        is_required=row.is_required,
        duration=row.duration,
        description=row.description,
        is_flexible=row.is_flexible,
        flexibility_minutes=row.flexibility_minutes,
        sort_order=row.sort_order,
    )


def list_breaks_for_parent(db: Session, parent: ParentRef) -> list[ScheduleBreak]:
    return list(
        db.scalars(
            select(ScheduleBreak)
            .where(
                ScheduleBreak.parent_type == parent.parent_type,
                ScheduleBreak.parent_id == parent.id,
                ScheduleBreak.is_active.is_(True),
            )
            .order_by(
                ScheduleBreak.sort_order.asc(),
                ScheduleBreak.start_time.asc(),
                ScheduleBreak.id.asc(),
            )
        ).all()
    )


def _build_break_row(
    parent: ParentRef,
    payload: ScheduleBreakInput,
    *,
    created_by: int | None,
    position: int,
) -> ScheduleBreak:
    is_paid = payload.is_paid
    if is_paid is None:
        is_paid = BREAK_TYPE_DEFAULT_PAID[payload.break_type]
    return ScheduleBreak(
        parent_type=parent.parent_type,
        parent_id=parent.id,
        name=payload.name.strip(),
        start_time=payload.start_time,
        end_time=payload.end_time,
        break_type=payload.break_type,
        is_paid=is_paid,
        is_required=payload.is_required,
        duration=payload.duration,
        description=payload.description,
        is_flexible=payload.is_flexible,
        flexibility_minutes=payload.flexibility_minutes,
        sort_order=payload.sort_order if payload.sort_order else position,
        is_active=True,
        created_by=created_by,
    )


def _ensure_valid_for_parent(db: Session, parent: ParentRef, breaks: Sequence[ScheduleBreakInput]) -> None:
    owner = load_parent(db, parent)
    work_start = owner.start_time if owner.is_working_day else None
    work_end = owner.end_time if owner.is_working_day else None
    result = validate_breaks_for_parent(parent, breaks, work_start, work_end)
    if not result.is_valid:
        raise ValidationError("; ".join(issue.message for issue in result.errors))


def replace_breaks_for_parent(
    db: Session,
    *,
    parent: ParentRef,
    breaks: Sequence[ScheduleBreakInput],
    created_by: int | None,
) -> list[ScheduleBreak]:
    """Swap the whole break set of one parent in a single transaction.

    The delete and the inserts are committed together, so readers see either the old
    set or the new one. Any failure rolls the session back and leaves the old set.
    """
    _ensure_valid_for_parent(db, parent, breaks)

    try:
        db.execute(
            delete(ScheduleBreak).where(
                ScheduleBreak.parent_type == parent.parent_type,
                ScheduleBreak.parent_id == parent.id,
            )
        )
        rows = [
            _build_break_row(parent, payload, created_by=created_by, position=index + 1)
            for index, payload in enumerate(breaks)
        ]
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "break_set_replace_failed",
            extra={"parent_type": parent.parent_type.value, "parent_id": parent.id},
        )
        raise

    return rows


def create_break(
    db: Session,
    *,
    parent: ParentRef,
    payload: ScheduleBreakInput,
    created_by: int | None,
) -> ScheduleBreak:
    existing = list_breaks_for_parent(db, parent)
    candidates: list[ScheduleBreak | ScheduleBreakInput] = [*existing, payload]
    _ensure_valid_for_parent(db, parent, candidates)

    row = _build_break_row(parent, payload, created_by=created_by, position=len(existing) + 1)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_break(db: Session, break_id: int) -> None:
    row = db.get(ScheduleBreak, break_id)
    if row is None:
        raise NotFoundError(f"Break {break_id} not found")
    db.delete(row)
    db.commit()


def reorder_breaks(db: Session, *, parent: ParentRef, break_ids: Sequence[int]) -> list[ScheduleBreak]:
    rows_by_id = {row.id: row for row in list_breaks_for_parent(db, parent)}
    unknown = [break_id for break_id in break_ids if break_id not in rows_by_id]
    if unknown:
        raise NotFoundError(f"Breaks {unknown} do not belong to {parent.label.lower()} {parent.id}")
    for position, break_id in enumerate(break_ids, start=1):
        rows_by_id[break_id].sort_order = position
    db.commit()
    return list_breaks_for_parent(db, parent)


def delete_breaks_for_parents(db: Session, parent_type: BreakParentType, parent_ids: Iterable[int]) -> None:
    ids = list(parent_ids)
    if not ids:
        return
    db.execute(
        delete(ScheduleBreak).where(
            ScheduleBreak.parent_type == parent_type,
            ScheduleBreak.parent_id.in_(ids),
        )
    )
