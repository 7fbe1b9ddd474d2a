"""Owners a break can be attached to.

Breaks reference their owner through a (parent_type, parent_id) tag instead of a
foreign key. Each owner kind gets its own reference type so the tag and the table
that is queried can never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError
from app.models import (
    BreakParentType,
    DailyScheduleException,
    FixedSchedule,
    ScheduleTemplateDay,
)


@dataclass(frozen=True, slots=True)
class ScheduleParent:
    id: int
    parent_type: ClassVar[BreakParentType] = BreakParentType.SCHEDULE
    label: ClassVar[str] = "Schedule"

    def load(self, db: Session) -> FixedSchedule | None:
        return db.get(FixedSchedule, self.id)


@dataclass(frozen=True, slots=True)
class TemplateDayParent:
    id: int
    parent_type: ClassVar[BreakParentType] = BreakParentType.TEMPLATE_DAY
    label: ClassVar[str] = "Template day"

    def load(self, db: Session) -> ScheduleTemplateDay | None:
        return db.get(ScheduleTemplateDay, self.id)


@dataclass(frozen=True, slots=True)
class DailyExceptionParent:
    id: int
    parent_type: ClassVar[BreakParentType] = BreakParentType.DAILY_EXCEPTION
    label: ClassVar[str] = "Daily exception"

    def load(self, db: Session) -> DailyScheduleException | None:
        return db.get(DailyScheduleException, self.id)


ParentRef = Union[ScheduleParent, TemplateDayParent, DailyExceptionParent]
ParentOwner = Union[FixedSchedule, ScheduleTemplateDay, DailyScheduleException]

_PARENT_BY_TYPE: dict[BreakParentType, type[ScheduleParent] | type[TemplateDayParent] | type[DailyExceptionParent]] = {
    BreakParentType.SCHEDULE: ScheduleParent,
    BreakParentType.TEMPLATE_DAY: TemplateDayParent,
    BreakParentType.DAILY_EXCEPTION: DailyExceptionParent,
}


def parent_ref_from_tag(parent_type: BreakParentType | str, parent_id: int) -> ParentRef:
    try:
        tag = BreakParentType(parent_type)
    except ValueError as exc:
        valid = ", ".join(item.value for item in BreakParentType)
        raise ValidationError(f"Invalid parent type {parent_type!r}. Valid types: {valid}") from exc
    if parent_id <= 0:
        raise ValidationError("parent_id must be a positive integer")
    return _PARENT_BY_TYPE[tag](id=parent_id)


def load_parent(db: Session, parent: ParentRef) -> ParentOwner:
    owner = parent.load(db)
    if owner is None:
        raise NotFoundError(f"{parent.label} {parent.id} not found")
    return owner
