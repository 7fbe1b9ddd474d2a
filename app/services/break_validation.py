from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import time
from typing import Any

from app.services.break_math import has_overlap
from app.services.break_parents import ParentRef
from app.services.time_windows import format_hhmm, to_minutes


@dataclass(frozen=True)
class BreakValidationIssue:
    break_index: int
    type: str
    message: str
    break_name: str
    conflict_index: int | None = None
    conflict_name: str | None = None


@dataclass(frozen=True)
class BreakValidationResult:
    is_valid: bool
    errors: list[BreakValidationIssue] = field(default_factory=list)
    parent_type: str | None = None
    parent_id: int | None = None


def validate_breaks_for_parent(
    parent: ParentRef | None,
    breaks: Sequence[Any],
    work_start: time | None,
    work_end: time | None,
) -> BreakValidationResult:
    errors: list[BreakValidationIssue] = []
    has_work_window = work_start is not None and work_end is not None
    work_label = f"{format_hhmm(work_start)} - {format_hhmm(work_end)}"

    for index, brk in enumerate(breaks):
        if has_work_window and (brk.start_time < work_start or brk.end_time > work_end):
            errors.append(
                BreakValidationIssue(
                    break_index=index,
                    type="outside_work_hours",
                    message=f'Break "{brk.name}" is outside work hours ({work_label})',
                    break_name=brk.name,
                )
            )

        if brk.start_time >= brk.end_time:
            errors.append(
                BreakValidationIssue(
                    break_index=index,
                    type="invalid_time_range",
                    message=f'Break "{brk.name}" start time must be before end time',
                    break_name=brk.name,
                )
            )

        for other_index in range(index + 1, len(breaks)):
            other = breaks[other_index]
            if has_overlap(brk, other):
                errors.append(
                    BreakValidationIssue(
                        break_index=index,
                        type="break_overlap",
                        message=f'Break "{brk.name}" overlaps with "{other.name}"',
                        break_name=brk.name,
                        conflict_index=other_index,
                        conflict_name=other.name,
                    )
                )

    return BreakValidationResult(
        is_valid=not errors,
        errors=errors,
        parent_type=parent.parent_type.value if parent is not None else None,
        parent_id=parent.id if parent is not None else None,
    )


@dataclass(frozen=True, slots=True)
class OptimizedBreak:
    name: str
    start_time: time
    end_time: time
    break_type: str | None
    is_paid: bool | None
    was_optimized: bool


@dataclass(frozen=True, slots=True)
class BreakSuggestion:
    original: str
    issue: str
    suggestion: str


@dataclass(frozen=True)
class BreakOptimization:
    original_breaks: list[Any]
    optimized_breaks: list[OptimizedBreak] = field(default_factory=list)
    suggestions: list[BreakSuggestion] = field(default_factory=list)

    @property
    def has_optimizations(self) -> bool:
        return bool(self.suggestions)


_LAST_MINUTE = 24 * 60 - 1


def _clock(minutes: int) -> time:
    minutes = min(max(minutes, 0), _LAST_MINUTE)
    return time(hour=minutes // 60, minute=minutes % 60)


def _move_label(start: int, end: int) -> str:
    return f"Move to {format_hhmm(_clock(start))} - {format_hhmm(_clock(end))}"


def optimize_breaks_for_schedule(
    breaks: Sequence[Any],
    work_start: time,
    work_end: time,
) -> BreakOptimization:
    """Shift breaks into the work window and past earlier breaks, keeping each duration."""
    window_start = to_minutes(work_start)
    window_end = to_minutes(work_end)
    ordered = sorted(breaks, key=lambda item: to_minutes(item.start_time))

    optimized: list[OptimizedBreak] = []
    suggestions: list[BreakSuggestion] = []

    for brk in ordered:
        original_start = to_minutes(brk.start_time)
        original_end = to_minutes(brk.end_time)
        duration = original_end - original_start
        start, end = original_start, original_end

        if start < window_start:
            start, end = window_start, window_start + duration
            suggestions.append(
                BreakSuggestion(
                    original=brk.name,
                    issue="Break starts before work hours",
                    suggestion=_move_label(start, end),
                )
            )
        if end > window_end:
            start, end = window_end - duration, window_end
            suggestions.append(
                BreakSuggestion(
                    original=brk.name,
                    issue="Break ends after work hours",
                    suggestion=_move_label(start, end),
                )
            )

        for previous in optimized:
            previous_end = to_minutes(previous.end_time)
            if start < previous_end:
                start, end = previous_end, previous_end + duration
                suggestions.append(
                    BreakSuggestion(
                        original=brk.name,
                        issue=f"Overlaps with {previous.name}",
                        suggestion=_move_label(start, end),
                    )
                )

        break_type = getattr(brk, "break_type", None)
        optimized.append(
            OptimizedBreak(
                name=brk.name,
                start_time=_clock(start),
                end_time=_clock(end),
                break_type=getattr(break_type, "value", break_type),
                is_paid=getattr(brk, "is_paid", None),
                was_optimized=(start, end) != (original_start, original_end),
            )
        )

    return BreakOptimization(original_breaks=list(breaks), optimized_breaks=optimized, suggestions=suggestions)
