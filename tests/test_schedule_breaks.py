from __future__ import annotations

from datetime import time
import unittest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.errors import NotFoundError, ValidationError
from app.models import BreakParentType, BreakType
from app.schemas import ScheduleBreakInput
from app.services.break_parents import DailyExceptionParent, ScheduleParent, parent_ref_from_tag
from app.services.break_validation import optimize_breaks_for_schedule, validate_breaks_for_parent
from app.services.schedule_breaks import (
    create_break,
    default_breaks,
    delete_break,
    list_breaks_for_parent,
    reorder_breaks,
    replace_breaks_for_parent,
)
from tests.support import add_employee, add_fixed_schedule, make_session


def _brk(name: str, start: time, end: time, **kwargs) -> ScheduleBreakInput:
    return ScheduleBreakInput(name=name, start_time=start, end_time=end, **kwargs)


class BreakValidationTests(unittest.TestCase):
    def test_overlapping_breaks_report_both_names(self) -> None:
        result = validate_breaks_for_parent(
            None,
            [_brk("Lunch", time(13, 0), time(14, 0)), _brk("Coffee", time(13, 30), time(13, 45))],
            time(9, 0),
            time(17, 0),
        )

        self.assertFalse(result.is_valid)
        self.assertEqual(len(result.errors), 1)
        issue = result.errors[0]
        self.assertEqual(issue.type, "break_overlap")
        self.assertEqual((issue.break_index, issue.conflict_index), (0, 1))
        self.assertEqual((issue.break_name, issue.conflict_name), ("Lunch", "Coffee"))
        self.assertIn("Lunch", issue.message)
        self.assertIn("Coffee", issue.message)

    def test_issues_accumulate(self) -> None:
        result = validate_breaks_for_parent(
            ScheduleParent(id=4),
            [
                _brk("Temprano", time(8, 30), time(9, 15)),
                _brk("Invertido", time(14, 0), time(13, 0)),
            ],
            time(9, 0),
            time(17, 0),
        )

        self.assertEqual([issue.type for issue in result.errors], ["outside_work_hours", "invalid_time_range"])
        self.assertEqual(result.parent_type, "schedule")
        self.assertEqual(result.parent_id, 4)

    def test_window_check_is_skipped_without_work_bounds(self) -> None:
        result = validate_breaks_for_parent(None, [_brk("Noche", time(6, 0), time(7, 0))], None, None)
        self.assertTrue(result.is_valid)


class BreakOptimizationTests(unittest.TestCase):
    def test_breaks_are_pulled_into_the_window_and_past_earlier_breaks(self) -> None:
        result = optimize_breaks_for_schedule(
            [
                _brk("Tarde", time(16, 50), time(17, 10)),
                _brk("Temprano", time(8, 30), time(8, 45)),
                _brk("Comida", time(13, 0), time(14, 0), break_type=BreakType.MEAL),
                _brk("Café", time(13, 30), time(13, 45)),
            ],
            time(9, 0),
            time(17, 0),
        )

        self.assertTrue(result.has_optimizations)
        self.assertEqual([item.name for item in result.optimized_breaks], ["Temprano", "Comida", "Café", "Tarde"])
        self.assertEqual(
            [(item.start_time, item.end_time) for item in result.optimized_breaks],
            [
                (time(9, 0), time(9, 15)),
                (time(13, 0), time(14, 0)),
                (time(14, 0), time(14, 15)),
                (time(16, 40), time(17, 0)),
            ],
        )
        self.assertEqual([item.was_optimized for item in result.optimized_breaks], [True, False, True, True])
        self.assertEqual(result.optimized_breaks[1].break_type, "meal")
        self.assertEqual(
            [(item.original, item.issue, item.suggestion) for item in result.suggestions],
            [
                ("Temprano", "Break starts before work hours", "Move to 09:00 - 09:15"),
                ("Café", "Overlaps with Comida", "Move to 14:00 - 14:15"),
                ("Tarde", "Break ends after work hours", "Move to 16:40 - 17:00"),
            ],
        )
        self.assertEqual(len(result.original_breaks), 4)

    def test_clean_set_is_left_alone(self) -> None:
        result = optimize_breaks_for_schedule(default_breaks(), time(9, 0), time(17, 0))

        self.assertFalse(result.has_optimizations)
        self.assertFalse(any(item.was_optimized for item in result.optimized_breaks))


class ParentRefTests(unittest.TestCase):
    def test_parent_ref_from_tag(self) -> None:
        self.assertEqual(parent_ref_from_tag("daily_exception", 3), DailyExceptionParent(id=3))
        self.assertEqual(parent_ref_from_tag(BreakParentType.SCHEDULE, 8).parent_type, BreakParentType.SCHEDULE)
        with self.assertRaises(ValidationError):
            parent_ref_from_tag("analysis", 1)
        with self.assertRaises(ValidationError):
            parent_ref_from_tag("schedule", 0)


class BreakStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.employee = add_employee(self.db)
        self.schedule = add_fixed_schedule(self.db, self.employee, day_of_week=1)
        self.parent = ScheduleParent(id=self.schedule.id)

    def tearDown(self) -> None:
        self.db.close()

    def test_replace_swaps_the_whole_set(self) -> None:
        replace_breaks_for_parent(self.db, parent=self.parent, breaks=default_breaks(), created_by=None)
        first = list_breaks_for_parent(self.db, self.parent)
        self.assertEqual([item.name for item in first], ["Desayuno", "Almuerzo", "Merienda"])
        self.assertFalse(first[1].is_paid)
        self.assertEqual(first[1].break_type, BreakType.MEAL)

        replace_breaks_for_parent(
            self.db,
            parent=self.parent,
            breaks=[_brk("Comida", time(14, 0), time(15, 0), break_type=BreakType.MEAL)],
            created_by=None,
        )
        second = list_breaks_for_parent(self.db, self.parent)
        self.assertEqual([item.name for item in second], ["Comida"])
        self.assertFalse(second[0].is_paid)
        self.assertEqual(second[0].sort_order, 1)

    def test_invalid_set_is_rejected_and_previous_set_kept(self) -> None:
        replace_breaks_for_parent(self.db, parent=self.parent, breaks=default_breaks(), created_by=None)

        with self.assertRaises(ValidationError):
            replace_breaks_for_parent(
                self.db,
                parent=self.parent,
                breaks=[_brk("Lunch", time(13, 0), time(14, 0)), _brk("Coffee", time(13, 30), time(13, 45))],
                created_by=None,
            )

        self.assertEqual(len(list_breaks_for_parent(self.db, self.parent)), 3)

    def test_storage_failure_rolls_back_to_previous_set(self) -> None:
        replace_breaks_for_parent(self.db, parent=self.parent, breaks=default_breaks(), created_by=None)

        with patch.object(self.db, "commit", side_effect=SQLAlchemyError("disk full")):
            with self.assertRaises(SQLAlchemyError):
                replace_breaks_for_parent(
                    self.db,
                    parent=self.parent,
                    breaks=[_brk("Comida", time(14, 0), time(15, 0))],
                    created_by=None,
                )

        names = [item.name for item in list_breaks_for_parent(self.db, self.parent)]
        self.assertEqual(names, ["Desayuno", "Almuerzo", "Merienda"])

    def test_missing_parent_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            replace_breaks_for_parent(
                self.db,
                parent=ScheduleParent(id=999),
                breaks=default_breaks(),
                created_by=None,
            )

    def test_create_break_checks_against_existing_breaks(self) -> None:
        create_break(self.db, parent=self.parent, payload=_brk("Comida", time(13, 0), time(14, 0)), created_by=None)

        with self.assertRaises(ValidationError):
            create_break(
                self.db,
                parent=self.parent,
                payload=_brk("Café", time(13, 30), time(13, 40)),
                created_by=None,
            )
        second = create_break(
            self.db,
            parent=self.parent,
            payload=_brk("Café", time(16, 0), time(16, 10)),
            created_by=None,
        )
        self.assertEqual(second.sort_order, 2)

    def test_reorder_and_delete(self) -> None:
        rows = replace_breaks_for_parent(self.db, parent=self.parent, breaks=default_breaks(), created_by=None)
        ids = [row.id for row in rows]

        reordered = reorder_breaks(self.db, parent=self.parent, break_ids=list(reversed(ids)))
        self.assertEqual([item.name for item in reordered], ["Merienda", "Almuerzo", "Desayuno"])

        delete_break(self.db, ids[0])
        self.assertEqual(len(list_breaks_for_parent(self.db, self.parent)), 2)
        with self.assertRaises(NotFoundError):
            delete_break(self.db, ids[0])
        with self.assertRaises(NotFoundError):
            reorder_breaks(self.db, parent=self.parent, break_ids=[12345])
