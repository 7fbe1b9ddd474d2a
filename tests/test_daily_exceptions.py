from __future__ import annotations

from datetime import date, datetime, time, timezone
import unittest

from sqlalchemy import select

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import BreakParentType, ExceptionType, ScheduleBreak
from app.schemas import DailyExceptionCreate, HolidayInput, ScheduleBreakInput
from app.services.break_parents import DailyExceptionParent, ScheduleParent
from app.services.daily_exceptions import (
    EXCEPTION_TYPE_LABELS,
    approve_daily_exception,
    create_daily_exception,
    create_holiday_exceptions,
    deactivate_daily_exception,
    delete_daily_exception,
    list_daily_exceptions,
    update_daily_exception,
)
from app.services.fixed_schedules import delete_fixed_schedule
from app.services.schedule_breaks import list_breaks_for_parent, replace_breaks_for_parent
from app.services.schedule_resolver import effective_breaks
from tests.support import add_employee, add_fixed_schedule, make_session


class DailyExceptionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.employee = add_employee(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _create(self, **kwargs):
        kwargs.setdefault("date", date(2025, 4, 14))
        kwargs.setdefault("exception_type", ExceptionType.CUSTOM_HOURS)
        return create_daily_exception(
            self.db,
            employee_id=self.employee.id,
            payload=DailyExceptionCreate(**kwargs),
        )

    def test_custom_hours_requires_a_valid_window(self) -> None:
        with self.assertRaises(ValidationError):
            self._create()
        with self.assertRaises(ValidationError):
            self._create(start_time=time(14, 0), end_time=time(9, 0))

        created = self._create(start_time=time(7, 0), end_time=time(15, 0), reason="Inventario")
        self.assertTrue(created.is_working_day)
        self.assertTrue(created.is_active)
        self.assertEqual(created.start_time, time(7, 0))

    def test_non_working_types_drop_times(self) -> None:
        created = self._create(
            exception_type=ExceptionType.VACATION,
            is_working_day=True,
            start_time=time(9, 0),
            end_time=time(17, 0),
        )
        self.assertFalse(created.is_working_day)
        self.assertIsNone(created.start_time)
        self.assertIsNone(created.end_time)

    def test_second_exception_for_the_same_day_conflicts(self) -> None:
        first = self._create(exception_type=ExceptionType.DAY_OFF)
        with self.assertRaises(ConflictError):
            self._create(exception_type=ExceptionType.SICK_LEAVE)

        deactivate_daily_exception(self.db, first.id)
        with self.assertRaises(ConflictError):
            self._create(exception_type=ExceptionType.SICK_LEAVE)

    def test_update_can_move_the_exception_to_a_free_day(self) -> None:
        first = self._create(exception_type=ExceptionType.DAY_OFF)
        self._create(date=date(2025, 4, 15), exception_type=ExceptionType.DAY_OFF)

        with self.assertRaises(ConflictError):
            update_daily_exception(
                self.db,
                first.id,
                DailyExceptionCreate(date=date(2025, 4, 15), exception_type=ExceptionType.DAY_OFF),
            )

        moved = update_daily_exception(
            self.db,
            first.id,
            DailyExceptionCreate(
                date=date(2025, 4, 16),
                exception_type=ExceptionType.SPECIAL_EVENT,
                start_time=time(18, 0),
                end_time=time(22, 0),
            ),
        )
        self.assertEqual(moved.date, date(2025, 4, 16))
        self.assertTrue(moved.is_working_day)

    def test_approve_once(self) -> None:
        manager = add_employee(self.db, "Jefa de Turno")
        created = self._create(exception_type=ExceptionType.DAY_OFF)
        when = datetime(2025, 4, 10, 8, 0, tzinfo=timezone.utc)

        approved = approve_daily_exception(self.db, created.id, approved_by=manager.id, now=when)
        self.assertTrue(approved.is_approved)
        self.assertEqual(approved.approved_by, manager.id)

        with self.assertRaises(ConflictError):
            approve_daily_exception(self.db, created.id, approved_by=manager.id)
        with self.assertRaises(NotFoundError):
            approve_daily_exception(self.db, 999, approved_by=manager.id)

    def test_list_hides_inactive_by_default(self) -> None:
        kept = self._create(exception_type=ExceptionType.DAY_OFF)
        hidden = self._create(date=date(2025, 4, 20), exception_type=ExceptionType.DAY_OFF)
        deactivate_daily_exception(self.db, hidden.id)

        self.assertEqual([item.id for item in list_daily_exceptions(self.db, employee_id=self.employee.id)], [kept.id])
        self.assertEqual(
            len(list_daily_exceptions(self.db, employee_id=self.employee.id, include_inactive=True)),
            2,
        )
        with self.assertRaises(ValidationError):
            list_daily_exceptions(
                self.db,
                employee_id=self.employee.id,
                start_date=date(2025, 5, 1),
                end_date=date(2025, 4, 1),
            )

    def test_every_type_has_a_label(self) -> None:
        self.assertEqual(set(EXCEPTION_TYPE_LABELS), set(ExceptionType))


class HolidayExceptionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.first = add_employee(self.db, "Ana Ruiz")
        self.second = add_employee(self.db, "Pablo Sanz")

    def tearDown(self) -> None:
        self.db.close()

    def test_one_exception_per_employee_and_holiday(self) -> None:
        holidays = [
            HolidayInput(date=date(2025, 5, 1), reason="Día del Trabajo"),
            HolidayInput(date=date(2025, 8, 15), reason="Asunción"),
        ]
        create_daily_exception(
            self.db,
            employee_id=self.second.id,
            payload=DailyExceptionCreate(date=date(2025, 8, 15), exception_type=ExceptionType.VACATION),
        )

        result = create_holiday_exceptions(
            self.db,
            employee_ids=[self.first.id, self.second.id, 999],
            holidays=holidays,
        )

        self.assertEqual(result.summary.total, 6)
        self.assertEqual(result.summary.successful, 3)
        self.assertEqual(result.summary.failed, 3)
        self.assertEqual(
            sorted(error.unit for error in result.errors),
            sorted([f"{self.second.id}:2025-08-15", "999:2025-05-01", "999:2025-08-15"]),
        )
        codes = {error.unit: error.code for error in result.errors}
        self.assertEqual(codes[f"{self.second.id}:2025-08-15"], "CONFLICT")
        self.assertEqual(codes["999:2025-05-01"], "NOT_FOUND")

        stored = list_daily_exceptions(self.db, employee_id=self.first.id)
        self.assertEqual([item.exception_type for item in stored], [ExceptionType.HOLIDAY, ExceptionType.HOLIDAY])
        self.assertTrue(all(not item.is_working_day for item in stored))
        self.assertEqual(stored[0].reason, "Día del Trabajo")


class DeletedOwnerBreakTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.employee = add_employee(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _stored_breaks(self, parent_type: BreakParentType, parent_id: int) -> list[ScheduleBreak]:
        return list(
            self.db.scalars(
                select(ScheduleBreak).where(
                    ScheduleBreak.parent_type == parent_type,
                    ScheduleBreak.parent_id == parent_id,
                )
            ).all()
        )

    def test_deleting_an_exception_drops_its_breaks(self) -> None:
        removed = create_daily_exception(
            self.db,
            employee_id=self.employee.id,
            payload=DailyExceptionCreate(
                date=date(2025, 4, 14),
                exception_type=ExceptionType.CUSTOM_HOURS,
                start_time=time(9, 0),
                end_time=time(17, 0),
            ),
        )
        replace_breaks_for_parent(
            self.db,
            parent=DailyExceptionParent(id=removed.id),
            breaks=[ScheduleBreakInput(name="Fantasma", start_time=time(12, 0), end_time=time(12, 30))],
            created_by=None,
        )
        removed_id = removed.id

        delete_daily_exception(self.db, removed_id)
        self.assertEqual(self._stored_breaks(BreakParentType.DAILY_EXCEPTION, removed_id), [])

        successor = create_daily_exception(
            self.db,
            employee_id=self.employee.id,
            payload=DailyExceptionCreate(
                date=date(2025, 4, 15),
                exception_type=ExceptionType.CUSTOM_HOURS,
                start_time=time(9, 0),
                end_time=time(17, 0),
            ),
        )
        self.assertEqual(list_breaks_for_parent(self.db, DailyExceptionParent(id=successor.id)), [])
        day_breaks = effective_breaks(self.db, employee_id=self.employee.id, day=date(2025, 4, 15))
        self.assertEqual(day_breaks.source, "daily_exception")
        self.assertEqual(day_breaks.breaks, [])

    def test_deleting_a_fixed_schedule_drops_its_breaks(self) -> None:
        schedule = add_fixed_schedule(self.db, self.employee, day_of_week=1)
        replace_breaks_for_parent(
            self.db,
            parent=ScheduleParent(id=schedule.id),
            breaks=[ScheduleBreakInput(name="Fantasma", start_time=time(12, 0), end_time=time(12, 30))],
            created_by=None,
        )
        schedule_id = schedule.id

        delete_fixed_schedule(self.db, schedule_id)
        self.assertEqual(self._stored_breaks(BreakParentType.SCHEDULE, schedule_id), [])
        with self.assertRaises(NotFoundError):
            delete_fixed_schedule(self.db, schedule_id)

        successor = add_fixed_schedule(self.db, self.employee, day_of_week=1)
        self.assertEqual(list_breaks_for_parent(self.db, ScheduleParent(id=successor.id)), [])
