from __future__ import annotations

from datetime import date, time
import unittest

from app.errors import ValidationError
from app.models import BreakType, ExceptionType
from app.schemas import DailyExceptionCreate, ScheduleBreakInput
from app.services.break_parents import DailyExceptionParent, ScheduleParent, TemplateDayParent
from app.services.daily_exceptions import (
    create_daily_exception,
    deactivate_daily_exception,
    delete_daily_exception,
)
from app.services.fixed_schedules import delete_fixed_schedule
from app.services.schedule_breaks import replace_breaks_for_parent
from app.services.schedule_resolver import NO_SCHEDULE_NOTE, effective_breaks, resolve, resolve_range
from app.services.weekly_assignments import delete_weekly_assignment, upsert_weekly_assignment
from tests.support import add_employee, add_exception_row, add_fixed_schedule, add_template, make_session

MONDAY = date(2025, 3, 10)


class ScheduleResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.employee = add_employee(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _assign_week(self, template_id: int, *, year: int = 2025, week: int = 11):
        assignment, _ = upsert_weekly_assignment(
            self.db,
            employee_id=self.employee.id,
            year=year,
            week_number=week,
            template_id=template_id,
            notes="Semana de cierre",
            created_by=None,
        )
        return assignment

    def test_regular_schedule_is_used_when_nothing_else_applies(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1, start=time(9, 0), end=time(17, 0))

        result = resolve(self.db, employee_id=self.employee.id, day="2025-03-10")

        self.assertEqual(result.type, "regular_schedule")
        self.assertEqual(result.source, "regular_schedule")
        self.assertTrue(result.is_working_day)
        self.assertEqual(result.start_time, time(9, 0))
        self.assertEqual(result.end_time, time(17, 0))
        self.assertEqual(result.day_of_week, 1)

    def test_weekly_template_overrides_regular_schedule(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        template = add_template(self.db, days={1: (time(10, 0), time(18, 0))})
        self._assign_week(template.id)

        result = resolve(self.db, employee_id=self.employee.id, day=MONDAY)

        self.assertEqual(result.type, "weekly_template")
        self.assertEqual(result.source, "weekly_schedule")
        self.assertEqual(result.start_time, time(10, 0))
        self.assertEqual(result.end_time, time(18, 0))
        self.assertEqual(result.week_notes, "Semana de cierre")
        self.assertEqual(result.source_id, template.days[0].id)

    def test_non_working_daily_exception_wins_and_nulls_times(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        template = add_template(self.db, days={1: (time(10, 0), time(18, 0))})
        self._assign_week(template.id)
        add_exception_row(
            self.db,
            self.employee,
            day=MONDAY,
            exception_type=ExceptionType.DAY_OFF,
            is_working_day=False,
            start=time(8, 0),
            end=time(12, 0),
        )

        result = resolve(self.db, employee_id=self.employee.id, day=MONDAY)

        self.assertEqual(result.type, "daily_exception")
        self.assertFalse(result.is_working_day)
        self.assertIsNone(result.start_time)
        self.assertIsNone(result.end_time)
        self.assertIsNone(result.break_start_time)

    def test_priority_falls_through_as_sources_are_removed(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        template = add_template(self.db, days={1: (time(10, 0), time(18, 0))})
        assignment = self._assign_week(template.id)
        exception = create_daily_exception(
            self.db,
            employee_id=self.employee.id,
            payload=DailyExceptionCreate(
                date=MONDAY,
                exception_type=ExceptionType.CUSTOM_HOURS,
                start_time=time(7, 0),
                end_time=time(13, 0),
                reason="Inventario",
            ),
        )

        first = resolve(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(first.type, "daily_exception")
        self.assertEqual(first.reason, "Inventario")
        self.assertEqual(first.start_time, time(7, 0))

        delete_daily_exception(self.db, exception.id)
        self.assertEqual(resolve(self.db, employee_id=self.employee.id, day=MONDAY).type, "weekly_template")

        delete_weekly_assignment(self.db, assignment.id)
        self.assertEqual(resolve(self.db, employee_id=self.employee.id, day=MONDAY).type, "regular_schedule")

        delete_fixed_schedule(self.db, resolve(self.db, employee_id=self.employee.id, day=MONDAY).source_id)
        last = resolve(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(last.type, "no_schedule")
        self.assertEqual(last.source, "none")
        self.assertFalse(last.is_working_day)
        self.assertIsNone(last.start_time)
        self.assertEqual(last.notes, NO_SCHEDULE_NOTE)

    def test_deactivated_exception_is_ignored(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        exception = add_exception_row(
            self.db,
            self.employee,
            day=MONDAY,
            exception_type=ExceptionType.SICK_LEAVE,
            is_working_day=False,
        )
        deactivate_daily_exception(self.db, exception.id)

        self.assertEqual(resolve(self.db, employee_id=self.employee.id, day=MONDAY).type, "regular_schedule")

    def test_template_without_that_weekday_falls_through(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        template = add_template(self.db, days={2: (time(10, 0), time(18, 0))})
        self._assign_week(template.id)

        self.assertEqual(resolve(self.db, employee_id=self.employee.id, day=MONDAY).type, "regular_schedule")

    def test_assignment_without_template_falls_through(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)
        upsert_weekly_assignment(
            self.db,
            employee_id=self.employee.id,
            year=2025,
            week_number=11,
            template_id=None,
            notes=None,
            created_by=None,
        )

        self.assertEqual(resolve(self.db, employee_id=self.employee.id, day=MONDAY).type, "regular_schedule")

    def test_week_that_starts_in_previous_calendar_year_uses_iso_week_year(self) -> None:
        template = add_template(self.db, days={1: (time(8, 0), time(14, 0))})
        self._assign_week(template.id, year=2025, week=1)

        result = resolve(self.db, employee_id=self.employee.id, day=date(2024, 12, 30))

        self.assertEqual(result.type, "weekly_template")
        self.assertEqual(result.start_time, time(8, 0))

    def test_rejects_non_positive_employee_id(self) -> None:
        for bad_id in (0, -3):
            with self.assertRaises(ValidationError):
                resolve(self.db, employee_id=bad_id, day=MONDAY)

    def test_unknown_employee_degrades_to_no_schedule(self) -> None:
        result = resolve(self.db, employee_id=999, day=MONDAY)
        self.assertEqual(result.type, "no_schedule")

    def test_resolve_range_returns_one_entry_per_day_in_order(self) -> None:
        add_fixed_schedule(self.db, self.employee, day_of_week=1)

        results = resolve_range(
            self.db,
            employee_id=self.employee.id,
            start_date="2025-03-09",
            end_date="2025-03-15",
        )

        self.assertEqual([item.date for item in results], [date(2025, 3, day) for day in range(9, 16)])
        self.assertEqual([item.type for item in results][:2], ["no_schedule", "regular_schedule"])

    def test_effective_breaks_follow_the_winning_source(self) -> None:
        schedule = add_fixed_schedule(self.db, self.employee, day_of_week=1)
        replace_breaks_for_parent(
            self.db,
            parent=ScheduleParent(id=schedule.id),
            breaks=[ScheduleBreakInput(name="Comida", start_time=time(13, 0), end_time=time(14, 0))],
            created_by=None,
        )
        template = add_template(self.db, days={1: (time(10, 0), time(18, 0))})
        replace_breaks_for_parent(
            self.db,
            parent=TemplateDayParent(id=template.days[0].id),
            breaks=[
                ScheduleBreakInput(name="Café", start_time=time(11, 0), end_time=time(11, 15)),
                ScheduleBreakInput(
                    name="Almuerzo",
                    start_time=time(14, 0),
                    end_time=time(14, 45),
                    break_type=BreakType.MEAL,
                ),
            ],
            created_by=None,
        )

        regular = effective_breaks(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(regular.source, "regular_schedule")
        self.assertEqual([item.name for item in regular.breaks], ["Comida"])

        self._assign_week(template.id)
        weekly = effective_breaks(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(weekly.source, "weekly_template")
        self.assertEqual(weekly.source_id, template.days[0].id)
        self.assertEqual([item.name for item in weekly.breaks], ["Café", "Almuerzo"])
        self.assertEqual(weekly.work_start_time, time(10, 0))

        exception = add_exception_row(
            self.db,
            self.employee,
            day=MONDAY,
            start=time(9, 0),
            end=time(12, 0),
        )
        daily = effective_breaks(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(daily.source, "daily_exception")
        self.assertEqual(daily.source_id, exception.id)
        self.assertEqual(daily.breaks, [])
        self.assertTrue(daily.is_working_day)

        replace_breaks_for_parent(
            self.db,
            parent=DailyExceptionParent(id=exception.id),
            breaks=[ScheduleBreakInput(name="Pausa", start_time=time(10, 30), end_time=time(10, 40))],
            created_by=None,
        )
        self.assertEqual(
            [item.name for item in effective_breaks(self.db, employee_id=self.employee.id, day=MONDAY).breaks],
            ["Pausa"],
        )

    def test_effective_breaks_without_schedule(self) -> None:
        result = effective_breaks(self.db, employee_id=self.employee.id, day=MONDAY)
        self.assertEqual(result.source, "none")
        self.assertIsNone(result.source_id)
        self.assertEqual(result.breaks, [])
        self.assertFalse(result.is_working_day)
