from __future__ import annotations

from collections.abc import Generator
from datetime import date, time

from sqlalchemy.orm import Session, sessionmaker

from app import models  # noqa: F401
from app.db import Base, build_engine
from app.models import DailyScheduleException, Employee, ExceptionType, FixedSchedule, ScheduleTemplate
from app.schemas import ScheduleTemplateCreate, TemplateDayInput
from app.services.schedule_templates import create_template


def make_session() -> Session:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def override_get_db(db: Session):
    def _override() -> Generator[Session, None, None]:
        yield db

    return _override


def add_employee(db: Session, full_name: str = "Lucía Romero", employee_code: str | None = None) -> Employee:
    employee = Employee(full_name=full_name, employee_code=employee_code, is_active=True)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def add_fixed_schedule(
    db: Session,
    employee: Employee,
    *,
    day_of_week: int,
    start: time | None = time(9, 0),
    end: time | None = time(17, 0),
    is_working_day: bool = True,
    break_start: time | None = None,
    break_end: time | None = None,
) -> FixedSchedule:
    schedule = FixedSchedule(
        employee_id=employee.id,
        day_of_week=day_of_week,
        is_working_day=is_working_day,
        start_time=start,
        end_time=end,
        break_start_time=break_start,
        break_end_time=break_end,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule


def add_template(
    db: Session,
    name: str = "Oficina",
    *,
    days: dict[int, tuple[time, time]] | None = None,
) -> ScheduleTemplate:
    days = days if days is not None else {weekday: (time(10, 0), time(18, 0)) for weekday in range(1, 6)}
    payload = ScheduleTemplateCreate(
        name=name,
        days=[
            TemplateDayInput(day_of_week=weekday, is_working_day=True, start_time=start, end_time=end)
            for weekday, (start, end) in days.items()
        ],
    )
    return create_template(db, payload)


def add_exception_row(
    db: Session,
    employee: Employee,
    *,
    day: date,
    exception_type: ExceptionType = ExceptionType.CUSTOM_HOURS,
    is_working_day: bool = True,
    start: time | None = None,
    end: time | None = None,
    break_start: time | None = None,
    break_end: time | None = None,
    is_active: bool = True,
) -> DailyScheduleException:
    exception = DailyScheduleException(
        employee_id=employee.id,
        date=day,
        exception_type=exception_type,
        is_working_day=is_working_day,
        start_time=start,
        end_time=end,
        break_start_time=break_start,
        break_end_time=break_end,
        is_active=is_active,
    )
    db.add(exception)
    db.commit()
    db.refresh(exception)
    return exception
