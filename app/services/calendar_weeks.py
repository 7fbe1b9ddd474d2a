from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.errors import InvalidDateError, ValidationError
from app.settings import get_settings


@dataclass(frozen=True, slots=True)
class WeekRange:
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True, slots=True)
class CurrentWeek:
    year: int
    week_number: int


@dataclass(frozen=True, slots=True)
class WeekInfo:
    year: int
    week_number: int
    start_date: date
    end_date: date
    is_current_week: bool
    total_weeks_in_year: int


@dataclass(frozen=True, slots=True)
class YearOverview:
    year: int
    total_weeks: int
    weeks: list[WeekInfo]
    current_week: int | None


@lru_cache
def _organization_timezone() -> ZoneInfo:
    raw_name = (get_settings().organization_timezone or "").strip() or "Europe/Madrid"
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("Europe/Madrid")


def parse_iso_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(f"Invalid date: {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date: {value!r}, expected YYYY-MM-DD") from exc


def _thursday_of_week(day: date) -> date:
    # Monday=0 .. Sunday=6; the ISO week belongs to the year holding its Thursday.
    return day + timedelta(days=3 - day.weekday())


def week_number(day: date) -> int:
    thursday = _thursday_of_week(day)
    first_thursday = _thursday_of_week(date(thursday.year, 1, 4))
    return 1 + (thursday - first_thursday).days // 7


def iso_week_year(day: date) -> int:
    return _thursday_of_week(day).year


def weeks_in_year(year: int) -> int:
    last_week = week_number(date(year, 12, 31))
    return 52 if last_week == 1 else last_week


def week_dates(year: int, week: int) -> WeekRange:
    if week < 1 or week > weeks_in_year(year):
        raise ValidationError(f"Week {week} is out of range for year {year}")
    week1_monday = date(year, 1, 4) - timedelta(days=date(year, 1, 4).weekday())
    start_date = week1_monday + timedelta(weeks=week - 1)
    return WeekRange(start_date=start_date, end_date=start_date + timedelta(days=6))


def current_week(now: datetime | None = None) -> CurrentWeek:
    tz = _organization_timezone()
    if now is None:
        local_now = datetime.now(tz)
    elif now.tzinfo is None:
        # Naive values are already organization wall-clock time.
        local_now = now.replace(tzinfo=tz)
    else:
        local_now = now.astimezone(tz)
    today = local_now.date()
    return CurrentWeek(year=iso_week_year(today), week_number=week_number(today))


def day_of_week(day: date) -> int:
    """Storage convention for schedules: 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def validate_day_of_week(value: int) -> int:
    if value < 0 or value > 6:
        raise ValidationError(f"day_of_week must be between 0 (Sunday) and 6 (Saturday), got {value}")
    return value


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    if start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")
    cursor = start_date
    while cursor <= end_date:
        yield cursor
        cursor += timedelta(days=1)


def week_info(year: int, week: int, *, now: datetime | None = None) -> WeekInfo:
    week_range = week_dates(year, week)
    current = current_week(now)
    return WeekInfo(
        year=year,
        week_number=week,
        start_date=week_range.start_date,
        end_date=week_range.end_date,
        is_current_week=current.year == year and current.week_number == week,
        total_weeks_in_year=weeks_in_year(year),
    )


def year_overview(year: int, *, now: datetime | None = None) -> YearOverview:
    total_weeks = weeks_in_year(year)
    current = current_week(now)
    weeks = [week_info(year, week, now=now) for week in range(1, total_weeks + 1)]
    return YearOverview(
        year=year,
        total_weeks=total_weeks,
        weeks=weeks,
        current_week=current.week_number if current.year == year else None,
    )
