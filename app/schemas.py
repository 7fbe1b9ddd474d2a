from datetime import date, time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models import BreakParentType, BreakType, ExceptionType


class _TimeWindowModel(BaseModel):
    @field_serializer(
        "start_time",
        "end_time",
        "break_start_time",
        "break_end_time",
        "work_start_time",
        "work_end_time",
        check_fields=False,
    )
    def _serialize_hhmm(self, value: time | None) -> str | None:
        if value is None:
            return None
        return value.strftime("%H:%M")


class ScheduleBreakInput(_TimeWindowModel):
    name: str = Field(min_length=1, max_length=100)
    start_time: time
    end_time: time
    break_type: BreakType = BreakType.REST
    is_paid: bool | None = None
    is_required: bool = False
    duration: int | None = Field(default=None, ge=0)
    description: str | None = None
    is_flexible: bool = False
    flexibility_minutes: int = Field(default=0, ge=0, le=120)
    sort_order: int | None = Field(default=None, ge=0)


class ScheduleBreakRead(_TimeWindowModel):
    id: int
    parent_type: BreakParentType
    parent_id: int
    name: str
    start_time: time
    end_time: time
    break_type: BreakType
    is_paid: bool
    is_required: bool
    duration: int | None
    description: str | None
    is_flexible: bool
    flexibility_minutes: int
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


class FixedScheduleUpsert(_TimeWindowModel):
    is_working_day: bool = True
    start_time: time | None = None
    end_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None
    notes: str | None = None


class TemplateDayInput(_TimeWindowModel):
    day_of_week: int = Field(ge=0, le=6)
    is_working_day: bool = True
    start_time: time | None = None
    end_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None
    notes: str | None = None


class ScheduleTemplateCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = None
    created_by: int | None = Field(default=None, ge=1)
    days: list[TemplateDayInput] = Field(default_factory=list, max_length=7)


class ScheduleTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = None
    days: list[TemplateDayInput] | None = Field(default=None, max_length=7)


class DailyExceptionCreate(_TimeWindowModel):
    date: date
    exception_type: ExceptionType
    is_working_day: bool | None = None
    start_time: time | None = None
    end_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None
    reason: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class HolidayInput(BaseModel):
    date: date
    reason: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class HolidayExceptionsRequest(BaseModel):
    employee_ids: list[int] = Field(min_length=1)
    holidays: list[HolidayInput] = Field(min_length=1)
    created_by: int | None = Field(default=None, ge=1)


class HolidayCreatedRead(BaseModel):
    employee_id: int
    date: date
    exception_id: int
    reason: str | None

    model_config = ConfigDict(from_attributes=True)


class EffectiveScheduleRead(_TimeWindowModel):
    date: date
    day_of_week: int
    type: str
    source: str
    source_id: int | None
    is_working_day: bool
    start_time: time | None
    end_time: time | None
    break_start_time: time | None
    break_end_time: time | None
    notes: str | None
    reason: str | None = None
    week_notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class EffectiveBreaksRead(_TimeWindowModel):
    date: date
    source: str
    source_id: int | None
    breaks: list[ScheduleBreakRead]
    work_start_time: time | None
    work_end_time: time | None
    is_working_day: bool

    model_config = ConfigDict(from_attributes=True)


class PlanifyYearRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    template_id: int = Field(ge=1)
    created_by: int | None = Field(default=None, ge=1)
    skip_existing_weeks: bool = False
    specific_weeks: list[int] | None = None
    exclude_weeks: list[int] = Field(default_factory=list)
    notes: str | None = None


class PlannedWeekRead(BaseModel):
    week_number: int
    action: Literal["created", "updated"]
    start_date: date
    end_date: date

    model_config = ConfigDict(from_attributes=True)


class UnitErrorRead(BaseModel):
    unit: str
    error: str
    code: str

    model_config = ConfigDict(from_attributes=True)


class BulkSummaryRead(BaseModel):
    total: int
    successful: int
    failed: int
    skipped: int = 0

    model_config = ConfigDict(from_attributes=True)


class PlanifyYearResponse(BaseModel):
    template_id: int
    template_name: str
    summary: BulkSummaryRead
    results: list[PlannedWeekRead]
    errors: list[UnitErrorRead]

    model_config = ConfigDict(from_attributes=True)


class HolidayBulkResponse(BaseModel):
    summary: BulkSummaryRead
    results: list[HolidayCreatedRead]
    errors: list[UnitErrorRead]

    model_config = ConfigDict(from_attributes=True)


class ApplyTemplateBreaksRequest(BaseModel):
    template_day_id: int = Field(ge=1)
    schedule_ids: list[int] = Field(min_length=1)
    created_by: int | None = Field(default=None, ge=1)


class AppliedScheduleRead(BaseModel):
    schedule_id: int
    success: bool
    breaks_applied: int = 0
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ApplyTemplateBreaksResponse(BaseModel):
    message: str
    summary: BulkSummaryRead
    results: list[AppliedScheduleRead]

    model_config = ConfigDict(from_attributes=True)


class DateRangeRequest(BaseModel):
    start_date: str
    end_date: str


class ScheduleConflictRead(_TimeWindowModel):
    date: date
    type: str
    message: str
    start_time: time | None = None
    end_time: time | None = None
    break_start_time: time | None = None
    break_end_time: time | None = None

    model_config = ConfigDict(from_attributes=True)


class ConflictReportRead(BaseModel):
    has_conflicts: bool
    conflict_count: int
    conflicts: list[ScheduleConflictRead]

    model_config = ConfigDict(from_attributes=True)


class BreakValidationIssueRead(BaseModel):
    break_index: int
    type: str
    message: str
    break_name: str
    conflict_index: int | None = None
    conflict_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class BreakConflictDayRead(BaseModel):
    date: date
    source: str
    source_id: int | None
    work_hours: str
    breaks_count: int
    errors: list[BreakValidationIssueRead]

    model_config = ConfigDict(from_attributes=True)


class BreakConflictReportRead(BaseModel):
    start_date: date
    end_date: date
    has_conflicts: bool
    conflict_count: int
    conflicts: list[BreakConflictDayRead]

    model_config = ConfigDict(from_attributes=True)


class BreakValidationRequest(_TimeWindowModel):
    work_start_time: time
    work_end_time: time
    breaks: list[ScheduleBreakInput]


class BreakValidationResponse(BaseModel):
    is_valid: bool
    errors: list[BreakValidationIssueRead]

    model_config = ConfigDict(from_attributes=True)


class WorkTimeRequest(_TimeWindowModel):
    work_start_time: time
    work_end_time: time
    breaks: list[ScheduleBreakInput] = Field(default_factory=list)


class WorkTimeStatsRead(BaseModel):
    total_work_minutes: int
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int
    effective_work_minutes: int
    unpaid_breaks_exceed_work: bool
    total_hours: float
    effective_hours: float
    break_hours: float
    paid_break_hours: float
    unpaid_break_hours: float

    model_config = ConfigDict(from_attributes=True)


class TemplateUsageRead(BaseModel):
    template_id: int
    template_name: str
    weeks_used: int

    model_config = ConfigDict(from_attributes=True)


class SchedulingStatsRead(BaseModel):
    year: int
    total_weeks: int
    scheduled_weeks: int
    unscheduled_weeks: int
    scheduled_weeks_percentage: float
    daily_exceptions: int
    templates_used: int
    template_usage: list[TemplateUsageRead]

    model_config = ConfigDict(from_attributes=True)


class BreakReportSummaryRead(BaseModel):
    total_days: int
    working_days: int
    total_breaks: int
    total_break_minutes: int
    total_paid_break_minutes: int
    total_unpaid_break_minutes: int
    total_effective_work_minutes: int
    average_breaks_per_day: float
    average_break_minutes_per_day: float
    total_break_hours: float
    total_paid_break_hours: float
    total_unpaid_break_hours: float

    model_config = ConfigDict(from_attributes=True)


class BreakReportDayRead(BaseModel):
    date: date
    day_of_week: int
    is_working_day: bool
    source: str
    work_hours: str | None
    breaks_count: int
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int
    work_time: WorkTimeStatsRead | None

    model_config = ConfigDict(from_attributes=True)


class BreakReportRead(BaseModel):
    employee_id: int
    employee_name: str
    start_date: date
    end_date: date
    days: list[BreakReportDayRead]
    summary: BreakReportSummaryRead

    model_config = ConfigDict(from_attributes=True)


class WeekInfoRead(BaseModel):
    year: int
    week_number: int
    start_date: date
    end_date: date
    is_current_week: bool
    total_weeks_in_year: int

    model_config = ConfigDict(from_attributes=True)


class CurrentWeekRead(BaseModel):
    year: int
    week_number: int
    start_date: date
    end_date: date
    total_weeks_in_year: int


class YearOverviewRead(BaseModel):
    year: int
    total_weeks: int
    weeks: list[WeekInfoRead]
    current_week: int | None

    model_config = ConfigDict(from_attributes=True)


class HealthRead(BaseModel):
    status: str
    app_name: str
    schema_guard: dict[str, Any]


class WeekPlanInput(BaseModel):
    week_number: int
    template_id: int | None = Field(default=None, ge=1)
    notes: str | None = None


class WeeklyBulkRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    weeks: list[WeekPlanInput] = Field(min_length=1)
    created_by: int | None = Field(default=None, ge=1)


class WeeklyBulkResponse(BaseModel):
    message: str
    summary: BulkSummaryRead
    results: list[PlannedWeekRead]
    errors: list[UnitErrorRead]

    model_config = ConfigDict(from_attributes=True)


class CopyTemplateRequest(BaseModel):
    template_id: int = Field(ge=1)
    year: int = Field(ge=2000, le=2100)
    week_numbers: list[int] = Field(min_length=1)
    created_by: int | None = Field(default=None, ge=1)


class CopyTemplateResponse(BaseModel):
    message: str
    template_id: int
    template_name: str
    summary: BulkSummaryRead
    results: list[PlannedWeekRead]
    errors: list[UnitErrorRead]

    model_config = ConfigDict(from_attributes=True)


class StandardBreaksRequest(_TimeWindowModel):
    employee_ids: list[int] = Field(min_length=1)
    created_by: int | None = Field(default=None, ge=1)
    breaks: list[ScheduleBreakInput] | None = None
    work_start_time: time = time(9, 0)
    work_end_time: time = time(17, 0)


class EmployeeBreaksAppliedRead(BaseModel):
    employee_id: int
    success: bool
    employee_name: str | None = None
    schedules_processed: int = 0
    breaks_applied: int = 0
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class StandardBreaksResponse(BaseModel):
    message: str
    summary: BulkSummaryRead
    results: list[EmployeeBreaksAppliedRead]
    errors: list[UnitErrorRead]

    model_config = ConfigDict(from_attributes=True)


class OptimizedBreakRead(_TimeWindowModel):
    name: str
    start_time: time
    end_time: time
    break_type: str | None
    is_paid: bool | None
    was_optimized: bool

    model_config = ConfigDict(from_attributes=True)


class BreakSuggestionRead(BaseModel):
    original: str
    issue: str
    suggestion: str

    model_config = ConfigDict(from_attributes=True)


class BreakOptimizationRead(BaseModel):
    original_breaks: list[ScheduleBreakInput]
    optimized_breaks: list[OptimizedBreakRead]
    suggestions: list[BreakSuggestionRead]
    has_optimizations: bool

    model_config = ConfigDict(from_attributes=True)


class EmployeesBreakStatsRequest(BaseModel):
    employee_ids: list[int] = Field(min_length=1)
    date: str


class EmployeeBreakStatsRead(BaseModel):
    employee_id: int
    employee_name: str | None = None
    employee_code: str | None = None
    is_working_day: bool = False
    source: str | None = None
    breaks_count: int = 0
    work_time: WorkTimeStatsRead | None = None
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class EmployeeBreakStatsSummaryRead(BaseModel):
    total_employees: int
    working_employees: int
    total_breaks: int
    average_breaks_per_employee: float
    average_effective_hours: float

    model_config = ConfigDict(from_attributes=True)


class EmployeesBreakStatsRead(BaseModel):
    date: date
    stats: list[EmployeeBreakStatsRead]
    summary: EmployeeBreakStatsSummaryRead

    model_config = ConfigDict(from_attributes=True)


class WeeklyAssignmentRead(BaseModel):
    id: int
    employee_id: int
    year: int
    week_number: int
    template_id: int | None
    start_date: date
    end_date: date
    notes: str | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class DailyExceptionRead(_TimeWindowModel):
    id: int
    employee_id: int
    date: date
    exception_type: ExceptionType
    is_working_day: bool
    start_time: time | None
    end_time: time | None
    break_start_time: time | None
    break_end_time: time | None
    reason: str | None
    notes: str | None
    is_active: bool
    is_approved: bool

    model_config = ConfigDict(from_attributes=True)


class YearCalendarStatsRead(BaseModel):
    total_weeks: int
    scheduled_weeks: int
    unscheduled_weeks: int
    daily_exceptions: int
    templates_used: int

    model_config = ConfigDict(from_attributes=True)


class YearCalendarRead(BaseModel):
    employee_id: int
    employee_name: str
    employee_code: str | None
    year: int
    weekly_assignments: list[WeeklyAssignmentRead]
    daily_exceptions: list[DailyExceptionRead]
    stats: YearCalendarStatsRead

    model_config = ConfigDict(from_attributes=True)
