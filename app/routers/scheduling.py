from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.audit import log_audit
from app.db import get_db
from app.schemas import (
    ApplyTemplateBreaksRequest,
    ApplyTemplateBreaksResponse,
    BreakConflictReportRead,
    BreakOptimizationRead,
    BreakReportRead,
    BreakValidationRequest,
    BreakValidationResponse,
    ConflictReportRead,
    CopyTemplateRequest,
    CopyTemplateResponse,
    CurrentWeekRead,
    DateRangeRequest,
    EffectiveBreaksRead,
    EffectiveScheduleRead,
    EmployeesBreakStatsRead,
    EmployeesBreakStatsRequest,
    HolidayBulkResponse,
    HolidayExceptionsRequest,
    PlanifyYearRequest,
    PlanifyYearResponse,
    SchedulingStatsRead,
    StandardBreaksRequest,
    StandardBreaksResponse,
    WeekInfoRead,
    WeeklyBulkRequest,
    WeeklyBulkResponse,
    WorkTimeRequest,
    WorkTimeStatsRead,
    YearCalendarRead,
    YearOverviewRead,
)
from app.services.break_validation import optimize_breaks_for_schedule, validate_breaks_for_parent
from app.services.bulk_planner import (
    PlanifyYearOptions,
    WeekPlan,
    apply_template_breaks_to_schedules,
    bulk_assign_weeks,
    copy_template_to_weeks,
    create_standard_breaks_for_employees,
    planify_year_with_template,
)
from app.services.calendar_weeks import (
    current_week,
    parse_iso_date,
    week_dates,
    week_info,
    weeks_in_year,
    year_overview,
)
from app.services.daily_exceptions import create_holiday_exceptions
from app.services.schedule_conflicts import analyze_break_conflicts, validate_schedule_conflicts
from app.services.schedule_reports import (
    generate_break_report,
    get_employees_break_stats,
    get_scheduling_stats,
    get_year_calendar,
)
from app.services.schedule_resolver import effective_breaks, resolve, resolve_range
from app.services.work_time import calculate_effective_work_time

router = APIRouter(tags=["scheduling"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get(
    "/api/scheduling/employees/{employee_id}/effective-schedule/{day}",
    response_model=EffectiveScheduleRead,
)
def get_effective_schedule(employee_id: int, day: str, db: Session = Depends(get_db)) -> EffectiveScheduleRead:
    schedule = resolve(db, employee_id=employee_id, day=parse_iso_date(day))
    return EffectiveScheduleRead.model_validate(schedule)


@router.get(
    "/api/scheduling/employees/{employee_id}/effective-schedule-range",
    response_model=list[EffectiveScheduleRead],
)
def get_effective_schedule_range(
    employee_id: int,
    start_date: str,
    end_date: str,
    db: Session = Depends(get_db),
) -> list[EffectiveScheduleRead]:
    schedules = resolve_range(
        db,
        employee_id=employee_id,
        start_date=parse_iso_date(start_date),
        end_date=parse_iso_date(end_date),
    )
    return [EffectiveScheduleRead.model_validate(item) for item in schedules]


@router.post(
    "/api/scheduling/employees/{employee_id}/planify-year",
    response_model=PlanifyYearResponse,
)
def planify_year(
    employee_id: int,
    payload: PlanifyYearRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> PlanifyYearResponse:
    result = planify_year_with_template(
        db,
        employee_id=employee_id,
        year=payload.year,
        template_id=payload.template_id,
        created_by=payload.created_by,
        options=PlanifyYearOptions(
            skip_existing_weeks=payload.skip_existing_weeks,
            specific_weeks=payload.specific_weeks,
            exclude_weeks=payload.exclude_weeks,
            notes=payload.notes,
        ),
    )
    log_audit(
        db,
        action="SCHEDULE_YEAR_PLANNED",
        success=result.summary.failed == 0,
        actor_id=payload.created_by,
        entity_type="employee",
        entity_id=employee_id,
        details={
            "year": payload.year,
            "template_id": result.template_id,
            "successful": result.summary.successful,
            "failed": result.summary.failed,
            "skipped": result.summary.skipped,
        },
        request_id=_request_id(request),
    )
    return PlanifyYearResponse.model_validate(result)


@router.post(
    "/api/scheduling/employees/{employee_id}/validate-conflicts",
    response_model=ConflictReportRead,
)
def validate_conflicts(
    employee_id: int,
    payload: DateRangeRequest,
    db: Session = Depends(get_db),
) -> ConflictReportRead:
    report = validate_schedule_conflicts(
        db,
        employee_id=employee_id,
        start_date=parse_iso_date(payload.start_date),
        end_date=parse_iso_date(payload.end_date),
    )
    return ConflictReportRead.model_validate(report)


@router.post(
    "/api/scheduling/employees/{employee_id}/analyze-break-conflicts",
    response_model=BreakConflictReportRead,
)
def analyze_conflicting_breaks(
    employee_id: int,
    payload: DateRangeRequest,
    db: Session = Depends(get_db),
) -> BreakConflictReportRead:
    report = analyze_break_conflicts(
        db,
        employee_id=employee_id,
        start_date=parse_iso_date(payload.start_date),
        end_date=parse_iso_date(payload.end_date),
    )
    return BreakConflictReportRead.model_validate(report)


@router.get(
    "/api/scheduling/employees/{employee_id}/effective-breaks/{day}",
    response_model=EffectiveBreaksRead,
)
def get_effective_breaks(employee_id: int, day: str, db: Session = Depends(get_db)) -> EffectiveBreaksRead:
    result = effective_breaks(db, employee_id=employee_id, day=parse_iso_date(day))
    return EffectiveBreaksRead.model_validate(result)


@router.get(
    "/api/scheduling/employees/{employee_id}/stats/{year}",
    response_model=SchedulingStatsRead,
)
def get_stats(employee_id: int, year: int, db: Session = Depends(get_db)) -> SchedulingStatsRead:
    return SchedulingStatsRead.model_validate(get_scheduling_stats(db, employee_id=employee_id, year=year))


@router.get(
    "/api/scheduling/employees/{employee_id}/break-report",
    response_model=BreakReportRead,
)
def get_break_report(
    employee_id: int,
    start_date: str,
    end_date: str,
    db: Session = Depends(get_db),
) -> BreakReportRead:
    report = generate_break_report(
        db,
        employee_id=employee_id,
        start_date=parse_iso_date(start_date),
        end_date=parse_iso_date(end_date),
    )
    return BreakReportRead.model_validate(report)


@router.post(
    "/api/scheduling/apply-template-breaks",
    response_model=ApplyTemplateBreaksResponse,
)
def apply_template_breaks(
    payload: ApplyTemplateBreaksRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> ApplyTemplateBreaksResponse:
    result = apply_template_breaks_to_schedules(
        db,
        template_day_id=payload.template_day_id,
        schedule_ids=payload.schedule_ids,
        created_by=payload.created_by,
    )
    log_audit(
        db,
        action="TEMPLATE_BREAKS_APPLIED",
        success=result.summary.failed == 0,
        actor_id=payload.created_by,
        entity_type="schedule_template_day",
        entity_id=payload.template_day_id,
        details={
            "schedule_ids": list(payload.schedule_ids),
            "successful": result.summary.successful,
            "failed": result.summary.failed,
        },
        request_id=_request_id(request),
    )
    return ApplyTemplateBreaksResponse.model_validate(result)


@router.post(
    "/api/scheduling/holidays",
    response_model=HolidayBulkResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_holidays(
    payload: HolidayExceptionsRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> HolidayBulkResponse:
    result = create_holiday_exceptions(
        db,
        employee_ids=payload.employee_ids,
        holidays=payload.holidays,
        created_by=payload.created_by,
    )
    log_audit(
        db,
        action="HOLIDAY_EXCEPTIONS_CREATED",
        success=result.summary.failed == 0,
        actor_id=payload.created_by,
        entity_type="daily_schedule_exception",
        details={
            "dates": [holiday.date.isoformat() for holiday in payload.holidays],
            "successful": result.summary.successful,
            "failed": result.summary.failed,
        },
        request_id=_request_id(request),
    )
    return HolidayBulkResponse.model_validate(result)


@router.post("/api/scheduling/breaks/validate", response_model=BreakValidationResponse)
def validate_breaks(payload: BreakValidationRequest) -> BreakValidationResponse:
    result = validate_breaks_for_parent(None, payload.breaks, payload.work_start_time, payload.work_end_time)
    return BreakValidationResponse.model_validate(result)


@router.post("/api/scheduling/breaks/calculate-work-time", response_model=WorkTimeStatsRead)
def calculate_work_time(payload: WorkTimeRequest) -> WorkTimeStatsRead:
    stats = calculate_effective_work_time(payload.work_start_time, payload.work_end_time, payload.breaks)
    return WorkTimeStatsRead.model_validate(stats)


@router.get("/api/scheduling/utils/current-week", response_model=CurrentWeekRead)
def get_current_week() -> CurrentWeekRead:
    current = current_week()
    week_range = week_dates(current.year, current.week_number)
    return CurrentWeekRead(
        year=current.year,
        week_number=current.week_number,
        start_date=week_range.start_date,
        end_date=week_range.end_date,
        total_weeks_in_year=weeks_in_year(current.year),
    )


@router.get("/api/scheduling/utils/week-info/{year}/{week_number}", response_model=WeekInfoRead)
def get_week_info(year: int, week_number: int) -> WeekInfoRead:
    return WeekInfoRead.model_validate(week_info(year, week_number))


@router.get("/api/scheduling/utils/year-overview/{year}", response_model=YearOverviewRead)
def get_year_overview(year: int) -> YearOverviewRead:
    return YearOverviewRead.model_validate(year_overview(year))


@router.post(
    "/api/scheduling/employees/{employee_id}/weekly-bulk",
    response_model=WeeklyBulkResponse,
    status_code=status.HTTP_201_CREATED,
)
def assign_weeks_in_bulk(
    employee_id: int,
    payload: WeeklyBulkRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WeeklyBulkResponse:
    result = bulk_assign_weeks(
        db,
        employee_id=employee_id,
        year=payload.year,
        weeks=[
            WeekPlan(week_number=item.week_number, template_id=item.template_id, notes=item.notes)
            for item in payload.weeks
        ],
        created_by=payload.created_by,
    )
    log_audit(
        db,
        action="WEEKLY_SCHEDULES_BULK_ASSIGNED",
        success=result.summary.failed == 0,
        actor_id=payload.created_by,
        entity_type="employee",
        entity_id=employee_id,
        details={
            "year": payload.year,
            "successful": result.summary.successful,
            "failed": result.summary.failed,
        },
        request_id=_request_id(request),
    )
    return WeeklyBulkResponse.model_validate(result)


@router.post(
    "/api/scheduling/employees/{employee_id}/copy-template",
    response_model=CopyTemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
def copy_template(
    employee_id: int,
    payload: CopyTemplateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> CopyTemplateResponse:
    result = copy_template_to_weeks(
        db,
        employee_id=employee_id,
        template_id=payload.template_id,
        year=payload.year,
        week_numbers=payload.week_numbers,
        created_by=payload.created_by,
    )
    log_audit(
        db,
        action="TEMPLATE_COPIED_TO_WEEKS",
        success=result.summary.failed == 0,
        actor_id=payload.created_by,
        entity_type="employee",
        entity_id=employee_id,
        details={
            "year": payload.year,
            "template_id": result.template_id,
            "successful": result.summary.successful,
            "failed": result.summary.failed,
        },
        request_id=_request_id(request),
    )
    return CopyTemplateResponse.model_validate(result)


@router.get(
    "/api/scheduling/employees/{employee_id}/calendar/{year}",
    response_model=YearCalendarRead,
)
def get_calendar(employee_id: int, year: int, db: Session = Depends(get_db)) -> YearCalendarRead:
    return YearCalendarRead.model_validate(get_year_calendar(db, employee_id=employee_id, year=year))


@router.post("/api/scheduling/employees/break-stats", response_model=EmployeesBreakStatsRead)
def get_break_stats(payload: EmployeesBreakStatsRequest, db: Session = Depends(get_db)) -> EmployeesBreakStatsRead:
    stats = get_employees_break_stats(db, employee_ids=payload.employee_ids, day=parse_iso_date(payload.date))
    return EmployeesBreakStatsRead.model_validate(stats)


@router.post("/api/scheduling/create-standard-breaks", response_model=StandardBreaksResponse)
def create_standard_breaks(
    payload: StandardBreaksRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> StandardBreaksResponse:
    result = create_standard_breaks_for_employees(
        db,
        employee_ids=payload.employee_ids,
        created_by=payload.created_by,
        breaks=payload.breaks,
        work_start=payload.work_start_time,
        work_end=payload.work_end_time,
    )
    log_audit(
        db,
        action="STANDARD_BREAKS_APPLIED",
        success=result.summary.failed == 0 and not result.errors,
        actor_id=payload.created_by,
        entity_type="employee",
        details={
            "employee_ids": list(payload.employee_ids),
            "successful": result.summary.successful,
            "failed": result.summary.failed,
            "schedule_errors": len(result.errors),
        },
        request_id=_request_id(request),
    )
    return StandardBreaksResponse.model_validate(result)


@router.post("/api/scheduling/breaks/optimize", response_model=BreakOptimizationRead)
def optimize_breaks(payload: BreakValidationRequest) -> BreakOptimizationRead:
    optimization = optimize_breaks_for_schedule(payload.breaks, payload.work_start_time, payload.work_end_time)
    return BreakOptimizationRead.model_validate(optimization)
