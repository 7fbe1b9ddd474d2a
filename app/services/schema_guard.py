from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "issue_count": len(self.issues),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "employees": {"id", "full_name", "is_active"},
    "schedules": {"id", "employee_id", "day_of_week", "is_working_day", "start_time", "end_time"},
    "schedule_templates": {"id", "name", "is_active"},
    "schedule_template_days": {"id", "template_id", "day_of_week", "is_working_day"},
    "weekly_schedules": {"id", "employee_id", "year", "week_number", "template_id", "start_date", "end_date"},
    "daily_schedule_exceptions": {"id", "employee_id", "date", "exception_type", "is_working_day", "is_active"},
    "schedule_breaks": {"id", "parent_type", "parent_id", "start_time", "end_time", "is_paid", "sort_order"},
    "audit_logs": {"id", "action", "details"},
    "alembic_version": {"version_num"},
}


def verify_runtime_schema(engine: Engine, *, check_alembic_version: bool = True) -> SchemaGuardResult:
    issues: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())

    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        if table_name == "alembic_version" and not check_alembic_version:
            continue
        if table_name not in existing_tables:
            issues.append(f"MISSING_TABLE:{table_name}")
            continue
        column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")

    if check_alembic_version and "alembic_version" in existing_tables:
        try:
            with engine.connect() as connection:
                row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
        except SQLAlchemyError as exc:
            issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")
        else:
            if not (str(row).strip() if row is not None else ""):
                issues.append("ALEMBIC_VERSION_EMPTY")

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
    )
