"""Scheduling core schema

Revision ID: 0001_scheduling_core
Revises:
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_scheduling_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

daily_exception_type = postgresql.ENUM(
    "custom_hours",
    "day_off",
    "holiday",
    "vacation",
    "sick_leave",
    "special_event",
    name="daily_exception_type",
    create_type=False,
)
schedule_break_parent_type = postgresql.ENUM(
    "schedule",
    "template_day",
    "daily_exception",
    name="schedule_break_parent_type",
    create_type=False,
)
schedule_break_type = postgresql.ENUM(
    "paid",
    "unpaid",
    "meal",
    "rest",
    "personal",
    "other",
    name="schedule_break_type",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "ADMIN",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def _time_window() -> list[sa.Column]:
    return [
        sa.Column("is_working_day", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("break_start_time", sa.Time(), nullable=True),
        sa.Column("break_end_time", sa.Time(), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    daily_exception_type.create(bind, checkfirst=True)
    schedule_break_parent_type.create(bind, checkfirst=True)
    schedule_break_type.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("employee_code", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("employee_code", name="uq_employees_employee_code"),
    )

    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        *_time_window(),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "day_of_week", name="uq_schedules_employee_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedules_day_of_week"),
    )
    op.create_index("ix_schedules_employee_id", "schedules", ["employee_id"])

    op.create_table(
        "schedule_templates",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("name", name="uq_schedule_templates_name"),
    )

    op.create_table(
        "schedule_template_days",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        *_time_window(),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["template_id"], ["schedule_templates.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("template_id", "day_of_week", name="uq_schedule_template_days_template_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_template_days_day_of_week"),
    )
    op.create_index("ix_schedule_template_days_template_id", "schedule_template_days", ["template_id"])

    op.create_table(
        "weekly_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["schedule_templates.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "year", "week_number", name="uq_weekly_schedules_employee_year_week"),
        sa.CheckConstraint("week_number BETWEEN 1 AND 53", name="ck_weekly_schedules_week_number"),
    )
    op.create_index("ix_weekly_schedules_employee_id", "weekly_schedules", ["employee_id"])
    op.create_index("ix_weekly_schedules_template_id", "weekly_schedules", ["template_id"])
    op.create_index("ix_weekly_schedules_year_week", "weekly_schedules", ["year", "week_number"])

    op.create_table(
        "daily_schedule_exceptions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("exception_type", daily_exception_type, nullable=False),
        *_time_window(),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "date", name="uq_daily_schedule_exceptions_employee_date"),
    )
    op.create_index("ix_daily_schedule_exceptions_employee_id", "daily_schedule_exceptions", ["employee_id"])
    op.create_index("ix_daily_schedule_exceptions_date", "daily_schedule_exceptions", ["date"])

    op.create_table(
        "schedule_breaks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("parent_type", schedule_break_parent_type, nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("break_type", schedule_break_type, nullable=False, server_default=sa.text("'rest'")),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_flexible", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("flexibility_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"], ondelete="SET NULL"),
        sa.CheckConstraint("flexibility_minutes BETWEEN 0 AND 120", name="ck_schedule_breaks_flexibility_minutes"),
    )
    op.create_index("ix_schedule_breaks_parent", "schedule_breaks", ["parent_type", "parent_id"])
    op.create_index("ix_schedule_breaks_parent_sort", "schedule_breaks", ["parent_id", "sort_order"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("ts_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_schedule_breaks_parent_sort", table_name="schedule_breaks")
    op.drop_index("ix_schedule_breaks_parent", table_name="schedule_breaks")
    op.drop_table("schedule_breaks")

    op.drop_index("ix_daily_schedule_exceptions_date", table_name="daily_schedule_exceptions")
    op.drop_index("ix_daily_schedule_exceptions_employee_id", table_name="daily_schedule_exceptions")
    op.drop_table("daily_schedule_exceptions")

    op.drop_index("ix_weekly_schedules_year_week", table_name="weekly_schedules")
    op.drop_index("ix_weekly_schedules_template_id", table_name="weekly_schedules")
    op.drop_index("ix_weekly_schedules_employee_id", table_name="weekly_schedules")
    op.drop_table("weekly_schedules")

    op.drop_index("ix_schedule_template_days_template_id", table_name="schedule_template_days")
    op.drop_table("schedule_template_days")
    op.drop_table("schedule_templates")

    op.drop_index("ix_schedules_employee_id", table_name="schedules")
    op.drop_table("schedules")
    op.drop_table("employees")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    schedule_break_type.drop(bind, checkfirst=True)
    schedule_break_parent_type.drop(bind, checkfirst=True)
    daily_exception_type.drop(bind, checkfirst=True)
