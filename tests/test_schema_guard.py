from __future__ import annotations

import unittest
from unittest.mock import patch

from app import models  # noqa: F401
from app.db import Base, build_engine
from app.services.schema_guard import REQUIRED_TABLE_COLUMNS, verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, columns_by_table: dict[str, set[str]]):
        self._columns_by_table = columns_by_table

    def get_table_names(self):  # type: ignore[no-untyped-def]
        return list(self._columns_by_table)

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        return [{"name": item} for item in self._columns_by_table[table_name]]


def _complete_columns() -> dict[str, set[str]]:
    return {table: set(columns) for table, columns in REQUIRED_TABLE_COLUMNS.items()}


class SchemaGuardTests(unittest.TestCase):
    def test_ok_when_every_required_column_exists(self) -> None:
        fake_inspector = _FakeInspector(_complete_columns())

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0001_scheduling_core"))  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])

    def test_reports_missing_tables_and_columns(self) -> None:
        columns = _complete_columns()
        del columns["schedule_breaks"]
        columns["weekly_schedules"] = {"id", "employee_id", "year"}
        fake_inspector = _FakeInspector(columns)

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0001_scheduling_core"))  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_TABLE:schedule_breaks", result.issues)
        self.assertIn("MISSING_COLUMNS:weekly_schedules:end_date,start_date,template_id,week_number", result.issues)

    def test_reports_empty_alembic_version(self) -> None:
        fake_inspector = _FakeInspector(_complete_columns())

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine(None))  # type: ignore[arg-type]

        self.assertEqual(result.issues, ["ALEMBIC_VERSION_EMPTY"])
        self.assertEqual(result.to_dict()["issue_count"], 1)

    def test_metadata_tables_satisfy_the_guard(self) -> None:
        engine = build_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(engine)

        result = verify_runtime_schema(engine, check_alembic_version=False)

        self.assertTrue(result.ok, result.issues)
