from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UnitError:
    unit: str
    error: str
    code: str


@dataclass(frozen=True, slots=True)
class BulkSummary:
    total: int
    successful: int
    failed: int
    skipped: int = 0
