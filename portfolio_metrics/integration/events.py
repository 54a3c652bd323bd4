from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class DomainEvent:
    """Base type for all domain events."""

    occurred_at: datetime


# --- Scheduling events -------------------------------------------------------


@dataclass(frozen=True)
class ScheduleRunPlanned(DomainEvent):
    schedule_id: str
    cadence: str
    period_start: date
    period_end: date
    period_label: str
    due_date: date
    next_run_at: datetime


# --- Benchmark events --------------------------------------------------------


@dataclass(frozen=True)
class BenchmarksRecalculated(DomainEvent):
    groups_total: int
    groups_with_sufficient_data: int
