from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


RUN_HOUR_UTC = 6
REMINDER_HOUR_UTC = 9
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 28

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class Cadence(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: "Cadence | str") -> "Cadence":
        """Coerce a cadence value; anything outside the enum is a programmer error."""
        if isinstance(value, Cadence):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid cadence: {value!r}") from None


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


# Legacy synonym accepted by period normalization only.
PERIOD_TYPE_ALIASES: dict[str, PeriodType] = {"yearly": PeriodType.ANNUAL}


@dataclass(frozen=True)
class ReportingPeriod:
    """A closed calendar interval; both ends are inclusive calendar dates."""

    period_start: date
    period_end: date

    def __post_init__(self) -> None:
        if self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")

    def contains(self, day: date) -> bool:
        return self.period_start <= day <= self.period_end


@dataclass(frozen=True)
class NormalizedPeriod:
    period_start: str  # YYYY-MM-DD
    period_end: str  # YYYY-MM-DD
    period_type: str
    was_adjusted: bool
    label: str


@dataclass(frozen=True)
class ScheduleState:
    """Scheduling inputs for one recurring metric request schedule."""

    schedule_id: str
    cadence: Cadence
    day_of_month: int
    next_run_at: datetime
    last_run_at: datetime | None = None
    is_active: bool = True
    due_days_offset: int = 14
    reminder_enabled: bool = True
    reminder_days_before_due: tuple[int, ...] = (7, 3, 1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cadence", Cadence.parse(self.cadence))
        object.__setattr__(self, "day_of_month", clamp_day_of_month(self.day_of_month))


@dataclass(frozen=True)
class ScheduledRun:
    schedule_id: str
    run_at: datetime
    period: ReportingPeriod
    period_label: str
    due_date: date
    reminder_dates: tuple[datetime, ...]
    next_run_at: datetime


def clamp_day_of_month(day_of_month: int) -> int:
    return max(MIN_DAY_OF_MONTH, min(MAX_DAY_OF_MONTH, int(day_of_month)))
