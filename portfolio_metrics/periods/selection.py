from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from portfolio_metrics.common.time_utils import utc_now
from portfolio_metrics.periods.reporting import quarter_of


_QUARTER_MONTHS: dict[int, tuple[int, int]] = {
    1: (1, 3),
    2: (4, 6),
    3: (7, 9),
    4: (10, 12),
}

_QUARTER_END_DAYS: dict[int, int] = {1: 31, 2: 30, 3: 30, 4: 31}

MIN_SELECTABLE_YEAR = 2000


@dataclass(frozen=True)
class PeriodDates:
    period_start: str  # YYYY-MM-DD
    period_end: str  # YYYY-MM-DD


@dataclass(frozen=True)
class PeriodOption:
    year: int
    quarter: int | None
    label: str


def calculate_period_dates(year: int, quarter: int | None = None) -> PeriodDates:
    """ISO start/end for a calendar quarter, or for the whole year when quarter is None."""
    if quarter is None:
        return PeriodDates(
            period_start=date(year, 1, 1).isoformat(),
            period_end=date(year, 12, 31).isoformat(),
        )
    if not is_valid_quarter(quarter):
        raise ValueError(f"Invalid quarter: {quarter!r}")
    start_month, end_month = _QUARTER_MONTHS[quarter]
    return PeriodDates(
        period_start=date(year, start_month, 1).isoformat(),
        period_end=date(year, end_month, _QUARTER_END_DAYS[quarter]).isoformat(),
    )


def get_period_label(year: int, quarter: int | None = None) -> str:
    if quarter is None:
        return f"{year}"
    return f"Q{quarter} {year}"


def available_quarters(today: date | None = None) -> list[PeriodOption]:
    """Quarters of the current year (up to the current one) and the two years before, newest first."""
    today = today or utc_now().date()
    current_quarter = quarter_of(today.month)

    out: list[PeriodOption] = []
    for year in range(today.year, today.year - 3, -1):
        max_quarter = current_quarter if year == today.year else 4
        for q in range(max_quarter, 0, -1):
            out.append(PeriodOption(year=year, quarter=q, label=get_period_label(year, q)))
    return out


def available_years(today: date | None = None) -> list[PeriodOption]:
    # Annual requests only make sense for completed years.
    today = today or utc_now().date()
    return [
        PeriodOption(year=year, quarter=None, label=get_period_label(year))
        for year in range(today.year - 1, today.year - 7, -1)
    ]


def is_valid_quarter(quarter: object) -> bool:
    return isinstance(quarter, int) and not isinstance(quarter, bool) and 1 <= quarter <= 4


def is_valid_year(year: object, today: date | None = None) -> bool:
    if not isinstance(year, int) or isinstance(year, bool):
        return False
    today = today or utc_now().date()
    return MIN_SELECTABLE_YEAR <= year <= today.year + 1
