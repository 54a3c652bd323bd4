from __future__ import annotations

from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from portfolio_metrics.common.time_utils import utc_calendar_date, utc_now
from portfolio_metrics.periods.domain.models import (
    MONTH_NAMES,
    Cadence,
    PeriodType,
    ReportingPeriod,
)


_UNIT_MONTHS: dict[Cadence, int] = {
    Cadence.MONTHLY: 1,
    Cadence.QUARTERLY: 3,
    Cadence.ANNUAL: 12,
}


def quarter_of(month: int) -> int:
    return (month - 1) // 3 + 1


def unit_months(cadence: Cadence | str) -> int:
    return _UNIT_MONTHS[Cadence.parse(cadence)]


def start_of_unit(cadence: Cadence | str, day: date) -> date:
    """First day of the calendar month, quarter or year containing day."""
    c = Cadence.parse(cadence)
    if c is Cadence.MONTHLY:
        return day.replace(day=1)
    if c is Cadence.QUARTERLY:
        return date(day.year, (quarter_of(day.month) - 1) * 3 + 1, 1)
    return date(day.year, 1, 1)


def end_of_unit(cadence: Cadence | str, day: date) -> date:
    start = start_of_unit(cadence, day)
    return start + relativedelta(months=unit_months(cadence)) - timedelta(days=1)


def calculate_reporting_period(
    cadence: Cadence | str,
    run_date: date | datetime | None = None,
) -> ReportingPeriod:
    """Return the previous complete period relative to run_date.

    Reports are generated after a period closes, so a run in February
    reports on January, a run in Q2 reports on Q1 and a run in 2025
    reports on 2024.
    """
    c = Cadence.parse(cadence)
    day = utc_calendar_date(run_date if run_date is not None else utc_now())
    previous = start_of_unit(c, day) - relativedelta(months=_UNIT_MONTHS[c])
    return ReportingPeriod(period_start=previous, period_end=end_of_unit(c, previous))


def format_reporting_period(cadence: Cadence | str, period_start: date | datetime) -> str:
    """Display label: 'January 2025', 'Q1 2025' or '2025'."""
    c = Cadence.parse(cadence)
    day = utc_calendar_date(period_start)
    if c is Cadence.MONTHLY:
        return f"{MONTH_NAMES[day.month - 1]} {day.year:04d}"
    if c is Cadence.QUARTERLY:
        return f"Q{quarter_of(day.month)} {day.year:04d}"
    return f"{day.year:04d}"


def get_cadence_description(cadence: Cadence | str) -> str:
    return {
        Cadence.MONTHLY: "Monthly",
        Cadence.QUARTERLY: "Quarterly",
        Cadence.ANNUAL: "Annually",
    }[Cadence.parse(cadence)]


def cadence_to_period_type(cadence: Cadence | str) -> PeriodType:
    # Metric requests created by a schedule use the schedule's cadence as period type.
    return PeriodType(Cadence.parse(cadence).value)
