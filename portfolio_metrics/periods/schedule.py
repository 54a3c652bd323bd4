from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable

from dateutil.relativedelta import relativedelta

from portfolio_metrics.common.time_utils import at_utc_hour, to_utc, utc_calendar_date, utc_now
from portfolio_metrics.periods.domain.models import (
    REMINDER_HOUR_UTC,
    RUN_HOUR_UTC,
    Cadence,
    clamp_day_of_month,
)
from portfolio_metrics.periods.reporting import start_of_unit, unit_months


def _as_utc_instant(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    return at_utc_hour(value, 0)


def _on_day(month_start: date, day: int) -> date:
    # Callers pass a day already clamped to 1..28; every month has at least 28 days.
    last_day = calendar.monthrange(month_start.year, month_start.month)[1]
    return month_start.replace(day=min(day, last_day))


def calculate_next_run_date(
    cadence: Cadence | str,
    day_of_month: int,
    from_date: date | datetime | None = None,
) -> datetime:
    """Next scheduled run strictly after from_date, at 06:00 UTC.

    Monthly schedules run on day_of_month of every month, quarterly ones on
    day_of_month of January, April, July and October, annual ones on
    day_of_month of January. day_of_month is clamped to 1..28.
    """
    c = Cadence.parse(cadence)
    day = clamp_day_of_month(day_of_month)
    now = _as_utc_instant(from_date if from_date is not None else utc_now())

    unit_start = start_of_unit(c, now.date())
    target = at_utc_hour(_on_day(unit_start, day), RUN_HOUR_UTC)
    if target <= now:
        next_start = unit_start + relativedelta(months=unit_months(c))
        target = at_utc_hour(_on_day(next_start, day), RUN_HOUR_UTC)
    return target


def calculate_next_run_after_completion(
    cadence: Cadence | str,
    day_of_month: int,
    last_run_date: date | datetime,
) -> datetime:
    """Advance one cadence unit past the unit containing last_run_date.

    Unlike calculate_next_run_date there is no comparison against the
    current time: a completed run always schedules the following unit.
    """
    c = Cadence.parse(cadence)
    day = clamp_day_of_month(day_of_month)
    last = _as_utc_instant(last_run_date)
    next_start = start_of_unit(c, last.date()) + relativedelta(months=unit_months(c))
    return at_utc_hour(_on_day(next_start, day), RUN_HOUR_UTC)


def calculate_reminder_dates(
    due_date: date | datetime,
    reminder_days_before_due: Iterable[int],
    now: datetime | None = None,
) -> list[datetime]:
    """Reminder instants at 09:00 UTC, earliest first, future ones only."""
    due_day = utc_calendar_date(due_date)
    current = to_utc(now) if now is not None else utc_now()

    reminders = {
        at_utc_hour(due_day - timedelta(days=int(d)), REMINDER_HOUR_UTC)
        for d in reminder_days_before_due
        if int(d) > 0
    }
    return sorted(r for r in reminders if r > current)


def is_schedule_due(next_run_at: datetime, now: datetime | None = None) -> bool:
    current = to_utc(now) if now is not None else utc_now()
    return to_utc(next_run_at) <= current
