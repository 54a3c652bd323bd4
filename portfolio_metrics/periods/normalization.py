"""Snap imprecise period dates to canonical period boundaries.

Period dates arrive from human input and document extraction and often land
mid-period ("2024-11-15" for Q4 2024). Everything here treats dates as
wall-clock calendar dates: a leading YYYY-MM-DD is read literally and never
shifted through a timezone.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Mapping, Sequence

from dateutil import parser as date_parser

from portfolio_metrics.periods.domain.models import (
    PERIOD_TYPE_ALIASES,
    Cadence,
    NormalizedPeriod,
    PeriodType,
)
from portfolio_metrics.periods.reporting import end_of_unit, format_reporting_period, start_of_unit


logger = logging.getLogger(__name__)

_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
# Missing parts of a free-form date resolve to January 1st, never to today.
_PARSE_DEFAULT = datetime(2000, 1, 1)


def parse_calendar_date(value: str | date | datetime | None) -> date | None:
    """Parse a calendar date; returns None when the value is not a real date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    m = _ISO_DATE_PREFIX.match(text)
    if m is not None:
        year, month, day = (int(g) for g in m.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    try:
        return date_parser.parse(text, default=_PARSE_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def resolve_period_type(period_type: PeriodType | str) -> PeriodType | None:
    if isinstance(period_type, PeriodType):
        return period_type
    key = str(period_type).strip().lower()
    if key in PERIOD_TYPE_ALIASES:
        return PERIOD_TYPE_ALIASES[key]
    try:
        return PeriodType(key)
    except ValueError:
        return None


def _canonical_bounds(day: date, period_type: PeriodType) -> tuple[date, date]:
    cadence = Cadence(period_type.value)
    return start_of_unit(cadence, day), end_of_unit(cadence, day)


def _iso(value: str | date | datetime) -> str:
    if isinstance(value, (date, datetime)):
        return parse_calendar_date(value).isoformat()  # type: ignore[union-attr]
    return str(value)


def normalize_period(
    period_start: str | date | datetime,
    period_end: str | date | datetime | None,
    period_type: PeriodType | str,
) -> NormalizedPeriod | None:
    """Snap a period to the canonical start/end of its containing period.

    Returns None when period_start cannot be parsed. Unknown period types
    are normalized as annual periods and logged.
    """
    day = parse_calendar_date(period_start)
    if day is None:
        logger.warning("Invalid period date: %r", period_start)
        return None

    resolved = resolve_period_type(period_type)
    if resolved is None:
        logger.warning("Unknown period type %r, normalizing as annual", period_type)
        resolved = PeriodType.ANNUAL

    start, end = _canonical_bounds(day, resolved)
    start_str = start.isoformat()
    end_str = end.isoformat()

    start_adjusted = day.isoformat() != start_str
    end_adjusted = period_end is not None and _iso(period_end) != end_str

    return NormalizedPeriod(
        period_start=start_str,
        period_end=end_str,
        period_type=resolved.value,
        was_adjusted=start_adjusted or end_adjusted,
        label=format_reporting_period(Cadence(resolved.value), start),
    )


def normalize_metric_periods(records: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Batch-normalize records carrying period_start/period_end/period_type.

    Original values are kept under original_period_start/original_period_end
    when normalization changed them.
    """
    out: list[dict[str, Any]] = []
    for record in records:
        row = dict(record)
        normalized = normalize_period(
            row.get("period_start"),  # type: ignore[arg-type]
            row.get("period_end"),
            row.get("period_type", ""),
        )
        if normalized is None:
            row["period_was_adjusted"] = False
            out.append(row)
            continue

        original_start = row.get("period_start")
        original_end = row.get("period_end")
        if original_start is not None and _iso(original_start) != normalized.period_start:
            row["original_period_start"] = original_start
        if original_end is not None and _iso(original_end) != normalized.period_end:
            row["original_period_end"] = original_end

        row["period_start"] = normalized.period_start
        row["period_end"] = normalized.period_end
        row["period_type"] = normalized.period_type
        row["period_was_adjusted"] = normalized.was_adjusted
        out.append(row)
    return out


def is_period_aligned(period_start: str | date | datetime, period_type: PeriodType | str) -> bool:
    """True if period_start already sits on its canonical period boundary."""
    day = parse_calendar_date(period_start)
    if day is None:
        return False

    resolved = resolve_period_type(period_type)
    if resolved is PeriodType.QUARTERLY:
        return day.day == 1 and day.month in (1, 4, 7, 10)
    if resolved is PeriodType.MONTHLY:
        return day.day == 1
    if resolved is PeriodType.ANNUAL:
        return day.day == 1 and day.month == 1
    # Unknown types have no boundary to check against.
    return True


def get_period_key(period_start: str | date | datetime, period_type: PeriodType | str) -> str | None:
    """Stable deduplication key, e.g. 'quarterly:2024-10-01'."""
    normalized = normalize_period(period_start, None, period_type)
    if normalized is None:
        return None
    return f"{normalized.period_type}:{normalized.period_start}"
