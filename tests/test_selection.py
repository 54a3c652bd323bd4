from __future__ import annotations

from datetime import date

import pytest

from portfolio_metrics.periods.selection import (
    PeriodDates,
    available_quarters,
    available_years,
    calculate_period_dates,
    get_period_label,
    is_valid_quarter,
    is_valid_year,
)


def test_period_dates() -> None:
    assert calculate_period_dates(2024, 1) == PeriodDates("2024-01-01", "2024-03-31")
    assert calculate_period_dates(2024, 2) == PeriodDates("2024-04-01", "2024-06-30")
    assert calculate_period_dates(2024, 3) == PeriodDates("2024-07-01", "2024-09-30")
    assert calculate_period_dates(2024, 4) == PeriodDates("2024-10-01", "2024-12-31")
    assert calculate_period_dates(2024) == PeriodDates("2024-01-01", "2024-12-31")
    with pytest.raises(ValueError):
        calculate_period_dates(2024, 5)


def test_labels() -> None:
    assert get_period_label(2024, 3) == "Q3 2024"
    assert get_period_label(2024) == "2024"


def test_available_quarters_newest_first() -> None:
    options = available_quarters(date(2025, 5, 10))
    assert len(options) == 10
    assert options[0].label == "Q2 2025"
    assert options[1].label == "Q1 2025"
    assert options[2].label == "Q4 2024"
    assert options[-1].label == "Q1 2023"


def test_available_years_are_completed_years() -> None:
    years = [o.year for o in available_years(date(2025, 5, 10))]
    assert years == [2024, 2023, 2022, 2021, 2020, 2019]


def test_validation() -> None:
    assert is_valid_quarter(1)
    assert not is_valid_quarter(0)
    assert not is_valid_quarter(True)
    assert not is_valid_quarter("2")

    today = date(2025, 5, 10)
    assert not is_valid_year(1999, today)
    assert is_valid_year(2000, today)
    assert is_valid_year(2026, today)
    assert not is_valid_year(2027, today)
