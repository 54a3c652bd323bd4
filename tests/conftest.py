from __future__ import annotations

from datetime import date

import pytest

from portfolio_metrics.benchmarks.grouping import CompanyProfile, MetricValueRow


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def companies() -> dict[str, CompanyProfile]:
    profiles = [
        CompanyProfile("c1", "Acme", "saas", "seed"),
        CompanyProfile("c2", "Bolt", "saas", "seed"),
        CompanyProfile("c3", "Crane", "saas", "seed"),
        CompanyProfile("c4", "Delta", "saas", "series_a"),
        CompanyProfile("c5", "Ember", "saas", "series_a"),
        CompanyProfile("c6", "Flux", "fintech", "series_a"),
    ]
    return {p.company_id: p for p in profiles}


@pytest.fixture
def arr_rows() -> list[MetricValueRow]:
    q3 = date(2024, 7, 1)
    q4 = date(2024, 10, 1)
    return [
        MetricValueRow.from_raw("c1", "ARR", "quarterly", q3, 999),
        MetricValueRow.from_raw("c1", "ARR", "quarterly", q4, 10),
        MetricValueRow.from_raw("c2", "arr", "quarterly", q4, 20),
        MetricValueRow.from_raw("c3", "ARR ", "quarterly", q4, 30.0),
        MetricValueRow.from_raw("c4", "ARR", "quarterly", q4, "40"),
        MetricValueRow.from_raw("c5", "ARR", "quarterly", q4, {"value": 50}),
        MetricValueRow.from_raw("c6", "ARR", "quarterly", q4, {"raw": "60"}),
        MetricValueRow.from_raw("c7", "ARR", "quarterly", q4, 70),
        MetricValueRow.from_raw("c2", "ARR", "monthly", q4, 1),
        MetricValueRow.from_raw("c3", "Runway", "quarterly", q4, "n/a"),
    ]
