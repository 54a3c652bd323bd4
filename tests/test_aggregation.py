from __future__ import annotations

import pytest

from portfolio_metrics.metrics.aggregation import (
    AggregationType,
    aggregate_metric_values,
    calculate_coverage,
    calculate_growth_rate,
    calculate_rolling_total,
    calculate_weighted_average,
    can_sum_metric,
    get_default_aggregation_type,
    identify_revenue_metric,
    normalize_to_index,
    prefers_median,
    recommend_aggregation_type,
)


def test_aggregate_metric_values() -> None:
    agg = aggregate_metric_values([10.0, 30.0, 20.0, 40.0])
    assert agg.sum == pytest.approx(100.0)
    assert agg.average == pytest.approx(25.0)
    assert agg.median == pytest.approx(25.0)
    assert (agg.min, agg.max, agg.count) == (10.0, 40.0, 4)
    assert agg.values == (10.0, 30.0, 20.0, 40.0)


def test_aggregate_empty() -> None:
    agg = aggregate_metric_values([])
    assert agg.sum is None
    assert agg.count == 0
    assert agg.average == 0.0


def test_summable_and_median_metrics() -> None:
    assert can_sum_metric(" ARR ")
    assert can_sum_metric("Headcount")
    assert can_sum_metric("Monthly Active Learners")
    assert can_sum_metric("monthly active patients")
    assert not can_sum_metric("Gross Margin")
    assert prefers_median("LTV:CAC Ratio")
    assert not prefers_median("Revenue")


def test_growth_rate_and_index() -> None:
    assert calculate_growth_rate(120.0, 100.0) == pytest.approx(20.0)
    assert calculate_growth_rate(-50.0, -100.0) == pytest.approx(50.0)
    assert calculate_growth_rate(10.0, 0.0) is None
    assert normalize_to_index(150.0, 100.0) == pytest.approx(150.0)
    assert normalize_to_index(5.0, 0.0) == 0.0


def test_weighted_average() -> None:
    assert calculate_weighted_average([10.0, 20.0], [1.0, 3.0]) == pytest.approx(17.5)
    assert calculate_weighted_average([10.0, 20.0], [0.0, 0.0]) == 0.0
    with pytest.raises(ValueError):
        calculate_weighted_average([1.0], [1.0, 2.0])


def test_identify_revenue_metric_prefers_recurring() -> None:
    assert identify_revenue_metric(["Revenue", "Burn Rate", "ARR"]) == "ARR"
    assert identify_revenue_metric(["GMV", "Net Revenue"]) == "Net Revenue"
    assert identify_revenue_metric(["Runway"]) is None


def test_coverage() -> None:
    cov = calculate_coverage(3, 4)
    assert (cov.count, cov.total, cov.percentage) == (3, 4, 75.0)
    assert calculate_coverage(0, 0).percentage == 0.0


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Revenue", (AggregationType.SUM, "high")),
        ("Cloud Costs", (AggregationType.SUM, "high")),
        ("Subscription Revenue", (AggregationType.SUM, "medium")),
        ("Recurring Revenue", (AggregationType.LATEST, "medium")),
        ("Travel Expenses", (AggregationType.SUM, "medium")),
        ("Cost per Lead", (AggregationType.LATEST, "low")),
        ("Customer Acquisition Cost", (AggregationType.LATEST, "high")),
        ("Support Calls", (AggregationType.SUM, "medium")),
        ("Gross Margin", (AggregationType.LATEST, "high")),
        ("Net Revenue Retention", (AggregationType.LATEST, "high")),
        ("Gross Revenue Retention", (AggregationType.LATEST, "high")),
        ("Average Revenue per User", (AggregationType.LATEST, "high")),
        ("Compute Costs", (AggregationType.LATEST, "high")),
        ("Quarterly Churn Rate", (AggregationType.LATEST, "medium")),
        ("Enterprise Customers", (AggregationType.LATEST, "medium")),
        ("Cash Position", (AggregationType.LATEST, "medium")),
        ("Net Burn Q4", (AggregationType.LATEST, "medium")),
        ("Employee Satisfaction", (AggregationType.LATEST, "medium")),
        ("Blended LTV", (AggregationType.LATEST, "medium")),
        ("Widget Throughput", (AggregationType.LATEST, "low")),
    ],
)
def test_recommend_aggregation_type(name: str, expected) -> None:
    assert recommend_aggregation_type(name) == expected


def test_default_aggregation_type() -> None:
    assert get_default_aggregation_type("OpEx") is AggregationType.SUM
    assert get_default_aggregation_type("ARR") is AggregationType.LATEST


def test_rolling_total() -> None:
    assert calculate_rolling_total([10.0, None, 20.0], "sum") == 30.0
    assert calculate_rolling_total([10.0, 20.0, None], AggregationType.LATEST) == 20.0
    assert calculate_rolling_total([None, None], "sum") is None
