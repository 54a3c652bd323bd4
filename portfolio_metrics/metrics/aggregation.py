from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np


# Metrics that can be summed across a portfolio (absolute amounts and counts).
SUMMABLE_METRICS: frozenset[str] = frozenset(
    {
        "revenue",
        "net revenue",
        "arr",
        "mrr",
        "burn rate",
        "headcount",
        "gmv",
        "total transaction volume",
        "operating expenses",
        "customer count",
        "monthly active users",
        "monthly active learners",
        "monthly active patients",
        "active accounts",
        "api calls",
        "data processing volume",
    }
)

# Metrics where the median says more than the mean.
MEDIAN_PREFERRED_METRICS: frozenset[str] = frozenset(
    {
        "runway",
        "cac",
        "ltv",
        "ltv:cac ratio",
        "aov",
        "arpu",
        "inference latency",
        "claims processing time",
    }
)

# Flow metrics accumulate over a period; their total is a sum.
FLOW_METRICS: frozenset[str] = frozenset(
    {
        "revenue",
        "net revenue",
        "gmv",
        "gross merchandise volume",
        "total transaction volume",
        "transaction volume",
        "operating expenses",
        "opex",
        "r&d spend",
        "r&d expenses",
        "marketing spend",
        "marketing expenses",
        "sales expenses",
        "cost of goods sold",
        "cogs",
        "api calls",
        "data processing volume",
        "total sales",
        "gross sales",
        "net sales",
        "operating costs",
        "total expenses",
        "payroll expenses",
        "infrastructure costs",
        "cloud costs",
        "hosting costs",
    }
)

# Snapshot metrics (rates, counts, balances, ratios); their total is the latest value.
POINT_IN_TIME_METRICS: frozenset[str] = frozenset(
    {
        "arr",
        "annual recurring revenue",
        "mrr",
        "monthly recurring revenue",
        "net burn rate",
        "gross burn rate",
        "burn rate",
        "net burn",
        "gross burn",
        "customer count",
        "customers",
        "headcount",
        "employees",
        "active accounts",
        "monthly active users",
        "mau",
        "active users",
        "monthly active learners",
        "monthly active patients",
        "daily active users",
        "dau",
        "runway",
        "cash on hand",
        "cash balance",
        "gross margin",
        "net margin",
        "net revenue retention",
        "nrr",
        "gross revenue retention",
        "grr",
        "churn rate",
        "customer churn rate",
        "retention rate",
        "conversion rate",
        "default rate",
        "fraud rate",
        "take rate",
        "return rate",
        "cart abandonment rate",
        "repeat purchase rate",
        "course completion rate",
        "patient retention rate",
        "provider utilization rate",
        "student retention rate",
        "ltv",
        "lifetime value",
        "cac",
        "customer acquisition cost",
        "ltv:cac ratio",
        "ltv:cac",
        "arpu",
        "average revenue per user",
        "aov",
        "average order value",
        "cost per patient",
        "nps",
        "net promoter score",
        "clinical outcomes score",
        "hipaa compliance score",
        "instructor satisfaction",
        "learning outcome improvement",
        "model accuracy",
        "inference latency",
        "claims processing time",
        "content engagement time",
        "inventory turnover",
        "usage growth rate",
        "regulatory capital ratio",
        "net interest margin",
        "compute costs",
    }
)

REVENUE_PRIORITY: tuple[str, ...] = (
    "mrr",
    "arr",
    "revenue",
    "net revenue",
    "gmv",
    "total transaction volume",
)


def _normalize_name(metric_name: str) -> str:
    return metric_name.strip().lower()


class AggregationType(str, Enum):
    SUM = "sum"
    LATEST = "latest"


@dataclass(frozen=True)
class AggregatedMetric:
    sum: float | None
    average: float
    median: float
    min: float
    max: float
    count: int
    values: tuple[float, ...]


@dataclass(frozen=True)
class Coverage:
    count: int
    total: int
    percentage: float


def can_sum_metric(metric_name: str) -> bool:
    return _normalize_name(metric_name) in SUMMABLE_METRICS


def prefers_median(metric_name: str) -> bool:
    return _normalize_name(metric_name) in MEDIAN_PREFERRED_METRICS


def aggregate_metric_values(values: Sequence[float]) -> AggregatedMetric:
    """Portfolio-level summary of one metric's values."""
    if len(values) == 0:
        return AggregatedMetric(sum=None, average=0.0, median=0.0, min=0.0, max=0.0, count=0, values=())

    x = np.asarray(values, dtype=float)
    return AggregatedMetric(
        sum=float(np.sum(x)),
        average=float(np.mean(x)),
        median=float(np.median(x)),
        min=float(np.min(x)),
        max=float(np.max(x)),
        count=int(x.size),
        values=tuple(float(v) for v in x),
    )


def calculate_growth_rate(current_value: float, previous_value: float) -> float | None:
    """Percent change; None when the previous value is zero."""
    if previous_value == 0:
        return None
    return (current_value - previous_value) / abs(previous_value) * 100.0


def normalize_to_index(current_value: float, base_value: float) -> float:
    if base_value == 0:
        return 0.0
    return current_value / base_value * 100.0


def calculate_weighted_average(values: Sequence[float], weights: Sequence[float]) -> float:
    if len(values) != len(weights):
        raise ValueError("values and weights must have the same length")
    w = np.asarray(weights, dtype=float)
    total = float(np.sum(w))
    if total == 0.0:
        return 0.0
    return float(np.dot(np.asarray(values, dtype=float), w) / total)


def identify_revenue_metric(metric_names: Sequence[str]) -> str | None:
    """Pick the primary revenue-like metric, returning the caller's spelling."""
    normalized = [_normalize_name(n) for n in metric_names]
    for candidate in REVENUE_PRIORITY:
        if candidate in normalized:
            return metric_names[normalized.index(candidate)]
    return None


def calculate_coverage(metric_count: int, total_companies: int) -> Coverage:
    pct = metric_count / total_companies * 100.0 if total_companies > 0 else 0.0
    return Coverage(count=metric_count, total=total_companies, percentage=pct)


# --- Temporal aggregation ----------------------------------------------------

_SUM_PATTERNS = (
    (re.compile(r"\b(revenue|sales|income)\b"), re.compile(r"recurring|arr|mrr")),
    (re.compile(r"\b(spend|expense|expenses|cost|costs|cogs)\b"), re.compile(r"per\s|acquisition")),
    (re.compile(r"\b(volume|calls|transactions)\b"), None),
)

# Checked in order after the sum patterns.
_LATEST_PATTERNS = (
    re.compile(r"\b(rate|ratio|margin|%|percentage)\b"),
    re.compile(r"\b(count|headcount|employees|users|customers|accounts)\b"),
    re.compile(r"\b(runway|balance|cash)\b"),
    re.compile(r"\b(arr|mrr|recurring)\b"),
    re.compile(r"\bburn\b"),
    re.compile(r"\b(score|nps|satisfaction)\b"),
    re.compile(r"\b(ltv|cac|arpu|aov)\b"),
)


def get_default_aggregation_type(metric_name: str) -> AggregationType:
    """'sum' for known flow metrics, otherwise 'latest'."""
    if _normalize_name(metric_name) in FLOW_METRICS:
        return AggregationType.SUM
    return AggregationType.LATEST


def recommend_aggregation_type(metric_name: str) -> tuple[AggregationType, str]:
    """Aggregation type plus confidence ('high', 'medium' or 'low') for a new metric."""
    name = _normalize_name(metric_name)
    if name in FLOW_METRICS:
        return AggregationType.SUM, "high"
    if name in POINT_IN_TIME_METRICS:
        return AggregationType.LATEST, "high"
    for pattern, exclude in _SUM_PATTERNS:
        if pattern.search(name) and (exclude is None or not exclude.search(name)):
            return AggregationType.SUM, "medium"
    if any(p.search(name) for p in _LATEST_PATTERNS):
        return AggregationType.LATEST, "medium"
    # Unknown metrics default to point-in-time.
    return AggregationType.LATEST, "low"


def calculate_rolling_total(
    values: Sequence[float | None],
    aggregation_type: AggregationType | str,
) -> float | None:
    """Total over chronologically ordered values (oldest first); None if all missing."""
    valid = [float(v) for v in values if v is not None]
    if not valid:
        return None
    if AggregationType(aggregation_type) is AggregationType.SUM:
        return float(sum(valid))
    return valid[-1]
