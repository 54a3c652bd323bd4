from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


MIN_SAMPLE_SIZE = 5


@dataclass(frozen=True)
class PercentileBreakpoints:
    """p25/p50/p75/p90 of one metric across a benchmark cohort."""

    p25: float
    p50: float
    p75: float
    p90: float

    def __post_init__(self) -> None:
        vals = (self.p25, self.p50, self.p75, self.p90)
        if not all(math.isfinite(v) for v in vals):
            raise ValueError("Percentile breakpoints must be finite")
        if any(vals[i] > vals[i + 1] for i in range(len(vals) - 1)):
            raise ValueError("Percentile breakpoints must be non-decreasing")

    @property
    def iqr(self) -> float:
        return self.p75 - self.p25


class PercentileTier(str, Enum):
    """Business meaning of a percentile rank bucket."""

    BOTTOM_QUARTILE = "bottom_quartile"  # < 25
    BELOW_MEDIAN = "below_median"  # 25..49
    ABOVE_MEDIAN = "above_median"  # 50..74
    TOP_QUARTILE = "top_quartile"  # >= 75


@dataclass(frozen=True)
class BenchmarkGroupKey:
    metric_name: str  # lower-cased, trimmed
    period_type: str
    industry: str | None = None
    stage: str | None = None


@dataclass(frozen=True)
class BenchmarkRecord:
    key: BenchmarkGroupKey
    breakpoints: PercentileBreakpoints
    sample_size: int
    calculated_at: datetime


@dataclass(frozen=True)
class CompanyRanking:
    company_id: str
    name: str
    value: float
    percentile: int | None
    industry: str | None = None
    stage: str | None = None
