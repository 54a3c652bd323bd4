from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from portfolio_metrics.benchmarks.domain.models import (
    MIN_SAMPLE_SIZE,
    PercentileBreakpoints,
    PercentileTier,
)


_BREAKPOINT_PERCENTS = (25.0, 50.0, 75.0, 90.0)

_TIER_TEXT_CLASSES: dict[PercentileTier, str] = {
    PercentileTier.BOTTOM_QUARTILE: "text-red-400",
    PercentileTier.BELOW_MEDIAN: "text-amber-400",
    PercentileTier.ABOVE_MEDIAN: "text-blue-400",
    PercentileTier.TOP_QUARTILE: "text-emerald-400",
}

_TIER_BADGE_CLASSES: dict[PercentileTier, str] = {
    PercentileTier.BOTTOM_QUARTILE: "bg-red-500/20 text-red-200",
    PercentileTier.BELOW_MEDIAN: "bg-amber-500/20 text-amber-200",
    PercentileTier.ABOVE_MEDIAN: "bg-blue-500/20 text-blue-200",
    PercentileTier.TOP_QUARTILE: "bg-emerald-500/20 text-emerald-200",
}


def calculate_percentiles(
    values: Sequence[float],
    min_sample_size: int = MIN_SAMPLE_SIZE,
) -> PercentileBreakpoints | None:
    """Percentile breakpoints with linear interpolation between order statistics.

    This is the R-7 / PERCENTILE.INC definition: for fraction p the index
    into the sorted sample is (n - 1) * p. Returns None with fewer than
    min_sample_size values. Callers filter out NaN and infinities first.
    """
    if len(values) < min_sample_size:
        return None

    x = np.sort(np.asarray(values, dtype=float))
    p25, p50, p75, p90 = np.percentile(x, _BREAKPOINT_PERCENTS, method="linear")
    return PercentileBreakpoints(p25=float(p25), p50=float(p50), p75=float(p75), p90=float(p90))


def _anchor_points(b: PercentileBreakpoints) -> list[tuple[int, float]]:
    # 0th: lower Tukey fence; 100th: p90 extended by the p75..p90 spread.
    return [
        (0, b.p25 - 1.5 * b.iqr),
        (25, b.p25),
        (50, b.p50),
        (75, b.p75),
        (90, b.p90),
        (100, b.p90 + (b.p90 - b.p75)),
    ]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def get_company_percentile(value: float, benchmark: PercentileBreakpoints) -> int:
    """Estimate the percentile rank (0..100) of value within a benchmark."""
    if not math.isfinite(value):
        raise ValueError(f"Value must be finite, got {value!r}")

    points = _anchor_points(benchmark)
    if value <= points[0][1]:
        return 0
    if value >= points[-1][1]:
        return 100

    for (p_low, v_low), (p_high, v_high) in zip(points, points[1:]):
        if v_low <= value <= v_high:
            if v_high == v_low:
                return p_low
            fraction = (value - v_low) / (v_high - v_low)
            return _round_half_up(p_low + fraction * (p_high - p_low))

    # Anchors are non-decreasing and value lies strictly between the ends.
    raise RuntimeError(f"No percentile bracket for value {value!r} in {benchmark!r}")


def get_percentile_tier(percentile: int) -> PercentileTier:
    if percentile < 25:
        return PercentileTier.BOTTOM_QUARTILE
    if percentile < 50:
        return PercentileTier.BELOW_MEDIAN
    if percentile < 75:
        return PercentileTier.ABOVE_MEDIAN
    return PercentileTier.TOP_QUARTILE


def get_percentile_color(percentile: int) -> str:
    """Dashboard text colour class for a percentile rank."""
    return _TIER_TEXT_CLASSES[get_percentile_tier(percentile)]


def get_percentile_bg_color(percentile: int) -> str:
    """Dashboard badge classes (background and text) for a percentile rank."""
    return _TIER_BADGE_CLASSES[get_percentile_tier(percentile)]
