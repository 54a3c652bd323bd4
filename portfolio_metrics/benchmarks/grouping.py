from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping

from portfolio_metrics.benchmarks.domain.models import (
    MIN_SAMPLE_SIZE,
    BenchmarkGroupKey,
    BenchmarkRecord,
)
from portfolio_metrics.benchmarks.percentiles import calculate_percentiles
from portfolio_metrics.common.time_utils import utc_now
from portfolio_metrics.metrics.values import MetricValue, as_number, resolve_metric_value


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyProfile:
    company_id: str
    name: str = ""
    industry: str | None = None
    stage: str | None = None


@dataclass(frozen=True)
class MetricValueRow:
    company_id: str
    metric_name: str
    period_type: str
    period_start: date
    value: MetricValue

    @classmethod
    def from_raw(
        cls,
        company_id: str,
        metric_name: str,
        period_type: str,
        period_start: date,
        value: object,
    ) -> "MetricValueRow":
        return cls(
            company_id=company_id,
            metric_name=metric_name,
            period_type=period_type,
            period_start=period_start,
            value=resolve_metric_value(value),
        )


@dataclass
class BenchmarkGroup:
    key: BenchmarkGroupKey
    values: list[float] = field(default_factory=list)


def normalize_metric_name(metric_name: str) -> str:
    return metric_name.strip().lower()


def latest_values_per_company(rows: Iterable[MetricValueRow]) -> list[MetricValueRow]:
    """Keep the most recent row per company, metric and period type.

    Historical values would otherwise be counted several times for the
    same company.
    """
    latest: dict[tuple[str, str, str], MetricValueRow] = {}
    for row in rows:
        key = (row.company_id, normalize_metric_name(row.metric_name), row.period_type)
        current = latest.get(key)
        if current is None or row.period_start > current.period_start:
            latest[key] = row
    return list(latest.values())


def cohort_keys(
    metric_name: str,
    period_type: str,
    industry: str | None,
    stage: str | None,
) -> list[BenchmarkGroupKey]:
    """Cohorts a value contributes to: industry+stage, industry, stage, and all companies."""
    name = normalize_metric_name(metric_name)
    keys: list[BenchmarkGroupKey] = []
    if industry and stage:
        keys.append(BenchmarkGroupKey(name, period_type, industry, stage))
    if industry:
        keys.append(BenchmarkGroupKey(name, period_type, industry, None))
    if stage:
        keys.append(BenchmarkGroupKey(name, period_type, None, stage))
    keys.append(BenchmarkGroupKey(name, period_type, None, None))
    return keys


def build_benchmark_groups(
    rows: Iterable[MetricValueRow],
    companies: Mapping[str, CompanyProfile],
) -> dict[BenchmarkGroupKey, BenchmarkGroup]:
    groups: dict[BenchmarkGroupKey, BenchmarkGroup] = {}
    skipped = 0
    for row in latest_values_per_company(rows):
        value = as_number(row.value)
        if value is None:
            skipped += 1
            continue

        company = companies.get(row.company_id)
        industry = company.industry if company is not None else None
        stage = company.stage if company is not None else None

        for key in cohort_keys(row.metric_name, row.period_type, industry, stage):
            groups.setdefault(key, BenchmarkGroup(key=key)).values.append(value)

    if skipped:
        logger.debug("Skipped %d non-numeric metric values", skipped)
    return groups


def compute_benchmarks(
    groups: Mapping[BenchmarkGroupKey, BenchmarkGroup],
    now: datetime | None = None,
    min_sample_size: int = MIN_SAMPLE_SIZE,
) -> list[BenchmarkRecord]:
    """Breakpoints for every group with at least min_sample_size values."""
    calculated_at = now or utc_now()
    records: list[BenchmarkRecord] = []
    for key, group in groups.items():
        breakpoints = calculate_percentiles(group.values, min_sample_size=min_sample_size)
        if breakpoints is None:
            logger.debug("Insufficient data for %s (%d values)", key, len(group.values))
            continue
        records.append(
            BenchmarkRecord(
                key=key,
                breakpoints=breakpoints,
                sample_size=len(group.values),
                calculated_at=calculated_at,
            )
        )
    logger.info(
        "Computed %d benchmarks from %d groups (min sample size %d)",
        len(records),
        len(groups),
        min_sample_size,
    )
    return records
