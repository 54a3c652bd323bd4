from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Protocol

from portfolio_metrics.benchmarks.domain.models import (
    MIN_SAMPLE_SIZE,
    BenchmarkGroupKey,
    BenchmarkRecord,
    CompanyRanking,
)
from portfolio_metrics.benchmarks.grouping import (
    CompanyProfile,
    MetricValueRow,
    build_benchmark_groups,
    compute_benchmarks,
    latest_values_per_company,
    normalize_metric_name,
)
from portfolio_metrics.benchmarks.percentiles import get_company_percentile
from portfolio_metrics.common.time_utils import utc_now
from portfolio_metrics.integration.cache import Cache
from portfolio_metrics.integration.event_bus import EventBus
from portfolio_metrics.integration.events import BenchmarksRecalculated
from portfolio_metrics.metrics.values import as_number


logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60.0


class BenchmarkSource(Protocol):
    def get_benchmark(self, key: BenchmarkGroupKey) -> BenchmarkRecord | None:
        ...


@dataclass
class InMemoryBenchmarkStore(BenchmarkSource):
    """Latest benchmark per cohort key."""

    _records: dict[BenchmarkGroupKey, BenchmarkRecord] = field(default_factory=dict)

    def upsert_many(self, records: Iterable[BenchmarkRecord]) -> int:
        n = 0
        for r in records:
            self._records[r.key] = r
            n += 1
        return n

    def get_benchmark(self, key: BenchmarkGroupKey) -> BenchmarkRecord | None:
        return self._records.get(key)

    def __len__(self) -> int:
        return len(self._records)


def make_group_key(
    metric_name: str,
    period_type: str = "quarterly",
    industry: str | None = None,
    stage: str | None = None,
) -> BenchmarkGroupKey:
    return BenchmarkGroupKey(
        metric_name=normalize_metric_name(metric_name),
        period_type=period_type,
        industry=industry or None,
        stage=stage or None,
    )


def _cache_key(key: BenchmarkGroupKey) -> tuple[str, str, str, str | None, str | None]:
    return ("benchmark", key.metric_name, key.period_type, key.industry, key.stage)


@dataclass
class BenchmarkService:
    """Benchmark lookups and portfolio ranking.

    Lookups go through the injected cache when one is given; the
    percentile engine itself never sees the cache.
    """

    source: BenchmarkSource = field(default_factory=InMemoryBenchmarkStore)
    cache: Cache | None = None
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    min_sample_size: int = MIN_SAMPLE_SIZE
    bus: EventBus | None = None

    def get_benchmark(
        self,
        metric_name: str,
        period_type: str = "quarterly",
        industry: str | None = None,
        stage: str | None = None,
    ) -> BenchmarkRecord | None:
        key = make_group_key(metric_name, period_type, industry, stage)
        if self.cache is not None:
            cached = self.cache.get(_cache_key(key))
            if cached is not None:
                logger.debug("Benchmark cache hit for %s", key)
                return cached
            logger.debug("Benchmark cache miss for %s", key)

        record = self.source.get_benchmark(key)
        if record is not None and self.cache is not None:
            self.cache.set(_cache_key(key), record, self.cache_ttl_seconds)
        return record

    def require_benchmark(
        self,
        metric_name: str,
        period_type: str = "quarterly",
        industry: str | None = None,
        stage: str | None = None,
    ) -> BenchmarkRecord:
        record = self.get_benchmark(metric_name, period_type, industry, stage)
        if record is None:
            raise KeyError(
                f"No benchmark for {metric_name!r} ({period_type}, industry={industry}, stage={stage})"
            )
        return record

    def rank_companies(
        self,
        metric_name: str,
        rows: Iterable[MetricValueRow],
        companies: Mapping[str, CompanyProfile],
        period_type: str = "quarterly",
        industry: str | None = None,
        stage: str | None = None,
    ) -> list[CompanyRanking]:
        """Rank each company's latest value, highest value first.

        Percentiles are None when the cohort has no benchmark yet.
        """
        name = normalize_metric_name(metric_name)
        record = self.get_benchmark(name, period_type, industry, stage)

        relevant = [
            r
            for r in rows
            if normalize_metric_name(r.metric_name) == name and r.period_type == period_type
        ]

        rankings: list[CompanyRanking] = []
        for row in latest_values_per_company(relevant):
            company = companies.get(row.company_id)
            value = as_number(row.value)
            if company is None or value is None:
                continue
            rankings.append(
                CompanyRanking(
                    company_id=company.company_id,
                    name=company.name,
                    value=value,
                    percentile=(
                        get_company_percentile(value, record.breakpoints) if record is not None else None
                    ),
                    industry=company.industry,
                    stage=company.stage,
                )
            )
        rankings.sort(key=lambda r: r.value, reverse=True)
        return rankings

    def recalculate(
        self,
        rows: Iterable[MetricValueRow],
        companies: Mapping[str, CompanyProfile],
        now: datetime | None = None,
    ) -> list[BenchmarkRecord]:
        """Rebuild benchmarks for every cohort and store the ones with enough data."""
        if not isinstance(self.source, InMemoryBenchmarkStore):
            raise TypeError("recalculate() needs an InMemoryBenchmarkStore source")

        calculated_at = now or utc_now()
        groups = build_benchmark_groups(rows, companies)
        records = compute_benchmarks(groups, now=calculated_at, min_sample_size=self.min_sample_size)
        self.source.upsert_many(records)

        if self.cache is not None:
            for key in groups:
                self.cache.delete(_cache_key(key))

        if self.bus is not None:
            failures = self.bus.publish(
                BenchmarksRecalculated(
                    occurred_at=calculated_at,
                    groups_total=len(groups),
                    groups_with_sufficient_data=len(records),
                )
            )
            if failures:
                logger.warning(
                    "Benchmarks recalculated but %d event handler(s) failed: %s",
                    len(failures),
                    ", ".join(f.handler for f in failures),
                )
        return records
