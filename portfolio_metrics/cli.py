from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from portfolio_metrics.benchmarks.csv_source import read_metric_rows
from portfolio_metrics.benchmarks.domain.models import PercentileBreakpoints
from portfolio_metrics.benchmarks.percentiles import (
    calculate_percentiles,
    get_company_percentile,
    get_percentile_tier,
)
from portfolio_metrics.benchmarks.services.benchmark_service import BenchmarkService
from portfolio_metrics.common.config import PortalConfig
from portfolio_metrics.common.logging_config import configure_logging
from portfolio_metrics.common.time_utils import parse_iso8601, utc_now
from portfolio_metrics.integration.cache import InMemoryTTLCache
from portfolio_metrics.periods.domain.models import ScheduleState
from portfolio_metrics.periods.normalization import normalize_period
from portfolio_metrics.periods.reporting import calculate_reporting_period, format_reporting_period
from portfolio_metrics.periods.schedule import calculate_next_run_date, calculate_reminder_dates
from portfolio_metrics.periods.services.schedule_planner import SchedulePlanner


app = typer.Typer(add_completion=False)
console = Console()

_state: dict[str, PortalConfig] = {}


def _config() -> PortalConfig:
    return _state.get("config") or PortalConfig()


def build_benchmark_service(cfg: PortalConfig) -> BenchmarkService:
    return BenchmarkService(
        cache=InMemoryTTLCache(),
        cache_ttl_seconds=cfg.benchmarks.cache_ttl_seconds,
        min_sample_size=cfg.benchmarks.min_sample_size,
    )


def build_schedule(
    cfg: PortalConfig,
    schedule_id: str,
    cadence: str,
    day_of_month: int | None,
    next_run_at: datetime,
) -> ScheduleState:
    """A schedule carrying the configured due date and reminder defaults."""
    s = cfg.schedules
    return ScheduleState(
        schedule_id=schedule_id,
        cadence=cadence,  # type: ignore[arg-type]
        day_of_month=day_of_month if day_of_month is not None else s.default_day_of_month,
        next_run_at=next_run_at,
        due_days_offset=s.due_days_offset,
        reminder_enabled=s.reminder_enabled,
        reminder_days_before_due=tuple(s.reminder_days_before_due),
    )


def _parse_when(value: Optional[str]) -> datetime:
    if value is None:
        return utc_now()
    try:
        return parse_iso8601(value)
    except ValueError:
        raise typer.BadParameter(f"Not an ISO-8601 date/time: {value}") from None


def _parse_numbers(raw: str) -> list[float]:
    try:
        return [float(v) for v in raw.split(",") if v.strip()]
    except ValueError:
        raise typer.BadParameter("values must be a comma-separated list of numbers") from None


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, help="Path to a portal_config.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Period scheduling and benchmark calculations for portfolio metrics."""
    cfg = PortalConfig.load(Path(config).expanduser()) if config else PortalConfig()
    _state["config"] = cfg
    level = logging.DEBUG if verbose else cfg.logging.level
    configure_logging(level, log_dir=cfg.logging.resolved_log_dir())


@app.command("reporting-period")
def reporting_period(
    cadence: str = typer.Argument(..., help="monthly | quarterly | annual"),
    run_date: Optional[str] = typer.Option(None, help="Run date (ISO-8601); defaults to now"),
) -> None:
    """Show the previous complete period for a run date."""
    when = _parse_when(run_date)
    try:
        period = calculate_reporting_period(cadence, when)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None
    label = format_reporting_period(cadence, period.period_start)
    typer.echo(f"{label}: {period.period_start.isoformat()} .. {period.period_end.isoformat()}")


@app.command("next-run")
def next_run(
    cadence: str = typer.Argument(..., help="monthly | quarterly | annual"),
    day_of_month: Optional[int] = typer.Option(None, help="Run day (clamped to 1..28)"),
    from_date: Optional[str] = typer.Option(None, help="Reference instant (ISO-8601); defaults to now"),
    count: int = typer.Option(1, min=1, help="Number of upcoming runs to list"),
) -> None:
    """List the next scheduled run dates."""
    day = day_of_month if day_of_month is not None else _config().schedules.default_day_of_month
    when = _parse_when(from_date)
    try:
        for _ in range(count):
            when = calculate_next_run_date(cadence, day, when)
            typer.echo(when.isoformat())
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None


@app.command()
def reminders(
    due_date: str = typer.Argument(..., help="Due date (ISO-8601)"),
    days: Optional[str] = typer.Option(None, help="Comma-separated offsets in days, e.g. 7,3,1"),
    now: Optional[str] = typer.Option(None, help="Reference instant (ISO-8601); defaults to now"),
) -> None:
    """List future reminder instants for a due date."""
    offsets = (
        [int(v) for v in _parse_numbers(days)]
        if days is not None
        else list(_config().schedules.reminder_days_before_due)
    )
    for r in calculate_reminder_dates(_parse_when(due_date), offsets, now=_parse_when(now)):
        typer.echo(r.isoformat())


@app.command()
def normalize(
    period_start: str = typer.Argument(..., help="Period start as entered or extracted"),
    period_type: str = typer.Argument(..., help="monthly | quarterly | annual | yearly"),
    period_end: Optional[str] = typer.Option(None, help="Period end as entered or extracted"),
) -> None:
    """Snap a period to its canonical boundaries and print it as JSON."""
    result = normalize_period(period_start, period_end, period_type)
    if result is None:
        typer.echo(f"Could not parse period date: {period_start}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(asdict(result), indent=2))


@app.command()
def percentiles(
    values: str = typer.Argument(..., help="Comma-separated observations"),
) -> None:
    """Compute p25/p50/p75/p90 for a sample."""
    sample = _parse_numbers(values)
    result = calculate_percentiles(sample, min_sample_size=_config().benchmarks.min_sample_size)
    if result is None:
        typer.echo(f"Insufficient data: {len(sample)} values", err=True)
        raise typer.Exit(code=1)

    table = Table(title=f"Benchmark (n={len(sample)})")
    table.add_column("Percentile")
    table.add_column("Value", justify="right")
    for name, v in asdict(result).items():
        table.add_row(name, f"{v:.4g}")
    console.print(table)


@app.command()
def rank(
    value: float = typer.Argument(..., help="Company value to rank"),
    p25: float = typer.Option(...),
    p50: float = typer.Option(...),
    p75: float = typer.Option(...),
    p90: float = typer.Option(...),
) -> None:
    """Estimate the percentile rank of a value against breakpoints."""
    try:
        bench = PercentileBreakpoints(p25=p25, p50=p50, p75=p75, p90=p90)
        pct = get_company_percentile(value, bench)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None
    typer.echo(f"{pct} ({get_percentile_tier(pct).value})")


@app.command()
def plan(
    cadence: str = typer.Argument(..., help="monthly | quarterly | annual"),
    day_of_month: Optional[int] = typer.Option(None, help="Run day (clamped to 1..28)"),
    now: Optional[str] = typer.Option(None, help="Run instant (ISO-8601); defaults to now"),
    schedule_id: str = typer.Option("default", help="Schedule identifier for logs"),
) -> None:
    """Plan a schedule run: reporting period, due date, reminders and next run."""
    when = _parse_when(now)
    try:
        schedule = build_schedule(_config(), schedule_id, cadence, day_of_month, when)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None

    run = SchedulePlanner().plan_due([schedule], now=when)[0]
    typer.echo(
        f"Period: {run.period_label} "
        f"({run.period.period_start.isoformat()} .. {run.period.period_end.isoformat()})"
    )
    typer.echo(f"Due: {run.due_date.isoformat()}")
    reminders_text = ", ".join(r.isoformat() for r in run.reminder_dates) or "none"
    typer.echo(f"Reminders: {reminders_text}")
    typer.echo(f"Next run: {run.next_run_at.isoformat()}")


@app.command("benchmark-report")
def benchmark_report(
    csv_path: str = typer.Argument(..., help="CSV of submitted metric values"),
    metric: str = typer.Option(..., help="Metric name, e.g. ARR"),
    period_type: str = typer.Option("quarterly", help="monthly | quarterly | annual"),
    industry: Optional[str] = typer.Option(None, help="Benchmark cohort industry"),
    stage: Optional[str] = typer.Option(None, help="Benchmark cohort stage"),
) -> None:
    """Recalculate cohort benchmarks from a CSV and rank every company against one cohort."""
    path = Path(csv_path).expanduser()
    if not path.exists():
        raise typer.BadParameter(f"No such file: {path}")
    try:
        rows, companies = read_metric_rows(path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None

    service = build_benchmark_service(_config())
    service.recalculate(rows, companies)
    record = service.get_benchmark(metric, period_type, industry, stage)
    if record is None:
        typer.echo(f"No benchmark for {metric} ({period_type}): not enough companies in the cohort", err=True)

    table = Table(title=f"{metric} ({period_type})" + (f", n={record.sample_size}" if record else ""))
    table.add_column("Company")
    table.add_column("Value", justify="right")
    table.add_column("Percentile", justify="right")
    table.add_column("Tier")
    for r in service.rank_companies(metric, rows, companies, period_type, industry, stage):
        if r.percentile is None:
            table.add_row(r.name, f"{r.value:.6g}", "-", "-")
        else:
            table.add_row(r.name, f"{r.value:.6g}", str(r.percentile), get_percentile_tier(r.percentile).value)
    console.print(table)


@app.command()
def init_config(
    path: str = typer.Argument(
        "portal_config.toml",
        help="Where to write the configuration TOML",
    ),
) -> None:
    """Write an example portal_config.toml."""
    project_root = Path(__file__).resolve().parents[1]
    template = project_root / "portal_config.example.toml"
    if not template.exists():
        raise RuntimeError(f"Missing template file: {template}")

    out = Path(path).expanduser()
    if out.exists():
        raise typer.BadParameter(f"Refusing to overwrite existing file: {out}")

    out.write_text(template.read_text())
    typer.echo(f"Wrote {out} (edit it, then run: portfolio-metrics --config {out} ...)")
