from __future__ import annotations

import csv
import logging
from pathlib import Path

from portfolio_metrics.benchmarks.grouping import CompanyProfile, MetricValueRow
from portfolio_metrics.periods.normalization import parse_calendar_date


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = (
    "company_id",
    "metric_name",
    "period_type",
    "period_start",
    "value",
)


def read_metric_rows(path: Path) -> tuple[list[MetricValueRow], dict[str, CompanyProfile]]:
    """Load submitted metric values and company profiles from one CSV file.

    Expected columns are company_id, metric_name, period_type, period_start
    and value, with optional company_name, industry and stage. Rows whose
    period_start is not a date are skipped.
    """
    rows: list[MetricValueRow] = []
    companies: dict[str, CompanyProfile] = {}

    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path} is missing columns: {', '.join(missing)}")

        for line_no, rec in enumerate(reader, start=2):
            company_id = (rec.get("company_id") or "").strip()
            start = parse_calendar_date(rec.get("period_start"))
            if not company_id or start is None:
                logger.warning("Skipping %s line %d: no company id or period start", path.name, line_no)
                continue

            if company_id not in companies:
                companies[company_id] = CompanyProfile(
                    company_id=company_id,
                    name=(rec.get("company_name") or company_id).strip(),
                    industry=(rec.get("industry") or "").strip() or None,
                    stage=(rec.get("stage") or "").strip() or None,
                )
            rows.append(
                MetricValueRow.from_raw(
                    company_id=company_id,
                    metric_name=rec["metric_name"],
                    period_type=rec["period_type"].strip().lower(),
                    period_start=start,
                    value=rec.get("value"),
                )
            )

    logger.info("Loaded %d metric values for %d companies from %s", len(rows), len(companies), path)
    return rows, companies
