from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

from portfolio_metrics.metrics.values import as_text, resolve_metric_value


# Leading characters that spreadsheet applications evaluate as formulas.
_FORMULA_PREFIX = re.compile(r"^[=+\-@\t\r]")
_NEEDS_QUOTING = (",", '"', "\n")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

METRIC_EXPORT_HEADERS: tuple[str, ...] = (
    "Metric",
    "Period Type",
    "Period Start",
    "Period End",
    "Value",
    "Notes",
    "Submitted At",
)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def escape_csv_field(value: Any) -> str:
    """Escape one CSV field, neutralising spreadsheet formulas.

    Text starting with '=', '+', '-', '@', tab or carriage return gets a
    leading single quote. Fields containing a comma, quote or newline are
    quoted with embedded quotes doubled.
    """
    text = _to_text(value)
    if _FORMULA_PREFIX.match(text):
        text = "'" + text
    if any(ch in text for ch in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def build_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    lines = [",".join(escape_csv_field(h) for h in headers)]
    for row in rows:
        if len(row) != len(headers):
            raise ValueError(f"Row has {len(row)} fields, expected {len(headers)}")
        lines.append(",".join(escape_csv_field(v) for v in row))
    return "\n".join(lines)


def metric_values_to_csv(records: Iterable[Mapping[str, Any]]) -> str:
    """Render stored metric values in the metric export layout."""
    rows = []
    for r in records:
        rows.append(
            (
                r.get("metric_name"),
                r.get("period_type"),
                r.get("period_start"),
                r.get("period_end"),
                as_text(resolve_metric_value(r.get("value"))),
                r.get("notes"),
                r.get("submitted_at"),
            )
        )
    return build_csv(METRIC_EXPORT_HEADERS, rows)


def safe_filename(name: str, suffix: str = "") -> str:
    """Replace characters outside [A-Za-z0-9._-] so a name is safe as a download filename."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name)
    return f"{cleaned}{suffix}"
