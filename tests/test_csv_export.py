from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from portfolio_metrics.export.csv_export import (
    build_csv,
    escape_csv_field,
    metric_values_to_csv,
    safe_filename,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("plain", "plain"),
        (None, ""),
        (12.5, "12.5"),
        ("=SUM(A1:A2)", "'=SUM(A1:A2)"),
        ("+1", "'+1"),
        ("-1", "'-1"),
        ("@cmd", "'@cmd"),
        ("\tx", "'\tx"),
        ("a,b", '"a,b"'),
        ('say "hi"', '"say ""hi"""'),
        ("line1\nline2", '"line1\nline2"'),
        ("=1,2", "\"'=1,2\""),
        (date(2024, 10, 1), "2024-10-01"),
    ],
)
def test_escape_csv_field(value, expected: str) -> None:
    assert escape_csv_field(value) == expected


def test_build_csv() -> None:
    out = build_csv(["Name", "Value"], [["Acme, Inc.", 10], ["=evil()", None]])
    assert out == 'Name,Value\n"Acme, Inc.",10\n\'=evil(),'


def test_build_csv_rejects_ragged_rows() -> None:
    with pytest.raises(ValueError):
        build_csv(["a", "b"], [["only one"]])


def test_metric_values_to_csv() -> None:
    records = [
        {
            "metric_name": "ARR",
            "period_type": "quarterly",
            "period_start": "2024-10-01",
            "period_end": "2024-12-31",
            "value": {"value": 1200000.0},
            "notes": "From board deck",
            "submitted_at": datetime(2025, 1, 5, 12, 0, tzinfo=timezone.utc),
        },
        {
            "metric_name": "Runway",
            "period_type": "quarterly",
            "period_start": "2024-10-01",
            "period_end": "2024-12-31",
            "value": "-",
        },
    ]
    lines = metric_values_to_csv(records).split("\n")

    assert lines[0] == "Metric,Period Type,Period Start,Period End,Value,Notes,Submitted At"
    assert lines[1] == "ARR,quarterly,2024-10-01,2024-12-31,1200000,From board deck,2025-01-05T12:00:00+00:00"
    assert lines[2] == "Runway,quarterly,2024-10-01,2024-12-31,'-,,"


def test_safe_filename() -> None:
    assert safe_filename("Acme, Inc.", "_metrics.csv") == "Acme__Inc._metrics.csv"
    assert safe_filename("a/b\\c") == "a_b_c"
