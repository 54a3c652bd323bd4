from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from portfolio_metrics.common.config import PortalConfig


def test_defaults() -> None:
    cfg = PortalConfig()
    assert cfg.schedules.default_day_of_month == 1
    assert cfg.schedules.due_days_offset == 14
    assert cfg.schedules.reminder_days_before_due == [7, 3, 1]
    assert cfg.benchmarks.min_sample_size == 5
    assert cfg.benchmarks.cache_ttl_seconds == 60.0
    assert cfg.logging.level == "INFO"
    assert cfg.logging.resolved_log_dir() is None


def test_load_partial_toml(tmp_path: Path) -> None:
    path = tmp_path / "portal_config.toml"
    path.write_text(
        "[schedules]\n"
        "due_days_offset = 10\n"
        "reminder_days_before_due = [5, 2]\n"
        "\n"
        "[logging]\n"
        f'log_dir = "{tmp_path.as_posix()}/logs"\n'
    )
    cfg = PortalConfig.load(path)

    assert cfg.schedules.due_days_offset == 10
    assert cfg.schedules.reminder_days_before_due == [5, 2]
    assert cfg.schedules.reminder_enabled is True
    assert cfg.benchmarks.min_sample_size == 5
    assert cfg.logging.resolved_log_dir() == str((tmp_path / "logs").resolve())


def test_example_config_loads() -> None:
    example = Path(__file__).resolve().parents[1] / "portal_config.example.toml"
    assert PortalConfig.load(example) == PortalConfig()


@pytest.mark.parametrize(
    "section, body",
    [
        ("schedules", "due_days_offset = -1"),
        ("benchmarks", "min_sample_size = 1"),
        ("schedules", 'default_day_of_month = "first"'),
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, section: str, body: str) -> None:
    path = tmp_path / "bad.toml"
    path.write_text(f"[{section}]\n{body}\n")
    with pytest.raises(ValidationError):
        PortalConfig.load(path)
