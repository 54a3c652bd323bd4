from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path)).resolve()


def _read_toml(path: Path) -> dict[str, Any]:
    return tomllib.loads(path.read_bytes().decode("utf-8"))


class ScheduleConfig(BaseModel):
    """Defaults applied to recurring metric request schedules."""

    default_day_of_month: int = Field(
        default=1,
        description="Run day used when a schedule does not set one; clamped to 1..28.",
    )
    due_days_offset: int = Field(
        default=14,
        description="Days between a run and the due date of the requests it creates.",
    )
    reminder_enabled: bool = Field(default=True)
    reminder_days_before_due: list[int] = Field(default_factory=lambda: [7, 3, 1])

    @field_validator("due_days_offset")
    @classmethod
    def _non_negative_offset(cls, v: int) -> int:
        if v < 0:
            raise ValueError("due_days_offset must be >= 0")
        return v


class BenchmarkConfig(BaseModel):
    min_sample_size: int = Field(
        default=5,
        description="Fewer observations than this yield no benchmark.",
    )
    cache_ttl_seconds: float = Field(default=60.0)

    @field_validator("min_sample_size")
    @classmethod
    def _at_least_two(cls, v: int) -> int:
        if v < 2:
            raise ValueError("min_sample_size must be >= 2")
        return v


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    log_dir: str | None = Field(default=None, description="Also write '<log_dir>/run.log'.")

    def resolved_log_dir(self) -> str | None:
        if self.log_dir is None:
            return None
        return str(_expand(self.log_dir))


class PortalConfig(BaseModel):
    schedules: ScheduleConfig = Field(default_factory=ScheduleConfig)
    benchmarks: BenchmarkConfig = Field(default_factory=BenchmarkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path) -> "PortalConfig":
        raw = _read_toml(path)
        return cls.model_validate(raw)
