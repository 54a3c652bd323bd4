from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Union


# Leading numeric prefix, the way submitted values like "1200 USD" are read.
_LEADING_NUMBER = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


@dataclass(frozen=True)
class NumericValue:
    value: float


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class MissingValue:
    pass


MetricValue = Union[NumericValue, TextValue, MissingValue]

MISSING = MissingValue()


def _parse_leading_float(text: str) -> float | None:
    m = _LEADING_NUMBER.match(text)
    if m is None:
        return None
    v = float(m.group(0))
    return v if math.isfinite(v) else None


def resolve_metric_value(raw: Any) -> MetricValue:
    """Resolve a stored metric value into a MetricValue.

    Stored values come as plain numbers, numeric strings or objects with a
    'value' (or legacy 'raw') field. This is the only place that shape is
    inspected; everything downstream works on the tagged result.
    """
    if raw is None or isinstance(raw, bool):
        return MISSING
    if isinstance(raw, (NumericValue, TextValue, MissingValue)):
        return raw
    if isinstance(raw, (int, float)):
        v = float(raw)
        return NumericValue(v) if math.isfinite(v) else MISSING
    if isinstance(raw, str):
        v = _parse_leading_float(raw)
        if v is not None:
            return NumericValue(v)
        return TextValue(raw) if raw.strip() else MISSING
    if isinstance(raw, Mapping):
        inner = raw.get("value")
        if inner is None:
            inner = raw.get("raw")
        if isinstance(inner, Mapping):
            return MISSING
        return resolve_metric_value(inner)
    return MISSING


def as_number(value: MetricValue) -> float | None:
    if isinstance(value, NumericValue):
        return value.value
    return None


def as_text(value: MetricValue) -> str:
    """Text form used by exports; numbers drop a trailing '.0'."""
    if isinstance(value, NumericValue):
        v = value.value
        if v.is_integer():
            return str(int(v))
        return repr(v)
    if isinstance(value, TextValue):
        return value.text
    return ""
