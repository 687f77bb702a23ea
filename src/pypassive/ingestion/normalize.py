"""Normalization helpers.

Centralizes lenient parsing and special-float handling.
"""

from __future__ import annotations

import math
from typing import Any

from pypassive._constants import DOUBLE_MAX_SENTINEL, FLOAT_MAX_SENTINEL


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return float(value)
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _clamp_special(value: float | None, sentinel: float) -> float | None:
    if value is None or math.isnan(value):
        return None
    if math.isinf(value):
        return sentinel if value > 0 else -sentinel
    return value


def sanitize_double(value: float | None) -> float | None:
    """Replace special double values with finite numbers.

    NaN becomes ``None``; infinities become ``±1e308``.
    """
    return _clamp_special(value, DOUBLE_MAX_SENTINEL)


def sanitize_float(value: float | None) -> float | None:
    """Like :func:`sanitize_double` for single-precision fields (``±3e38``)."""
    return _clamp_special(value, FLOAT_MAX_SENTINEL)


def epoch_seconds(timestamp_ms: int | float) -> float:
    """Convert an epoch-milliseconds ordering value to epoch seconds."""
    return timestamp_ms / 1000.0
