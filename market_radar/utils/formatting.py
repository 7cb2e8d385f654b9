# market_radar/utils/formatting.py
from __future__ import annotations
from typing import Any, Optional
from math import isfinite

NA = "N/A"

_COMPACT_STEPS = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
    (1.0, ""),
)


def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if isfinite(f) else None


def _compact_mantissa(m: float) -> str:
    # two significant digits, but never drop integer digits (4.5T, 46B, 456B)
    a = abs(m)
    if a >= 10:
        s = f"{m:.0f}"
    else:
        s = f"{m:.1f}"
        if s.endswith(".0"):
            s = s[:-2]
    return s


def format_compact(v: Any) -> str:
    """en-US compact notation: 4_460_000_000_000 -> '4.5T', 83_100_000 -> '83M'."""
    f = _as_float(v)
    if f is None:
        return NA
    a = abs(f)
    for i, (threshold, suffix) in enumerate(_COMPACT_STEPS):
        if a < threshold and threshold != 1.0:
            continue
        m = f / threshold
        text = _compact_mantissa(m)
        # 999.6K rounds to 1000K; promote to the next unit
        if abs(float(text)) >= 1000 and i > 0:
            up_threshold, up_suffix = _COMPACT_STEPS[i - 1]
            return _compact_mantissa(f / up_threshold) + up_suffix
        return text + suffix
    return NA


def format_percent(v: Any, decimals: int = 1) -> str:
    f = _as_float(v)
    if f is None:
        return NA
    return f"{f:,.{decimals}f}%"


def format_units(v: Any) -> str:
    """Thousands-separated integer, e.g. 268101 -> '268,101'."""
    f = _as_float(v)
    if f is None:
        return NA
    return f"{f:,.0f}"


def format_value(v: Any, display: str) -> str:
    if display == "compact":
        return format_compact(v)
    if display == "percent":
        return format_percent(v)
    if display == "units":
        return format_units(v)
    f = _as_float(v)
    return NA if f is None else f"{f:,.2f}"
