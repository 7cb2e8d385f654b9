# market_radar/services/indicator_selector.py
from __future__ import annotations

from typing import List, Optional, Sequence

from market_radar.services.indicator_catalog import IndicatorPoint, SelectedIndicator


def _norm_year(year: object) -> str:
    return str(year).strip()


def _year_key(point: IndicatorPoint) -> int:
    # malformed years sort last instead of raising
    try:
        return int(_norm_year(point.get("year")))
    except (TypeError, ValueError):
        return -1


def _sorted_desc(series: Sequence[IndicatorPoint]) -> List[IndicatorPoint]:
    return sorted(series, key=_year_key, reverse=True)


def select(series: Sequence[IndicatorPoint], target_year: Optional[str] = None) -> SelectedIndicator:
    """
    Pick the single applicable observation from a series.

    - empty series -> {None, None}
    - target_year given: the entry for exactly that year (value may be None);
      when the year is absent, {None, target_year}
    - no target_year: the most recent entry with a non-null value, else {None, None}

    Pure: never mutates `series`.
    """
    if not series:
        return {"value": None, "date": None}

    ordered = _sorted_desc(series)

    if target_year is not None and _norm_year(target_year) != "":
        wanted = _norm_year(target_year)
        for point in ordered:
            if _norm_year(point.get("year")) == wanted:
                return {"value": point.get("value"), "date": _norm_year(point.get("year"))}
        return {"value": None, "date": wanted}

    for point in ordered:
        if point.get("value") is not None:
            return {"value": point.get("value"), "date": _norm_year(point.get("year"))}
    return {"value": None, "date": None}


def available_years(series: Sequence[IndicatorPoint], limit: Optional[int] = None) -> List[str]:
    """Distinct years present in the series, most recent first."""
    years: List[str] = []
    seen = set()
    for point in _sorted_desc(series):
        y = _norm_year(point.get("year"))
        if not y or y in seen:
            continue
        seen.add(y)
        years.append(y)
    if limit is not None and limit >= 0:
        return years[:limit]
    return years
