# market_radar/services/ranking_service.py
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from market_radar.services.indicator_catalog import RankingItem, get_spec
from market_radar.utils.formatting import format_value


def _value_of(row: Mapping[str, Any], indicator: str) -> Optional[float]:
    block = row.get(indicator)
    if not isinstance(block, Mapping):
        return None
    v = block.get("value")
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def rank(metrics: Sequence[Mapping[str, Any]], indicator: str) -> List[RankingItem]:
    """
    Entities ordered by `indicator`, highest first; entities without a value
    are left out. Ties are ordered by name so input order never matters.
    """
    display = get_spec(indicator)["display"]

    scored = []
    for row in metrics:
        v = _value_of(row, indicator)
        if v is None:
            continue
        scored.append((v, str(row.get("name", ""))))

    scored.sort(key=lambda t: (-t[0], t[1]))
    return [{"name": name, "value": format_value(v, display), "raw": v} for v, name in scored]


def top(items: Sequence[RankingItem], n: int) -> List[RankingItem]:
    return list(items[: max(0, n)])
