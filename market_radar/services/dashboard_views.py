# market_radar/services/dashboard_views.py
"""
Presentation payloads for the macro tabs. Each view is a pure function of a
StateSnapshot and returns a JSON-ready dict; nothing here fetches data.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from market_radar.services.dashboard_state import TABS, StateSnapshot
from market_radar.services.indicator_catalog import RankingItem, SummaryMetrics
from market_radar.services.metrics_service import EntityMetrics, summarize
from market_radar.services.ranking_service import rank, top
from market_radar.utils.formatting import NA, format_compact, format_percent


def _card(title: str, value: str, change: Optional[str] = None, trend: str = "neutral") -> Dict[str, Any]:
    return {"title": title, "value": value, "change": change, "trend": trend}


def _ranking_card(title: str, items: Sequence[RankingItem], kind: str) -> Dict[str, Any]:
    return {"title": title, "type": kind, "items": list(items)}


def _pick(items: Sequence[RankingItem], index: int) -> Optional[RankingItem]:
    try:
        return items[index]
    except IndexError:
        return None


def _leader_card(title: str, items: Sequence[RankingItem], index: int, trend: str = "neutral") -> Dict[str, Any]:
    item = _pick(items, index)
    return _card(title, item["value"] if item else NA, item["name"] if item else NA, trend)


def _value(row: Mapping[str, Any], key: str) -> Optional[float]:
    return (row.get(key) or {}).get("value")


def _date(row: Mapping[str, Any], key: str) -> Optional[str]:
    return (row.get(key) or {}).get("date")


def country_section(row: EntityMetrics) -> Dict[str, Any]:
    """Per-country detail block (World Bank indicators + Eurostat HICP)."""
    return {
        "name": row.get("name"),
        "code": row.get("code"),
        "world_bank": {
            "gdp": format_compact(_value(row, "gdp")),
            "growth": format_percent(_value(row, "growth")),
            "inflation": format_percent(_value(row, "inflation")),
            "population": format_compact(_value(row, "population")),
            "unemployment": format_percent(_value(row, "unemployment")),
            "reference_year": _date(row, "gdp") or NA,
        },
        "eurostat": {
            "hicp": format_percent(_value(row, "eurostat_inflation")),
            "reference_month": _date(row, "eurostat_inflation") or NA,
        },
        "raw": {k: v for k, v in row.items() if k not in ("name", "code")},
    }


def _rankings(metrics: Sequence[EntityMetrics], indicators: Sequence[str]) -> Dict[str, List[RankingItem]]:
    return {key: rank(metrics, key) for key in ("gdp", "growth", "inflation") if key in indicators}


def _envelope(snap: StateSnapshot, title: str, body: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "tab": snap.active_tab,
        "title": title,
        "selected_year": snap.selected_year,
        "year_options": list(snap.year_options),
        "is_loading": snap.is_loading,
        "error": snap.error_message or None,
    }
    if snap.error_message:
        # a failed pass replaces the data view
        return out
    out.update(body)
    out["countries"] = [country_section(row) for row in snap.metrics]
    return out


# -----------------------------------------------------------------------------
# tabs
# -----------------------------------------------------------------------------

def overview_view(snap: StateSnapshot) -> Dict[str, Any]:
    summary: Optional[SummaryMetrics] = summarize(snap.metrics, snap.indicators) if snap.metrics else None
    avg = summary["averages"] if summary else {}
    last = summary["last_updated"] if summary else None
    rankings = _rankings(snap.metrics, snap.indicators)

    body = {
        "summary": summary,
        "cards": [
            _card("Average GDP (current US$)", format_compact(avg.get("gdp"))),
            _card("Average GDP Growth", format_percent(avg.get("growth")), "YoY", "positive"),
            _card("Average Inflation (CPI)", format_percent(avg.get("inflation")), f"Last update {last}" if last else None),
        ],
        "rankings": [
            _ranking_card("GDP Leaders", top(rankings.get("gdp", []), 3), "gdp"),
            _ranking_card("Fastest Growth", top(rankings.get("growth", []), 3), "growth"),
        ],
    }
    return _envelope(snap, "Global Economic Pulse", body)


def growth_view(snap: StateSnapshot) -> Dict[str, Any]:
    rankings = _rankings(snap.metrics, snap.indicators)
    gdp = rankings.get("gdp", [])
    growth = rankings.get("growth", [])
    body = {
        "cards": [
            _leader_card("Top GDP", gdp, 0, "positive"),
            _leader_card("Best Growth", growth, 0, "positive"),
            _leader_card("Momentum Watch", growth, 1),
        ],
        "rankings": [
            _ranking_card("GDP Ranking", gdp, "gdp"),
            _ranking_card("GDP Growth Ranking", growth, "growth"),
        ],
    }
    return _envelope(snap, "Growth & Output", body)


def inflation_view(snap: StateSnapshot) -> Dict[str, Any]:
    rankings = _rankings(snap.metrics, snap.indicators)
    inflation = rankings.get("inflation", [])
    body = {
        "cards": [
            _leader_card("Highest CPI", inflation, 0),
            _leader_card("Median CPI", inflation, 2),
            _leader_card("Most Stable", inflation, -1),
        ],
        "rankings": [
            _ranking_card("CPI Inflation Ranking", inflation, "inflation"),
        ],
        "hicp_snapshot": [
            {
                "name": row.get("name"),
                "value": format_percent(_value(row, "eurostat_inflation")),
                "reference_month": _date(row, "eurostat_inflation"),
            }
            for row in snap.metrics
        ],
    }
    return _envelope(snap, "Inflation & Price Stability", body)


VIEWS: Dict[str, Callable[[StateSnapshot], Dict[str, Any]]] = dict(
    zip(TABS, (overview_view, growth_view, inflation_view))
)


def render(snap: StateSnapshot) -> Dict[str, Any]:
    return VIEWS[snap.active_tab](snap)
