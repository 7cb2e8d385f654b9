# market_radar/routes/dashboard.py: macro tabs, raw metrics, rankings, years, manual refresh
from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query
from fastapi.responses import JSONResponse

from market_radar.errors import LoadError
from market_radar.services import metrics_service
from market_radar.services.cache_store import get_store
from market_radar.services.dashboard_state import DashboardState, StateSnapshot, Tab, run_pass, with_tab
from market_radar.services.dashboard_views import render
from market_radar.services.indicator_catalog import DEFAULT_INDICATORS, INDICATOR_CATALOG, is_known
from market_radar.services.ranking_service import rank
from market_radar.utils.country_codes import known_entities, resolve_entities

logger = logging.getLogger("market-radar")

router = APIRouter(prefix="/v1", tags=["dashboard"])

# -----------------------------------------------------------------------------
# session state (one dashboard per process)
# -----------------------------------------------------------------------------
_STATE: Optional[DashboardState] = None


def get_state() -> DashboardState:
    global _STATE
    if _STATE is None:
        _STATE = DashboardState()
    return _STATE


def reset_state(state: Optional[DashboardState] = None) -> None:
    global _STATE
    _STATE = state


def _split_codes(countries: Optional[str]) -> List[str]:
    if not countries:
        return []
    return [c.strip() for c in countries.split(",") if c.strip()]


def _select_countries(state: DashboardState, countries: Optional[str]) -> None:
    """Apply a `countries` query to the session; an unchanged set keeps the loaded data."""
    if countries is None:
        return
    entities = resolve_entities(_split_codes(countries))
    if not entities:
        raise HTTPException(status_code=400, detail="no known countries in selection")
    current = [e.primary_code for e in state.snapshot().entities]
    if [e.primary_code for e in entities] != current:
        logger.info("[dashboard] country selection -> %s", ",".join(e.primary_code for e in entities))
        state.select_entities(entities)


def _ensure_loaded(state: DashboardState) -> StateSnapshot:
    """Run passes until the loaded data matches the selected year (at most two)."""
    snap = state.snapshot()
    for _ in range(2):
        if not state.needs_reload():
            break
        snap = run_pass(state)
        if snap.error_message:
            break
    return state.snapshot() if not snap.error_message else snap


def _error_response(snap: StateSnapshot) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": snap.error_message, "retry": True})


# -----------------------------------------------------------------------------
# routes
# -----------------------------------------------------------------------------

@router.get("/dashboard/{tab}", summary="Dashboard tab")
def dashboard_tab(
    tab: Tab = Path(..., description="Tab to render"),
    year: Optional[str] = Query(None, pattern=r"^\d{4}$", description="Year to display; latest when omitted"),
    countries: Optional[str] = Query(None, description="Comma-separated names or ISO codes; kept for later requests"),
) -> Any:
    state = get_state()
    _select_countries(state, countries)
    state.select_tab(tab.value)
    if year is not None:
        state.select_year(year)
    snap = _ensure_loaded(state)
    if snap.error_message:
        return _error_response(snap)
    return render(with_tab(snap, tab.value))


@router.get("/metrics", summary="Per-country metrics and summary")
def metrics(
    year: Optional[str] = Query(None, pattern=r"^\d{4}$"),
    countries: Optional[str] = Query(None, description="Comma-separated names or ISO codes, e.g. DE,FR"),
    partial: bool = Query(False, description="Keep countries that loaded when others fail"),
) -> Any:
    """
    Stateless aggregation pass for an arbitrary selection. With partial=true
    failed countries are reported under `failures` instead of failing the call.
    """
    entities = resolve_entities(_split_codes(countries))
    if not entities:
        raise HTTPException(status_code=400, detail="no known countries in selection")

    if partial:
        report = metrics_service.collect_metrics(entities, DEFAULT_INDICATORS, year)
        rows = report.metrics
        failures = {name: str(err) for name, err in report.failures.items()}
    else:
        try:
            rows = metrics_service.aggregate(entities, DEFAULT_INDICATORS, year)
        except LoadError as e:
            logger.warning("[metrics] %s", e)
            return JSONResponse(status_code=503, content={"error": LoadError.user_message, "retry": True})
        failures = {}

    return {
        "year": year,
        "countries": rows,
        "summary": metrics_service.summarize(rows, DEFAULT_INDICATORS),
        "failures": failures,
    }


@router.get("/rankings/{indicator}", summary="Ranking for one indicator")
def ranking(
    indicator: str,
    year: Optional[str] = Query(None, pattern=r"^\d{4}$"),
) -> Any:
    if not is_known(indicator):
        raise HTTPException(status_code=404, detail=f"unknown indicator: {indicator}")
    state = get_state()
    if year is not None:
        state.select_year(year)
    snap = _ensure_loaded(state)
    if snap.error_message:
        return _error_response(snap)
    return {
        "indicator": indicator,
        "label": INDICATOR_CATALOG[indicator]["label"],
        "year": snap.selected_year,
        "items": rank(snap.metrics, indicator),
    }


@router.get("/years", summary="Selectable years")
def years() -> Dict[str, Any]:
    snap = get_state().snapshot()
    return {"selected_year": snap.selected_year, "year_options": list(snap.year_options)}


@router.get("/countries", summary="Selectable countries")
def list_countries() -> Dict[str, Any]:
    selected = [e.primary_code for e in get_state().snapshot().entities]
    return {
        "selected": selected,
        "countries": [
            {"name": e.display_name, "code": e.primary_code, "eurostat_geo": e.secondary_code}
            for e in known_entities()
        ],
    }


@router.get("/indicators", summary="Tracked indicators")
def indicators() -> Dict[str, Any]:
    return {"indicators": [INDICATOR_CATALOG[k] for k in DEFAULT_INDICATORS]}


@router.post("/refresh", summary="Drop cached series and reload")
def refresh() -> Any:
    get_store().clear()
    state = get_state()
    run_pass(state)
    snap = state.snapshot()
    if snap.error_message:
        return _error_response(snap)
    return {"ok": True, "generation": snap.generation, "countries": len(snap.metrics)}
