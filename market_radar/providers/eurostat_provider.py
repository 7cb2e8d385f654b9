# market_radar/providers/eurostat_provider.py
"""
Eurostat provider (dissemination API) for Market Radar
- HICP monthly rate of change: prc_hicp_manr, coicop=CP00, unit=RCH_M, geo=<Eurostat geo>

Returns:
- the monthly series as {"YYYY-MM": float | None, ...}
- the selected point as {"value": float | None, "date": "YYYY-MM" | None}

Notes:
- Base URL override via env EUROSTAT_BASE_URL.
- Filters are pinned so that the only varying dimension is "time".
- Invalid payloads raise RetrievalError; the aggregator decides what that means.
"""
from __future__ import annotations

import logging
import math
import os
import time
from datetime import date
from typing import Any, Dict, Optional

import httpx

from market_radar.errors import RetrievalError
from market_radar.services.cache_store import cache_key, get_store
from market_radar.services.indicator_catalog import SelectedIndicator

logger = logging.getLogger("market-radar")

# ------------------------------------------------------------------------------
# Config
# ------------------------------------------------------------------------------
EUROSTAT_BASE_URL = os.getenv(
    "EUROSTAT_BASE_URL",
    "https://ec.europa.eu/eurostat/api/dissemination/statistics/1.0/data",
)
TIMEOUT = float(os.getenv("EUROSTAT_TIMEOUT_SEC", "8.0"))
RETRIES = int(os.getenv("EUROSTAT_RETRIES", "1"))
BACKOFF = float(os.getenv("EUROSTAT_BACKOFF", "0.8"))

HICP_DATASET = "prc_hicp_manr"
HICP_COICOP = "CP00"  # All-items HICP
HICP_UNIT = os.getenv("EUROSTAT_HICP_UNIT", "RCH_M")

SOURCE = "eurostat"
USER_AGENT = "market-radar/1.0 (+eurostat_provider)"

# ------------------------------------------------------------------------------
# HTTP helpers
# ------------------------------------------------------------------------------
_CLIENT: Optional[httpx.Client] = None


def _get_client() -> httpx.Client:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = httpx.Client(
            timeout=TIMEOUT,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            follow_redirects=True,
        )
    return _CLIENT


def set_client(client: Optional[httpx.Client]) -> None:
    global _CLIENT
    _CLIENT = client


def _http_get_json(url: str, params: Dict[str, str], *, geo: str) -> Dict[str, Any]:
    last_error: Optional[Exception] = None
    for attempt in range(1, RETRIES + 1):
        try:
            r = _get_client().get(url, params=params)
            r.raise_for_status()
            data = r.json()
            if isinstance(data, dict):
                return data
            last_error = ValueError(f"expected a JSON object, got {type(data).__name__}")
        except (httpx.HTTPError, ValueError) as e:
            last_error = e
        logger.warning("[Eurostat] attempt %d failed %s params=%s: %r", attempt, url, params, last_error)
        if attempt < RETRIES:
            time.sleep(BACKOFF * attempt)
    raise RetrievalError(
        f"request failed: {last_error!r}", source=SOURCE, entity=geo, indicator=HICP_COICOP
    ) from last_error


def _build_url(dataset: str) -> str:
    base = EUROSTAT_BASE_URL.rstrip("/")
    return f"{base}/{dataset}"


# ------------------------------------------------------------------------------
# JSON-stat parsing
# We assume only 'time' varies; other dimensions are pinned by filters.
# ------------------------------------------------------------------------------
def _safe_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def parse_time_series(payload: Dict[str, Any], *, geo: str = "") -> Dict[str, Optional[float]]:
    """
    Map each period of the time dimension to its value (None when the
    position has no observation). Raises RetrievalError when the time index
    or the value map is missing.
    """
    if not isinstance(payload, dict):
        raise RetrievalError("payload is not an object", source=SOURCE, entity=geo, indicator=HICP_COICOP)

    dim = payload.get("dimension")
    time_dim = (dim.get("time") or dim.get("TIME")) if isinstance(dim, dict) else None
    category = time_dim.get("category") if isinstance(time_dim, dict) else None
    time_index = category.get("index") if isinstance(category, dict) else None
    values = payload.get("value")

    if not isinstance(time_index, dict) or not isinstance(values, (dict, list)):
        raise RetrievalError(
            "payload lacks time index or value map", source=SOURCE, entity=geo, indicator=HICP_COICOP
        )

    # JSON-stat allows the value map as a dense array too
    if isinstance(values, list):
        values = {str(i): v for i, v in enumerate(values)}

    out: Dict[str, Optional[float]] = {}
    for period, position in time_index.items():
        out[str(period)] = _safe_float(values.get(str(position)))
    return out


def _period_to_date(period: str) -> Optional[date]:
    """'YYYY-MM' (also 'YYYYMmm') -> first day of that month; None if unparseable."""
    s = str(period).strip()
    for sep in ("-", "M"):
        if sep in s:
            y, _, m = s.partition(sep)
            break
    else:
        return None
    try:
        return date(int(y), int(m), 1)
    except ValueError:
        return None


def select_month(series: Dict[str, Optional[float]], year: Optional[str] = None) -> SelectedIndicator:
    """
    Latest month of the series, or the latest month within `year`.
    The chosen month's value may be None. No candidate -> {None, None}.
    """
    best_period: Optional[str] = None
    best_date: Optional[date] = None
    wanted = str(year).strip() if year else None

    for period in series:
        d = _period_to_date(period)
        if d is None:
            continue
        if wanted is not None and str(d.year) != wanted:
            continue
        if best_date is None or d > best_date:
            best_period, best_date = period, d

    if best_period is None:
        return {"value": None, "date": None}
    return {"value": series.get(best_period), "date": best_period}


# ------------------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------------------
def fetch_hicp_series(geo: str) -> Dict[str, Optional[float]]:
    """
    HICP monthly rate of change (%):
    - Dataset: prc_hicp_manr
    - Filters: coicop=CP00, unit=RCH_M, geo=<geo>
    Output: {"YYYY-MM": float | None, ...}
    """
    if not geo:
        raise ValueError("geo is required")
    store = get_store()
    key = cache_key(SOURCE, geo, HICP_COICOP)
    cached = store.get(key)
    if cached is not None:
        return cached

    params = {"geo": geo, "coicop": HICP_COICOP, "unit": HICP_UNIT}
    data = _http_get_json(_build_url(HICP_DATASET), params, geo=geo)
    series = parse_time_series(data, geo=geo)
    store.set(key, series)
    return series


def select_hicp(geo: str, year: Optional[str] = None) -> SelectedIndicator:
    """Latest (or latest-in-year) HICP reading for one geo, cached per year."""
    if not year:
        # the "latest" key holds the series itself
        return select_month(fetch_hicp_series(geo))

    store = get_store()
    key = cache_key(SOURCE, geo, HICP_COICOP, year)
    cached = store.get(key)
    if cached is not None:
        return cached

    picked = select_month(fetch_hicp_series(geo), year)
    store.set(key, picked)
    return picked
