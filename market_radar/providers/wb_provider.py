# market_radar/providers/wb_provider.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging
import math
import os
import time
import httpx

from market_radar.errors import RetrievalError
from market_radar.services.cache_store import cache_key, get_store
from market_radar.services.indicator_catalog import IndicatorPoint, IndicatorSeries

logger = logging.getLogger("market-radar")

# -------------------------------------------------------------------
# CONFIG
# -------------------------------------------------------------------
WB_TIMEOUT = float(os.getenv("WB_TIMEOUT", "8.0"))
WB_RETRIES = int(os.getenv("WB_RETRIES", "1"))
WB_BACKOFF = float(os.getenv("WB_BACKOFF", "0.6"))

# One page covers the full annual history of a country indicator
WB_PER_PAGE = int(os.getenv("WB_PER_PAGE", "100"))

WB_BASE = os.getenv("WB_BASE", "https://api.worldbank.org/v2")

SOURCE = "world_bank"

# -------------------------------------------------------------------
# HTTP CLIENT (shared)
# -------------------------------------------------------------------
def _timeout() -> httpx.Timeout:
    return httpx.Timeout(
        timeout=WB_TIMEOUT,
        connect=min(2.0, WB_TIMEOUT),
        read=WB_TIMEOUT,
        write=min(2.0, WB_TIMEOUT),
        pool=min(2.0, WB_TIMEOUT),
    )


_CLIENT: Optional[httpx.Client] = None


def _get_client() -> httpx.Client:
    global _CLIENT
    if _CLIENT is not None:
        return _CLIENT

    limits = httpx.Limits(
        max_connections=int(os.getenv("WB_MAX_CONNECTIONS", "20")),
        max_keepalive_connections=int(os.getenv("WB_MAX_KEEPALIVE", "10")),
        keepalive_expiry=float(os.getenv("WB_KEEPALIVE_EXPIRY", "30")),
    )

    _CLIENT = httpx.Client(
        timeout=_timeout(),
        headers={"Accept": "application/json", "User-Agent": "market-radar/1.0 (+wb_provider)"},
        follow_redirects=True,
        limits=limits,
    )
    return _CLIENT


def set_client(client: Optional[httpx.Client]) -> None:
    """Install a custom client (e.g. one with a mock transport)."""
    global _CLIENT
    _CLIENT = client


def _http_get_json(url: str, params: Dict[str, str], *, entity: str, indicator: str) -> Any:
    client = _get_client()
    last_error: Optional[Exception] = None

    for attempt in range(1, WB_RETRIES + 1):
        try:
            logger.debug("[WB] GET %s params=%s (attempt %d)", url, params, attempt)
            r = client.get(url, params=params)
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as e:
            last_error = e
            logger.warning("[WB] attempt %d failed %s: %r", attempt, url, e)
            if attempt < WB_RETRIES:
                time.sleep(WB_BACKOFF * attempt)

    raise RetrievalError(
        f"request failed: {last_error!r}", source=SOURCE, entity=entity, indicator=indicator
    ) from last_error


def _build_url(entity_code: str, indicator_code: str) -> str:
    return f"{WB_BASE.rstrip('/')}/country/{entity_code}/indicator/{indicator_code}"


# -------------------------------------------------------------------
# NORMALIZATION
# -------------------------------------------------------------------
def _safe_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def wb_series_from_payload(payload: Any, *, entity: str = "", indicator: str = "") -> IndicatorSeries:
    """
    Converts a raw WB payload → [ {year: "YYYY", value: float | None}, ... ]
    WB returns: [ {metadata}, [ {date: "2023", value: 4.3, ...}, ... ] ]
    Points without a year are dropped; null values are kept.
    """
    if not isinstance(payload, list) or len(payload) < 2:
        # WB reports bad codes as [ {"message": [...]} ]
        detail = ""
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            msg = payload[0].get("message")
            if msg:
                detail = f": {msg}"
        raise RetrievalError(
            f"malformed payload{detail}", source=SOURCE, entity=entity, indicator=indicator
        )

    rows = payload[1]
    if rows is None:
        # valid request with no observations
        return []
    if not isinstance(rows, list):
        raise RetrievalError(
            "malformed payload: observations are not a list",
            source=SOURCE, entity=entity, indicator=indicator,
        )

    out: List[IndicatorPoint] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        y = row.get("date")
        if y is None or str(y).strip() == "":
            continue
        out.append({"year": str(y).strip(), "value": _safe_float(row.get("value"))})
    return out


# -------------------------------------------------------------------
# SERIES FETCH
# -------------------------------------------------------------------
def fetch_series(entity_code: str, indicator_code: str) -> IndicatorSeries:
    """
    Full annual series for one (entity, indicator) pair, cache first.
    A cache hit is trusted as-is; nothing is cached when the request fails.
    """
    if not entity_code or not indicator_code:
        raise ValueError("entity_code and indicator_code are required")

    store = get_store()
    key = cache_key(SOURCE, entity_code, indicator_code)
    cached = store.get(key)
    if cached is not None:
        return cached

    data = _http_get_json(
        _build_url(entity_code, indicator_code),
        {"format": "json", "per_page": str(WB_PER_PAGE)},
        entity=entity_code,
        indicator=indicator_code,
    )
    series = wb_series_from_payload(data, entity=entity_code, indicator=indicator_code)
    store.set(key, series)
    return series


__all__ = [
    "fetch_series",
    "wb_series_from_payload",
    "set_client",
]
