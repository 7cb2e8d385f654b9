# market_radar/errors.py
"""
Exception hierarchy for Market Radar.

- RetrievalError: one (entity, indicator) request failed at the source.
- LoadError: an aggregation pass could not complete.
- CacheError: local cache read/write failure (never leaves cache_store).
"""
from __future__ import annotations

from typing import Optional


class MarketRadarError(Exception):
    """Base class for all Market Radar errors."""


class RetrievalError(MarketRadarError):
    """The external source was unreachable or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        entity: Optional[str] = None,
        indicator: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.entity = entity
        self.indicator = indicator

    def __str__(self) -> str:
        where = ":".join(p for p in (self.source, self.entity, self.indicator) if p)
        base = super().__str__()
        return f"[{where}] {base}" if where else base


class LoadError(MarketRadarError):
    """An aggregation pass failed; surfaced to clients as a single message."""

    user_message = "Failed to load live data. Please retry later."


class CacheError(MarketRadarError):
    """Read/write failure against the persisted cache."""
