# market_radar/services/metrics_service.py
"""
Aggregation pass: fetch + select every tracked indicator for every entity,
plus the cross-entity summary and the selectable year range.

An EntityMetrics record is a plain dict:

    {"name": "Germany", "code": "DE",
     "gdp": {"value": 4.5e12, "date": "2023"}, "growth": {...}, ...}

It always carries one entry per requested indicator, even when the value is
None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import concurrent.futures as _futures
import logging
import os

from market_radar.errors import LoadError, RetrievalError
from market_radar.providers import eurostat_provider, wb_provider
from market_radar.services.indicator_catalog import (
    DEFAULT_INDICATORS,
    REFERENCE_INDICATOR,
    SelectedIndicator,
    SummaryMetrics,
    get_spec,
)
from market_radar.services.indicator_selector import available_years, select
from market_radar.utils.country_codes import EntityConfig

logger = logging.getLogger("market-radar")

MAX_WORKERS = int(os.getenv("MARKET_RADAR_MAX_WORKERS", "8"))
YEAR_OPTIONS = int(os.getenv("MARKET_RADAR_YEAR_OPTIONS", "10"))

EntityMetrics = Dict[str, Any]


@dataclass
class AggregationReport:
    """Per-entity outcome of one pass; failed entities are isolated."""

    metrics: List[EntityMetrics] = field(default_factory=list)
    failures: Dict[str, RetrievalError] = field(default_factory=dict)
    # fail-fast only: entities whose work was dropped before it finished
    cancelled: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# -----------------------------------------------------------------------------
# per-indicator procedure
# -----------------------------------------------------------------------------

def select_indicator(entity: EntityConfig, key: str, year: Optional[str] = None) -> SelectedIndicator:
    """Fetch and select one indicator for one entity (source-specific)."""
    spec = get_spec(key)
    if spec["source"] == "eurostat":
        return eurostat_provider.select_hicp(entity.secondary_code, year)
    series = wb_provider.fetch_series(entity.primary_code, spec["code"])
    return select(series, year)


def _empty_metrics(entity: EntityConfig, indicators: Sequence[str]) -> EntityMetrics:
    row: EntityMetrics = {"name": entity.display_name, "code": entity.primary_code}
    for key in indicators:
        row[key] = {"value": None, "date": None}
    return row


def _wrap_unexpected(exc: Exception, entity: EntityConfig, key: str) -> RetrievalError:
    err = RetrievalError(
        f"unexpected error: {exc!r}",
        source=get_spec(key)["source"],
        entity=entity.primary_code,
        indicator=key,
    )
    err.__cause__ = exc
    return err


# -----------------------------------------------------------------------------
# aggregation
# -----------------------------------------------------------------------------

def collect_metrics(
    entities: Sequence[EntityConfig],
    indicators: Sequence[str] = DEFAULT_INDICATORS,
    year: Optional[str] = None,
    *,
    fail_fast: bool = False,
) -> AggregationReport:
    """
    Run every (entity, indicator) selection concurrently and wait for them.

    Results follow the order of `entities`, whatever the completion order.
    Any exception raised while loading an entity is recorded as that entity's
    failure (a RetrievalError; unexpected errors are wrapped). With
    fail_fast=True the pass stops at the first failure, the remaining work is
    cancelled and the affected entities are listed under `cancelled`.
    """
    for key in indicators:
        get_spec(key)  # unknown keys fail before any request goes out

    rows = [_empty_metrics(ent, indicators) for ent in entities]
    failures: Dict[int, RetrievalError] = {}
    unfinished = set()

    if not entities or not indicators:
        return AggregationReport(metrics=rows)

    pool = _futures.ThreadPoolExecutor(max_workers=max(1, MAX_WORKERS))
    jobs: Dict[_futures.Future, Tuple[int, str]] = {}
    try:
        for i, ent in enumerate(entities):
            for key in indicators:
                jobs[pool.submit(select_indicator, ent, key, year)] = (i, key)

        when = _futures.FIRST_EXCEPTION if fail_fast else _futures.ALL_COMPLETED
        done, pending = _futures.wait(jobs, return_when=when)

        for fut in done:
            i, key = jobs[fut]
            try:
                rows[i][key] = fut.result()
            except RetrievalError as e:
                logger.warning("[aggregate] %s/%s failed: %s", entities[i].primary_code, key, e)
                failures.setdefault(i, e)
            except Exception as e:
                logger.exception("[aggregate] %s/%s raised unexpectedly", entities[i].primary_code, key)
                failures.setdefault(i, _wrap_unexpected(e, entities[i], key))

        for fut in pending:
            fut.cancel()
            unfinished.add(jobs[fut][0])
    finally:
        # queued work is dropped on fail-fast; running requests are allowed to finish
        pool.shutdown(wait=True, cancel_futures=fail_fast)

    report = AggregationReport()
    for i, ent in enumerate(entities):
        if i in failures:
            report.failures[ent.display_name] = failures[i]
        elif i in unfinished:
            report.cancelled.append(ent.display_name)
        else:
            report.metrics.append(rows[i])
    return report


def aggregate(
    entities: Sequence[EntityConfig],
    indicators: Sequence[str] = DEFAULT_INDICATORS,
    year: Optional[str] = None,
) -> List[EntityMetrics]:
    """
    All-or-nothing pass: one failing entity fails the whole pass with
    LoadError and no partial result is returned.
    """
    logger.info(
        "[aggregate] pass start: %d entities x %d indicators, year=%s",
        len(entities), len(indicators), year or "latest",
    )
    report = collect_metrics(entities, indicators, year, fail_fast=True)
    if not report.ok:
        name, first = next(iter(report.failures.items()))
        raise LoadError(f"aggregation failed for {name}: {first}") from first
    logger.info("[aggregate] pass done: %d entities", len(report.metrics))
    return report.metrics


# -----------------------------------------------------------------------------
# summary statistics
# -----------------------------------------------------------------------------

def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null values; None when there are none."""
    present = [float(v) for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _values(metrics: Sequence[EntityMetrics], key: str) -> List[Optional[float]]:
    out: List[Optional[float]] = []
    for row in metrics:
        block = row.get(key) or {}
        out.append(block.get("value"))
    return out


def summarize(
    metrics: Sequence[EntityMetrics],
    indicators: Sequence[str] = DEFAULT_INDICATORS,
) -> SummaryMetrics:
    averages = {key: average(_values(metrics, key)) for key in indicators}

    # annual World Bank observations only; HICP months are not comparable
    years: List[int] = []
    for key in indicators:
        if get_spec(key)["source"] != "world_bank":
            continue
        for row in metrics:
            d = (row.get(key) or {}).get("date")
            if d is None:
                continue
            try:
                years.append(int(str(d)))
            except ValueError:
                continue

    return {
        "averages": averages,
        "last_updated": str(max(years)) if years else None,
    }


# -----------------------------------------------------------------------------
# selectable years
# -----------------------------------------------------------------------------

def derive_year_options(
    reference: EntityConfig,
    indicator: str = REFERENCE_INDICATOR,
    limit: int = YEAR_OPTIONS,
) -> List[str]:
    """Distinct years of the reference series, most recent first."""
    spec = get_spec(indicator)
    if spec["source"] != "world_bank":
        raise ValueError(f"year options need an annual series, got {indicator!r}")
    series = wb_provider.fetch_series(reference.primary_code, spec["code"])
    return available_years(series, limit)
