"""
market_radar/services/indicator_catalog.py

Declarative catalog of the indicators tracked by the dashboard, plus the
record types that flow between the fetchers, the selector, the aggregator
and the ranking builder.

It does not call any APIs. It only describes, for each indicator key, which
source serves it, which code to ask for, and how values are displayed.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Sequence, TypedDict


Source = Literal["world_bank", "eurostat"]
Display = Literal["compact", "percent"]


class IndicatorPoint(TypedDict):
    """One observation of a series, as fetched."""

    year: str
    value: Optional[float]


# Ordered as fetched; not guaranteed chronological; may contain gaps and nulls.
IndicatorSeries = List[IndicatorPoint]


class SelectedIndicator(TypedDict):
    """The single observation chosen for an entity/indicator/year."""

    value: Optional[float]
    date: Optional[str]


class RankingItem(TypedDict):
    name: str
    value: str           # formatted for display
    raw: float


class SummaryMetrics(TypedDict):
    averages: Dict[str, Optional[float]]
    last_updated: Optional[str]


class IndicatorSpec(TypedDict):
    """Configuration for a single tracked indicator."""

    key: str            # internal key, also the EntityMetrics field name
    label: str          # human-friendly label
    source: Source
    code: str           # provider-specific indicator code
    display: Display
    unit: str


# -----------------------------------------------------------------------------
# Indicator catalog
# -----------------------------------------------------------------------------

INDICATOR_CATALOG: Dict[str, IndicatorSpec] = {
    "gdp": {
        "key": "gdp",
        "label": "GDP (current US$)",
        "source": "world_bank",
        "code": "NY.GDP.MKTP.CD",
        "display": "compact",
        "unit": "USD",
    },
    "growth": {
        "key": "growth",
        "label": "GDP growth (annual %)",
        "source": "world_bank",
        "code": "NY.GDP.MKTP.KD.ZG",
        "display": "percent",
        "unit": "percent",
    },
    "inflation": {
        "key": "inflation",
        "label": "Inflation, consumer prices (annual %)",
        "source": "world_bank",
        "code": "FP.CPI.TOTL.ZG",
        "display": "percent",
        "unit": "percent",
    },
    "population": {
        "key": "population",
        "label": "Population, total",
        "source": "world_bank",
        "code": "SP.POP.TOTL",
        "display": "compact",
        "unit": "people",
    },
    "unemployment": {
        "key": "unemployment",
        "label": "Unemployment (% of labor force)",
        "source": "world_bank",
        "code": "SL.UEM.TOTL.ZS",
        "display": "percent",
        "unit": "percent",
    },
    # HICP monthly rate of change, all items (coicop=CP00)
    "eurostat_inflation": {
        "key": "eurostat_inflation",
        "label": "HICP monthly rate of change",
        "source": "eurostat",
        "code": "CP00",
        "display": "percent",
        "unit": "percent",
    },
}

DEFAULT_INDICATORS: Sequence[str] = (
    "gdp",
    "growth",
    "inflation",
    "population",
    "unemployment",
    "eurostat_inflation",
)

# Series used to derive the selectable year range.
REFERENCE_INDICATOR = "gdp"


def get_spec(key: str) -> IndicatorSpec:
    try:
        return INDICATOR_CATALOG[key]
    except KeyError:
        raise KeyError(f"unknown indicator: {key!r}") from None


def is_known(key: str) -> bool:
    return key in INDICATOR_CATALOG
