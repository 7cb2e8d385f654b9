import math

import pytest

from market_radar.services.metrics_service import average, summarize
from market_radar.services.ranking_service import rank, top


def _row(name, **values):
    row = {"name": name}
    for key in ("gdp", "growth", "inflation", "population", "unemployment", "eurostat_inflation"):
        v = values.get(key)
        if isinstance(v, tuple):
            row[key] = {"value": v[0], "date": v[1]}
        else:
            row[key] = {"value": v, "date": "2023" if v is not None else None}
    return row


def test_rank_drops_nulls_and_sorts_descending():
    """GDP values 5, null, 3 -> exactly two items, [5-entity, 3-entity]."""
    metrics = [_row("A", gdp=5), _row("B", gdp=None), _row("C", gdp=3)]
    items = rank(metrics, "gdp")
    assert [i["name"] for i in items] == ["A", "C"]
    assert [i["raw"] for i in items] == [5, 3]


def test_rank_is_independent_of_input_order():
    metrics = [_row("A", growth=1.0), _row("B", growth=2.5), _row("C", growth=-0.3), _row("D", growth=2.5)]
    expected = rank(metrics, "growth")
    assert rank(list(reversed(metrics)), "growth") == expected
    assert [i["name"] for i in expected] == ["B", "D", "A", "C"]


def test_rank_formats_per_indicator():
    metrics = [_row("Germany", gdp=4.456e12, growth=-0.27, population=84_480_000)]
    assert rank(metrics, "gdp")[0]["value"] == "4.5T"
    assert rank(metrics, "growth")[0]["value"] == "-0.3%"
    assert rank(metrics, "population")[0]["value"] == "84M"


def test_rank_unknown_indicator():
    with pytest.raises(KeyError):
        rank([_row("A", gdp=1)], "nope")


def test_top():
    items = rank([_row("A", gdp=1), _row("B", gdp=2)], "gdp")
    assert [i["name"] for i in top(items, 1)] == ["B"]
    assert top(items, 0) == []


def test_average_ignores_nulls():
    assert average([1.0, None, 3.0]) == 2.0
    assert average([None, None]) is None
    assert average([]) is None


def test_summarize_averages_and_last_updated():
    metrics = [
        _row("A", gdp=(10.0, "2022"), growth=1.0, eurostat_inflation=(0.5, "2024-01")),
        _row("B", gdp=(20.0, "2023"), growth=None),
        _row("C", gdp=None, growth=3.0),
    ]
    summary = summarize(metrics)
    assert summary["averages"]["gdp"] == 15.0
    assert summary["averages"]["growth"] == 2.0
    assert summary["averages"]["inflation"] is None
    assert summary["averages"]["eurostat_inflation"] == 0.5
    assert summary["last_updated"] == "2023"


def test_summarize_all_null_never_nan():
    summary = summarize([_row("A"), _row("B")])
    for v in summary["averages"].values():
        assert v is None
        assert not (isinstance(v, float) and math.isnan(v))
    assert summary["last_updated"] is None
