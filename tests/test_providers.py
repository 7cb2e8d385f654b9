import httpx
import pytest

from market_radar.errors import RetrievalError
from market_radar.providers import eurostat_provider, wb_provider
from market_radar.providers.eurostat_provider import parse_time_series, select_month
from market_radar.providers.wb_provider import wb_series_from_payload

from conftest import hicp_payload


# ----------------------------------------------------------------------------
# World Bank
# ----------------------------------------------------------------------------

def test_wb_payload_parsing_keeps_nulls_drops_missing_years():
    payload = [
        {"page": 1},
        [
            {"date": "2024", "value": None},
            {"date": "2023", "value": "4.3"},
            {"date": None, "value": 1.0},
            {"date": "", "value": 2.0},
            {"value": 3.0},
        ],
    ]
    assert wb_series_from_payload(payload) == [
        {"year": "2024", "value": None},
        {"year": "2023", "value": 4.3},
    ]


def test_wb_payload_without_observations_is_empty():
    assert wb_series_from_payload([{"page": 0, "total": 0}, None]) == []


@pytest.mark.parametrize(
    "payload",
    [
        {"not": "a list"},
        [{"message": [{"id": "120", "value": "Invalid value"}]}],
        [{"page": 1}, {"rows": []}],
        None,
    ],
)
def test_wb_malformed_payload_raises(payload):
    with pytest.raises(RetrievalError):
        wb_series_from_payload(payload, entity="DE", indicator="X")


def test_fetch_series_cache_miss_then_hit(sources, store):
    """Second fetch of the same key comes from the cache without a network call."""
    first = wb_provider.fetch_series("DE", "NY.GDP.MKTP.CD")
    second = wb_provider.fetch_series("DE", "NY.GDP.MKTP.CD")

    assert first == second
    assert first[0] == {"year": "2023", "value": 4.46e12}
    assert sources.count("/country/DE/indicator/NY.GDP.MKTP.CD") == 1
    assert store.get("world_bank:DE:NY.GDP.MKTP.CD:latest") == first


def test_fetch_series_sends_format_json(sources):
    wb_provider.fetch_series("FR", "FP.CPI.TOTL.ZG")
    url = sources.calls[-1]
    assert url.params.get("format") == "json"
    assert url.path.endswith("/country/FR/indicator/FP.CPI.TOTL.ZG")


def test_fetch_series_http_error_raises_and_caches_nothing(sources, store):
    sources.failing.add("IT")
    with pytest.raises(RetrievalError) as exc:
        wb_provider.fetch_series("IT", "NY.GDP.MKTP.CD")
    assert exc.value.entity == "IT"
    assert exc.value.source == "world_bank"
    assert store.get("world_bank:IT:NY.GDP.MKTP.CD:latest") is None


def test_fetch_series_error_payload_raises(sources):
    with pytest.raises(RetrievalError):
        wb_provider.fetch_series("DE", "NO.SUCH.CODE")


def test_fetch_series_invalid_json_raises(store):
    wb_provider.set_client(httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))))
    try:
        with pytest.raises(RetrievalError):
            wb_provider.fetch_series("DE", "NY.GDP.MKTP.CD")
    finally:
        wb_provider.set_client(None)


def test_fetch_series_requires_codes():
    with pytest.raises(ValueError):
        wb_provider.fetch_series("", "NY.GDP.MKTP.CD")


# ----------------------------------------------------------------------------
# Eurostat
# ----------------------------------------------------------------------------

def test_parse_time_series_maps_positions():
    payload = hicp_payload({"2023-11": -0.7, "2023-12": None, "2024-01": 0.2})
    assert parse_time_series(payload) == {"2023-11": -0.7, "2023-12": None, "2024-01": 0.2}


def test_parse_time_series_dense_value_array():
    payload = {
        "dimension": {"time": {"category": {"index": {"2024-01": 0, "2024-02": 1}}}},
        "value": [0.4, 0.6],
    }
    assert parse_time_series(payload) == {"2024-01": 0.4, "2024-02": 0.6}


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"value": {"0": 1.0}},
        {"dimension": {"geo": {}}, "value": {"0": 1.0}},
        {"dimension": {"time": {"category": {"index": {"2024-01": 0}}}}},
    ],
)
def test_parse_time_series_malformed(payload):
    with pytest.raises(RetrievalError):
        parse_time_series(payload, geo="DE")


def test_select_month_latest_and_within_year():
    series = {"2023-09": 0.3, "2023-12": 0.2, "2024-01": -0.1, "2022-12": 1.0}
    assert select_month(series) == {"value": -0.1, "date": "2024-01"}
    assert select_month(series, "2023") == {"value": 0.2, "date": "2023-12"}
    assert select_month(series, "2019") == {"value": None, "date": None}
    assert select_month({}) == {"value": None, "date": None}


def test_select_month_is_chronological_not_lexicographic():
    """Unpadded months still order by date: 2023-10 is later than 2023-9."""
    series = {"2023-9": 1.0, "2023-10": 2.0}
    assert select_month(series) == {"value": 2.0, "date": "2023-10"}


def test_select_month_latest_value_may_be_null():
    assert select_month({"2024-01": 0.1, "2024-02": None}) == {"value": None, "date": "2024-02"}


def test_select_hicp_fetches_once_and_caches_per_year(sources, store):
    latest = eurostat_provider.select_hicp("DE")
    in_2023 = eurostat_provider.select_hicp("DE", "2023")
    in_2023_again = eurostat_provider.select_hicp("DE", "2023")

    assert latest == {"value": 0.2, "date": "2024-01"}
    assert in_2023 == in_2023_again == {"value": 0.2, "date": "2023-12"}
    assert sources.count(eurostat_provider.HICP_DATASET) == 1
    assert store.get("eurostat:DE:CP00:2023") == in_2023


def test_hicp_request_filters(sources):
    eurostat_provider.fetch_hicp_series("FR")
    params = sources.calls[-1].params
    assert params.get("geo") == "FR"
    assert params.get("coicop") == "CP00"
    assert params.get("unit") == "RCH_M"


def test_hicp_http_error_raises(sources):
    sources.failing.add("ES")
    with pytest.raises(RetrievalError) as exc:
        eurostat_provider.fetch_hicp_series("ES")
    assert exc.value.source == "eurostat"
