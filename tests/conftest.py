import threading

import httpx
import pytest

from market_radar.providers import eurostat_provider, wb_provider
from market_radar.routes import dashboard as dashboard_routes
from market_radar.services.cache_store import CacheStore, set_store

# {indicator code: {wb country code: {year: value}}}
WB_DATA = {
    "NY.GDP.MKTP.CD": {
        "DE": {"2023": 4.46e12, "2022": 4.08e12, "2021": 4.28e12},
        "FR": {"2023": 3.03e12, "2022": 2.78e12, "2021": 2.96e12},
        "IT": {"2023": 2.25e12, "2022": 2.07e12, "2021": 2.18e12},
        "ES": {"2023": 1.58e12, "2022": 1.45e12, "2021": 1.45e12},
        "NL": {"2023": 1.12e12, "2022": 1.01e12, "2021": 1.03e12},
    },
    "NY.GDP.MKTP.KD.ZG": {
        "DE": {"2023": -0.3, "2022": 1.8, "2021": 3.2},
        "FR": {"2023": 0.9, "2022": 2.6, "2021": 6.8},
        "IT": {"2023": 0.7, "2022": 4.0, "2021": 8.9},
        "ES": {"2023": 2.5, "2022": 6.2, "2021": 6.7},
        "NL": {"2023": 0.1, "2022": 5.0, "2021": 6.2},
    },
    "FP.CPI.TOTL.ZG": {
        "DE": {"2023": 5.9, "2022": 6.9, "2021": 3.1},
        "FR": {"2023": 4.9, "2022": 5.2, "2021": 1.6},
        "IT": {"2023": 5.6, "2022": 8.2, "2021": 1.9},
        "ES": {"2023": 3.5, "2022": 8.4, "2021": 3.1},
        "NL": {"2023": 3.8, "2022": 10.0, "2021": 2.7},
    },
    "SP.POP.TOTL": {
        "DE": {"2023": 84.5e6, "2022": 83.8e6},
        "FR": {"2023": 68.2e6, "2022": 67.9e6},
        "IT": {"2023": 58.9e6, "2022": 59.0e6},
        "ES": {"2023": 48.4e6, "2022": 47.8e6},
        "NL": {"2023": 17.9e6, "2022": 17.7e6},
    },
    # latest year published without a value yet
    "SL.UEM.TOTL.ZS": {
        "DE": {"2024": None, "2023": 3.0, "2022": 3.1},
        "FR": {"2024": None, "2023": 7.3, "2022": 7.3},
        "IT": {"2024": None, "2023": 7.7, "2022": 8.1},
        "ES": {"2024": None, "2023": 12.2, "2022": 13.0},
        "NL": {"2024": None, "2023": 3.6, "2022": 3.5},
    },
}

# {eurostat geo: {month: value}}
HICP_DATA = {
    "DE": {"2022-12": -1.2, "2023-11": -0.7, "2023-12": 0.2, "2024-01": 0.2},
    "FR": {"2022-12": 0.0, "2023-11": -0.2, "2023-12": 0.1, "2024-01": -0.2},
    "IT": {"2022-12": 0.2, "2023-11": -0.6, "2023-12": 0.2, "2024-01": -1.0},
    "ES": {"2022-12": 0.2, "2023-11": -0.1, "2023-12": 0.1, "2024-01": -0.1},
    "NL": {"2022-12": -2.3, "2023-11": -0.4, "2023-12": -0.3, "2024-01": -0.6},
}


def wb_payload(series):
    rows = [{"date": y, "value": v, "indicator": {}, "country": {}} for y, v in series.items()]
    return [{"page": 1, "pages": 1, "per_page": 100, "total": len(rows)}, rows]


def hicp_payload(months):
    index = {m: i for i, m in enumerate(months)}
    value = {str(i): v for i, (m, v) in enumerate(months.items()) if v is not None}
    return {
        "version": "2.0",
        "class": "dataset",
        "id": ["freq", "unit", "coicop", "geo", "time"],
        "dimension": {"time": {"label": "Time", "category": {"index": index}}},
        "value": value,
    }


class FakeSources:
    """Serves WB_DATA / HICP_DATA through an httpx mock transport and records calls."""

    def __init__(self):
        self.wb = {code: {c: dict(s) for c, s in by_c.items()} for code, by_c in WB_DATA.items()}
        self.hicp = {g: dict(s) for g, s in HICP_DATA.items()}
        self.failing = set()      # country / geo codes answering 500
        self.calls = []
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.calls.append(request.url)
        parts = request.url.path.strip("/").split("/")

        if "indicator" in parts:
            country = parts[parts.index("country") + 1]
            code = parts[-1]
            if country in self.failing:
                return httpx.Response(500, text="upstream error")
            series = self.wb.get(code, {}).get(country)
            if series is None:
                return httpx.Response(200, json=[{"message": [{"id": "120", "value": "Invalid value"}]}])
            return httpx.Response(200, json=wb_payload(series))

        if parts[-1] == eurostat_provider.HICP_DATASET:
            geo = request.url.params.get("geo")
            if geo in self.failing:
                return httpx.Response(500, text="upstream error")
            months = self.hicp.get(geo)
            if months is None:
                return httpx.Response(404, json={"error": [{"label": "no data"}]})
            return httpx.Response(200, json=hicp_payload(months))

        return httpx.Response(404)

    def count(self, fragment: str) -> int:
        return sum(1 for u in self.calls if fragment in str(u))


@pytest.fixture
def store(tmp_path):
    s = CacheStore(str(tmp_path / "cache.json"), ttl_sec=0)
    set_store(s)
    yield s
    set_store(None)


@pytest.fixture
def sources(store):
    fake = FakeSources()
    transport = httpx.MockTransport(fake.handler)
    wb_provider.set_client(httpx.Client(transport=transport))
    eurostat_provider.set_client(httpx.Client(transport=transport))
    dashboard_routes.reset_state()
    yield fake
    wb_provider.set_client(None)
    eurostat_provider.set_client(None)
    dashboard_routes.reset_state()
