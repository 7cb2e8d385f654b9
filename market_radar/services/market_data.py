"""
market_radar/services/market_data.py

Static 2024 European automotive-market dataset (new cars, used cars, battery
electric vehicles) and the tab payloads built from it.

Figures are kept as numbers; formatting happens in the view builders so the
same records can be ranked and rendered.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from market_radar.utils.formatting import NA, format_units

REPORT_YEAR = "2024"
MAJOR_MARKETS = 28

SEGMENTS = ("new-cars", "used-cars", "ev-market")

# -----------------------------------------------------------------------------
# New cars
# -----------------------------------------------------------------------------

NEW_CARS: Dict[str, Any] = {
    "overall": {
        "total_sales": 12_909_741,
        "growth_pct": 0.9,
        "top_brands": [
            {"name": "Volkswagen Group", "share_pct": 20, "change_pct": 0},
            {"name": "Stellantis", "share_pct": 15, "change_pct": -7},
            {"name": "Hyundai-Kia", "share_pct": 12, "change_pct": -1},
        ],
        "top_models": [
            {"name": "Dacia Sandero", "sales": 268_101, "change_pct": 14},
            {"name": "Renault Clio", "sales": 216_317, "change_pct": 7},
            {"name": "Volkswagen Golf", "sales": 215_715, "change_pct": 17},
        ],
    },
    "countries": [
        {
            "name": "Germany",
            "sales": 2_800_000,
            "growth_pct": -1.0,
            "top_brands": ["Volkswagen", "Mercedes-Benz", "BMW"],
            "top_models": [
                {"name": "Volkswagen Golf", "sales": 100_183},
                {"name": "Volkswagen T-Roc", "sales": 75_398},
                {"name": "Volkswagen Tiguan", "sales": 67_057},
            ],
        },
        {
            "name": "United Kingdom",
            "sales": 2_000_000,
            "growth_pct": 2.6,
            "top_brands": ["Ford", "Volkswagen", "BMW"],
            "top_models": [
                {"name": "Ford Puma", "sales": 48_340},
                {"name": "Volkswagen Golf", "sales": 35_000},
                {"name": "BMW X1", "sales": 30_000},
            ],
        },
        {
            "name": "France",
            "sales": 1_780_000,
            "growth_pct": -3.2,
            "top_brands": ["Renault", "Peugeot", "Citroën"],
            "top_models": [
                {"name": "Renault Clio", "sales": 91_435},
                {"name": "Peugeot 208", "sales": 88_918},
                {"name": "Dacia Sandero", "sales": 75_978},
            ],
        },
        {
            "name": "Italy",
            "sales": 1_560_000,
            "growth_pct": -0.5,
            "top_brands": ["Fiat", "Volkswagen", "Dacia"],
            "top_models": [
                {"name": "Fiat Panda", "sales": 99_871},
                {"name": "Dacia Sandero", "sales": 60_380},
                {"name": "Jeep Avenger", "sales": 41_184},
            ],
        },
        {
            "name": "Spain",
            "sales": 1_050_000,
            "growth_pct": 7.0,
            "top_brands": ["Dacia", "Toyota", "SEAT"],
            "top_models": [
                {"name": "Dacia Sandero", "sales": 32_994},
                {"name": "Toyota Corolla", "sales": 22_124},
                {"name": "SEAT Ibiza", "sales": 22_021},
            ],
        },
    ],
}

# -----------------------------------------------------------------------------
# Used cars (days = typical time to sell; ranges as (low, high))
# -----------------------------------------------------------------------------

USED_CARS: Dict[str, Any] = {
    "overall": {
        "growth_pct": 5.2,
        "top_brands": [
            {"name": "Peugeot", "sales": 15_503, "change_pct": -9.7},
            {"name": "Dacia", "sales": 12_008, "change_pct": 8.3},
            {"name": "Mercedes-Benz", "sales": 11_741, "change_pct": 5.0},
        ],
        "fastest_selling": [
            {"name": "Dacia Sandero", "days": (28, 34)},
            {"name": "Volkswagen Polo", "days": (32, 32)},
            {"name": "Toyota Aygo", "days": (23, 40)},
        ],
    },
    "countries": [
        {
            "name": "Germany",
            "growth_pct": 4.6,
            "top_brands": ["Volkswagen", "BMW", "Mercedes-Benz"],
            "fastest_models": [
                {"name": "Tesla Model 3", "days": (30, 30)},
                {"name": "Mercedes-Benz GLC", "days": (41, 41)},
                {"name": "Skoda Kodiaq", "days": (44, 44)},
            ],
        },
        {
            "name": "France",
            "growth_pct": 2.8,
            "top_brands": ["Renault", "Peugeot", "Citroën"],
            "fastest_models": [
                {"name": "Volkswagen Polo", "days": (32, 32)},
                {"name": "Dacia Duster", "days": (34, 34)},
                {"name": "Toyota Aygo", "days": (40, 40)},
            ],
        },
        {
            "name": "Italy",
            "growth_pct": 9.0,
            "top_brands": ["Fiat", "Dacia", "Volkswagen"],
            "fastest_models": [
                {"name": "Dacia Sandero", "days": (34, 34)},
                {"name": "Volvo XC40", "days": (42, 42)},
                {"name": "Toyota C-HR", "days": (44, 44)},
            ],
        },
        {
            "name": "Spain",
            "growth_pct": 11.5,
            "top_brands": ["Dacia", "Toyota", "Peugeot"],
            "fastest_models": [
                {"name": "Toyota C-HR", "days": (22, 22)},
                {"name": "Toyota Aygo", "days": (23, 23)},
                {"name": "Fiat Tipo", "days": (30, 30)},
            ],
        },
    ],
}

# -----------------------------------------------------------------------------
# Battery electric vehicles
# -----------------------------------------------------------------------------

EV_MARKET: Dict[str, Any] = {
    "overall": {
        "total_sales": 1_993_102,
        "growth_pct": -1.3,
        "market_share_pct": 15.4,
        "top_brands": [
            {"name": "Tesla", "share_pct": 25, "change_pct": 5},
            {"name": "Volkswagen", "share_pct": 18, "change_pct": -2},
            {"name": "Volvo", "share_pct": 12, "change_pct": 15},
        ],
        "top_models": [
            {"name": "Tesla Model Y", "sales": 200_000},
            {"name": "Volkswagen ID.4/ID.5", "sales": 120_000},
            {"name": "Tesla Model 3", "sales": 100_000},
        ],
    },
    "countries": [
        {
            "name": "Germany",
            "sales": 400_000,
            "growth_pct": -12.0,
            "note": "Sharp decline due to subsidy cuts",
            "top_models": [
                {"name": "Tesla Model Y", "sales": 29_896},
                {"name": "Skoda Enyaq", "sales": 25_262},
                {"name": "Volkswagen ID.4/ID.5", "sales": 21_611},
            ],
        },
        {
            "name": "United Kingdom",
            "sales": 300_000,
            "growth_pct": 8.0,
            "note": "Strong growth due to emission regulations",
            "top_models": [
                {"name": "Tesla Model Y", "sales": 35_000},
                {"name": "MG4", "sales": 25_000},
                {"name": "BMW iX1", "sales": 20_000},
            ],
        },
        {
            "name": "Norway",
            "sales": 120_000,
            "growth_pct": 1.4,
            "ev_share_pct": 89,
            "note": "89% EV market share",
            "top_models": [
                {"name": "Tesla Model Y", "sales": 16_858},
                {"name": "Tesla Model 3", "sales": 7_264},
                {"name": "Volvo EX30", "sales": 7_229},
            ],
        },
    ],
}


# -----------------------------------------------------------------------------
# formatting helpers
# -----------------------------------------------------------------------------

def signed_pct(v: Optional[float]) -> str:
    if v is None:
        return NA
    if v == 0:
        return "±0%"
    text = f"{v:+.1f}".rstrip("0").rstrip(".")
    return f"{text}%"


def days_label(days: Tuple[int, int]) -> str:
    low, high = days
    return f"{low}" if low == high else f"{low}-{high}"


def _best(rows: Sequence[Dict[str, Any]], key: Callable[[Dict[str, Any]], float], lowest: bool = False) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    return (min if lowest else max)(rows, key=key)


def fastest_growing(rows: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return _best([r for r in rows if r.get("growth_pct") is not None], key=lambda r: r["growth_pct"])


def fastest_selling_model(countries: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    models = [m for c in countries for m in c.get("fastest_models", [])]
    return _best(models, key=lambda m: m["days"][0], lowest=True)


def sales_ranking(rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows with unit sales, highest first (ties by name)."""
    ranked = sorted((r for r in rows if r.get("sales") is not None), key=lambda r: (-r["sales"], r["name"]))
    return [{"name": r["name"], "value": f"{format_units(r['sales'])} units", "raw": r["sales"]} for r in ranked]


def _brand_items(brands: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for b in brands:
        item = {"name": b["name"], "change": signed_pct(b.get("change_pct"))}
        if "share_pct" in b:
            item["value"] = f"{b['share_pct']}%"
        else:
            item["value"] = f"{format_units(b['sales'])} units"
        out.append(item)
    return out


def _model_items(models: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for m in models:
        item = {"name": m["name"]}
        if "days" in m:
            item["value"] = f"{days_label(m['days'])} days"
        else:
            item["value"] = f"{format_units(m['sales'])} units"
        if "change_pct" in m:
            item["change"] = signed_pct(m["change_pct"])
        out.append(item)
    return out


def _country_block(c: Dict[str, Any]) -> Dict[str, Any]:
    block: Dict[str, Any] = {
        "name": c["name"],
        "growth": signed_pct(c.get("growth_pct")),
        "top_brands": [{"name": b, "rank": i + 1} for i, b in enumerate(c.get("top_brands", []))],
    }
    if c.get("sales") is not None:
        block["sales"] = f"{format_units(c['sales'])} units"
    if c.get("note"):
        block["note"] = c["note"]
    if "fastest_models" in c:
        block["models_type"] = "days"
        block["models"] = _model_items(c["fastest_models"])
    else:
        block["models_type"] = "sales"
        block["models"] = _model_items(c.get("top_models", []))
    return block


def _card(title: str, value: str, change: Optional[str] = None) -> Dict[str, Any]:
    return {"title": title, "value": value, "change": change}


# -----------------------------------------------------------------------------
# segment views
# -----------------------------------------------------------------------------

def new_cars_view() -> Dict[str, Any]:
    overall = NEW_CARS["overall"]
    countries = NEW_CARS["countries"]
    grower = fastest_growing(countries)
    return {
        "segment": "new-cars",
        "title": "New Car Market Analysis",
        "cards": [
            _card("Total Sales Volume", format_units(overall["total_sales"]), signed_pct(overall["growth_pct"])),
            _card("Major Markets", f"{MAJOR_MARKETS} Countries"),
            _card("Fastest Growing Market", grower["name"] if grower else NA,
                  signed_pct(grower["growth_pct"]) if grower else None),
        ],
        "rankings": [
            {"title": "Europe-wide Top 3 Manufacturer Groups", "type": "share", "items": _brand_items(overall["top_brands"])},
            {"title": "Europe-wide Top 3 Popular Models", "type": "sales", "items": _model_items(overall["top_models"])},
            {"title": "Sales by Market", "type": "sales", "items": sales_ranking(countries)},
        ],
        "countries": [_country_block(c) for c in countries],
    }


def used_cars_view() -> Dict[str, Any]:
    overall = USED_CARS["overall"]
    countries = USED_CARS["countries"]
    grower = fastest_growing(countries)
    quickest = fastest_selling_model(countries)
    return {
        "segment": "used-cars",
        "title": "Used Car Market Analysis",
        "cards": [
            _card("Market Growth Rate", signed_pct(overall["growth_pct"]), "YoY"),
            _card("Fastest Selling Model", quickest["name"] if quickest else NA,
                  f"{days_label(quickest['days'])} days" if quickest else None),
            _card("Fastest Growing Market", grower["name"] if grower else NA,
                  signed_pct(grower["growth_pct"]) if grower else None),
        ],
        "rankings": [
            {"title": "Europe-wide Top 3 Popular Brands", "type": "sales", "items": _brand_items(overall["top_brands"])},
            {"title": "Fastest Selling Models Top 3", "type": "days", "items": _model_items(overall["fastest_selling"])},
        ],
        "countries": [_country_block(c) for c in countries],
    }


def ev_market_view() -> Dict[str, Any]:
    overall = EV_MARKET["overall"]
    countries = EV_MARKET["countries"]
    leader = _best(overall["top_brands"], key=lambda b: b["share_pct"])
    ev_focused = _best([c for c in countries if c.get("ev_share_pct") is not None], key=lambda c: c["ev_share_pct"])
    return {
        "segment": "ev-market",
        "title": "Electric Vehicle Market Analysis",
        "cards": [
            _card("Total BEV Sales", format_units(overall["total_sales"]), signed_pct(overall["growth_pct"])),
            _card("Market Share", f"{overall['market_share_pct']}%"),
            _card("Leading Brand", leader["name"] if leader else NA, f"{leader['share_pct']}%" if leader else None),
            _card("EV-focused Market", ev_focused["name"] if ev_focused else NA,
                  f"{ev_focused['ev_share_pct']}%" if ev_focused else None),
        ],
        "rankings": [
            {"title": "Europe-wide Top 3 EV Brands", "type": "share", "items": _brand_items(overall["top_brands"])},
            {"title": "Europe-wide Top 3 Popular EV Models", "type": "sales", "items": _model_items(overall["top_models"])},
            {"title": "BEV Sales by Market", "type": "sales", "items": sales_ranking(countries)},
        ],
        "countries": [_country_block(c) for c in countries],
    }


SEGMENT_VIEWS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "new-cars": new_cars_view,
    "used-cars": used_cars_view,
    "ev-market": ev_market_view,
}


def segment_view(segment: str) -> Dict[str, Any]:
    try:
        build = SEGMENT_VIEWS[segment]
    except KeyError:
        raise KeyError(f"unknown segment: {segment!r}") from None
    payload = build()
    payload["report_year"] = REPORT_YEAR
    return payload
