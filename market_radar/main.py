# market_radar/main.py
from __future__ import annotations

import importlib
import logging
import os
from fastapi import FastAPI
from fastapi.routing import APIRoute

from market_radar.services.dashboard_state import TABS
from market_radar.services.market_data import SEGMENTS

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logger = logging.getLogger("market-radar")
logging.basicConfig(level=LOG_LEVEL)


# --- keep operation_id stable (avoid FastAPI auto-dedupe renaming) ----------
def _fixed_unique_id(route: APIRoute) -> str:
    return route.operation_id or f"{route.name}_{route.path}".strip("/").replace("/", "_")


app = FastAPI(
    title="Market Radar API",
    description="European automotive-market and macroeconomic dashboard data",
    version="2026.10.18",
    generate_unique_id_function=_fixed_unique_id,
)


def _safe_include(prefix: str, module_path: str) -> bool:
    """Import a router module and include its `router` if present."""
    try:
        mod = importlib.import_module(module_path)
    except ImportError as e:
        logger.error("failed to import %s: %s", module_path, e)
        return False

    router = getattr(mod, "router", None)
    if router is None:
        logger.error("module %s has no `router`", module_path)
        return False

    app.include_router(router)
    logger.info("[init] %s router mounted from: %s", prefix, module_path)
    return True


MOUNTED = {
    "dashboard": _safe_include("dashboard", "market_radar.routes.dashboard"),
    "market": _safe_include("market", "market_radar.routes.market"),
}


@app.get("/")
def root():
    return {
        "ok": True,
        "routers": [name for name, ok in MOUNTED.items() if ok],
        "tabs": {
            "macro": [f"/v1/dashboard/{t}" for t in TABS],
            "market": [f"/v1/market/{s}" for s in SEGMENTS],
        },
    }


@app.get("/healthz")
def healthz():
    # keep this super fast
    return {"status": "ok"}
