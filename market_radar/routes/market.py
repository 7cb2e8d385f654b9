# market_radar/routes/market.py: static automotive-market tabs
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from market_radar.services.market_data import SEGMENTS, segment_view

router = APIRouter(prefix="/v1/market", tags=["market"])


@router.get("", summary="Available market segments")
def segments() -> Dict[str, Any]:
    return {"segments": list(SEGMENTS)}


@router.get("/{segment}", summary="Market segment tab")
def market_segment(segment: str) -> Dict[str, Any]:
    try:
        return segment_view(segment)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown segment: {segment}")
