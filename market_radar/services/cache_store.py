# market_radar/services/cache_store.py
"""
Persistent key/value cache for fetched series and selections.

Entries live in a single JSON file mirrored in memory. Reads and writes are
best-effort: any failure is logged at DEBUG and swallowed, so callers fall
through to the network and correctness never depends on the cache.

Keys: "{source}:{entity}:{indicator}:{year-or-'latest'}"
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
import json
import logging
import os
import pathlib
import threading
import time

from market_radar.errors import CacheError

logger = logging.getLogger("market-radar")

# ------------------------------------------------------------------------------
# Config
# ------------------------------------------------------------------------------
CACHE_PATH = os.getenv(
    "MARKET_RADAR_CACHE_PATH",
    str(pathlib.Path.home() / ".cache" / "market-radar" / "cache.json"),
)
CACHE_TTL_SEC = float(os.getenv("MARKET_RADAR_CACHE_TTL_SEC", "86400"))  # 0 = never expire

LATEST = "latest"


def cache_key(source: str, entity: str, indicator: str, year: Optional[str] = None) -> str:
    return f"{source}:{entity}:{indicator}:{year or LATEST}"


class CacheStore:
    def __init__(self, path: Optional[str] = None, ttl_sec: float = CACHE_TTL_SEC) -> None:
        self.path = pathlib.Path(path) if path else None
        self.ttl = ttl_sec
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, Tuple[float, Any]]] = None

    # -- file I/O -------------------------------------------------------------

    def _read_file(self) -> Dict[str, Tuple[float, Any]]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheError(f"cannot read {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise CacheError(f"unexpected cache layout in {self.path}")
        out: Dict[str, Tuple[float, Any]] = {}
        for k, row in raw.items():
            if isinstance(row, list) and len(row) == 2 and isinstance(row[0], (int, float)):
                out[str(k)] = (float(row[0]), row[1])
        return out

    def _write_file(self, data: Dict[str, Tuple[float, Any]]) -> None:
        if self.path is None:
            return
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps({k: [ts, v] for k, (ts, v) in data.items()}), encoding="utf-8")
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(f"cannot write {self.path}: {e}") from e

    def _loaded(self) -> Dict[str, Tuple[float, Any]]:
        if self._data is None:
            try:
                self._data = self._read_file()
            except CacheError as e:
                logger.debug("[cache] %s; starting empty", e)
                self._data = {}
        return self._data

    def _expired(self, ts: float) -> bool:
        return self.ttl > 0 and (time.time() - ts) > self.ttl

    # -- public API -----------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            row = self._loaded().get(key)
            if not row:
                return None
            ts, val = row
            if self._expired(ts):
                self._loaded().pop(key, None)
                return None
            try:
                # hand out a private copy so callers cannot mutate the cached entry
                return json.loads(json.dumps(val))
            except (TypeError, ValueError) as e:
                logger.debug("[cache] unreadable entry %s: %s", key, e)
                return None

    def set(self, key: str, val: Any) -> None:
        with self._lock:
            try:
                snapshot = json.loads(json.dumps(val))
            except (TypeError, ValueError) as e:
                logger.debug("[cache] cannot serialise %s: %s", key, e)
                return
            data = self._loaded()
            data[key] = (time.time(), snapshot)
            try:
                self._write_file(data)
            except CacheError as e:
                logger.debug("[cache] %s", e)

    def clear(self) -> None:
        with self._lock:
            self._data = {}
            try:
                self._write_file(self._data)
            except CacheError as e:
                logger.debug("[cache] %s", e)

    def __len__(self) -> int:
        with self._lock:
            return len(self._loaded())


_STORE: Optional[CacheStore] = None


def get_store() -> CacheStore:
    global _STORE
    if _STORE is None:
        _STORE = CacheStore(CACHE_PATH)
    return _STORE


def set_store(store: Optional[CacheStore]) -> None:
    """Swap the process-wide store (tests, or an alternative path)."""
    global _STORE
    _STORE = store
