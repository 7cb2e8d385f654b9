import json

from market_radar.services import cache_store
from market_radar.services.cache_store import CacheStore, cache_key


def test_cache_key_format():
    assert cache_key("world_bank", "DE", "NY.GDP.MKTP.CD") == "world_bank:DE:NY.GDP.MKTP.CD:latest"
    assert cache_key("eurostat", "EL", "CP00", "2023") == "eurostat:EL:CP00:2023"


def test_get_set_roundtrip_and_persistence(tmp_path):
    path = tmp_path / "nested" / "cache.json"
    series = [{"year": "2023", "value": 1.5}, {"year": "2022", "value": None}]

    s = CacheStore(str(path), ttl_sec=0)
    assert s.get("k") is None
    s.set("k", series)
    assert s.get("k") == series

    # a fresh store on the same file sees the entry
    again = CacheStore(str(path), ttl_sec=0)
    assert again.get("k") == series


def test_returned_values_are_copies(tmp_path):
    s = CacheStore(str(tmp_path / "c.json"), ttl_sec=0)
    s.set("k", [{"year": "2023", "value": 1.0}])
    got = s.get("k")
    got.append({"year": "1999", "value": 0})
    assert s.get("k") == [{"year": "2023", "value": 1.0}]


def test_entries_expire_after_ttl(tmp_path, monkeypatch):
    now = [1_000_000.0]
    monkeypatch.setattr(cache_store.time, "time", lambda: now[0])
    s = CacheStore(str(tmp_path / "c.json"), ttl_sec=60)
    s.set("k", {"value": 1, "date": "2023"})
    now[0] += 59
    assert s.get("k") == {"value": 1, "date": "2023"}
    now[0] += 2
    assert s.get("k") is None


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "c.json"
    path.write_text("{not json", encoding="utf-8")
    s = CacheStore(str(path), ttl_sec=0)
    assert s.get("anything") is None
    # and writing repairs it
    s.set("k", [1, 2])
    assert json.loads(path.read_text(encoding="utf-8"))["k"][1] == [1, 2]


def test_write_failure_is_silent(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    # parent "directory" is a regular file: mkdir/write will fail
    s = CacheStore(str(blocker / "cache.json"), ttl_sec=0)
    s.set("k", [1])
    s.clear()


def test_unserialisable_value_is_ignored(tmp_path):
    s = CacheStore(str(tmp_path / "c.json"), ttl_sec=0)
    s.set("k", {"bad": object()})
    assert s.get("k") is None


def test_clear(tmp_path):
    s = CacheStore(str(tmp_path / "c.json"), ttl_sec=0)
    s.set("a", 1)
    s.set("b", 2)
    assert len(s) == 2
    s.clear()
    assert len(s) == 0
    assert CacheStore(str(tmp_path / "c.json"), ttl_sec=0).get("a") is None
