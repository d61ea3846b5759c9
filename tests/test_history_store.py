from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from datastore.history_store import HistoryStore, build_default_store
from models.records import DepthSample, DiveSummary
from settings import get_settings

BASE = datetime(2024, 7, 1, tzinfo=timezone.utc)


def _dive(minutes: int) -> DiveSummary:
    end = BASE + timedelta(minutes=minutes)
    return DiveSummary.finalize(
        start_date=end - timedelta(seconds=60),
        end_date=end,
        max_depth_meters=3.0,
        duration_seconds=60.0,
        profile=[DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=30, depth_meters=3.0)],
    )


def test_history_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    dives = [_dive(10), _dive(0)]

    HistoryStore(name="dives", persistence_path=path).save(dives)
    reloaded = HistoryStore(name="dives", persistence_path=path).load()

    assert reloaded == dives
    assert json.loads(path.read_text())[0]["id"] == str(dives[0].id)


def test_in_memory_store_round_trips() -> None:
    store = HistoryStore(name="memory")
    dives = [_dive(0)]

    store.save(dives)

    assert store.load() == dives


def test_load_skips_undecodable_records(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    good = _dive(0)
    path.write_text(json.dumps([good.to_payload(), {"id": "broken"}, "junk"]))

    loaded = HistoryStore(name="dives", persistence_path=path).load()

    assert loaded == [good]


def test_load_tolerates_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{not json")

    assert HistoryStore(name="dives", persistence_path=path).load() == []

    path.write_text(json.dumps({"not": "a list"}))
    assert HistoryStore(name="dives", persistence_path=path).load() == []


def test_load_missing_file_is_empty(tmp_path: Path) -> None:
    store = HistoryStore(name="dives", persistence_path=tmp_path / "nested" / "history.json")

    assert store.load() == []
    assert (tmp_path / "nested").is_dir()


def test_export_writes_timestamped_document(tmp_path: Path) -> None:
    store = HistoryStore(name="dives")
    dives = [_dive(0)]

    exported = store.export(tmp_path / "exports", dives)

    assert exported.name.startswith("DiveHistory-")
    assert exported.suffix == ".json"
    payloads = json.loads(exported.read_text())
    assert [DiveSummary.from_payload(p) for p in payloads] == dives


def test_build_default_store_reads_environment(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "custom.json"
    monkeypatch.setenv("DIVELOG_HISTORY_PATH", str(path))
    get_settings.cache_clear()
    build_default_store.cache_clear()
    try:
        store = build_default_store()
        assert store.name == "savedDiveSummaries"
        assert store.persistence_path == path
    finally:
        build_default_store.cache_clear()
        get_settings.cache_clear()
