"""Tests for ledger, metadata and timeline persistence."""

import json
from pathlib import Path
from unittest import mock

import pytest

from counselling_watch.models import Announcement
from counselling_watch.storage import (
    SourcePaths,
    init_store,
    load_fingerprints,
    load_metadata,
    save_events,
    save_fingerprints,
    save_metadata,
    save_timeline,
)
from counselling_watch.timeline import build_timeline


def test_source_paths_layout(tmp_path: Path):
    paths = SourcePaths.for_source("gmch", tmp_path / "data", tmp_path / "downloads")
    assert paths.ledger == tmp_path / "data" / "gmch" / "hashes.json"
    assert paths.metadata == tmp_path / "data" / "gmch" / "metadata.json"
    assert paths.timeline == tmp_path / "data" / "gmch" / "timeline.json"
    assert paths.events == tmp_path / "data" / "gmch" / "processed_notifications.json"
    assert paths.download_dir == tmp_path / "downloads" / "gmch"


def test_init_store_creates_dirs(tmp_path: Path):
    paths = SourcePaths.for_source("x", tmp_path / "data", tmp_path / "downloads")
    init_store(paths)
    init_store(paths)  # idempotent
    assert paths.data_dir.is_dir()
    assert paths.download_dir.is_dir()


# ── Ledger ──────────────────────────────────────────────────────────────────


def test_ledger_round_trip(tmp_path: Path):
    path = tmp_path / "hashes.json"
    fingerprints = {"a" * 64, "b" * 64, "c" * 64}
    save_fingerprints(path, fingerprints)

    assert load_fingerprints(path) == fingerprints
    on_disk = json.loads(path.read_text())
    assert isinstance(on_disk, list)
    assert sorted(on_disk) == sorted(fingerprints)


def test_missing_ledger_is_empty(tmp_path: Path):
    assert load_fingerprints(tmp_path / "nope.json") == set()


def test_corrupt_ledger_is_empty(tmp_path: Path):
    path = tmp_path / "hashes.json"
    path.write_text("{not json")
    assert load_fingerprints(path) == set()


def test_ledger_of_wrong_shape_is_empty(tmp_path: Path):
    path = tmp_path / "hashes.json"
    path.write_text(json.dumps({"a": 1}))
    assert load_fingerprints(path) == set()


def test_ledger_ignores_non_string_entries(tmp_path: Path):
    path = tmp_path / "hashes.json"
    path.write_text(json.dumps(["abc", 1, None, "def"]))
    assert load_fingerprints(path) == {"abc", "def"}


def test_corrupt_ledger_restored_from_backup(tmp_path: Path):
    path = tmp_path / "hashes.json"
    save_fingerprints(path, {"first"})
    save_fingerprints(path, {"first", "second"})  # .bak now holds {"first"}
    path.write_text("garbage")

    assert load_fingerprints(path) == {"first"}
    # Primary file rewritten from backup
    assert json.loads(path.read_text()) == ["first"]


def test_save_failure_is_raised(tmp_path: Path):
    path = tmp_path / "hashes.json"
    with mock.patch("counselling_watch.storage.os.fsync", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            save_fingerprints(path, {"a"})
    assert not path.exists()
    assert not (tmp_path / "hashes.json.tmp").exists()


# ── Metadata ────────────────────────────────────────────────────────────────


def test_metadata_round_trip(tmp_path: Path):
    path = tmp_path / "metadata.json"
    records = [{"title": "A", "hash": "aaa", "savedAs": "a.pdf"}]
    save_metadata(path, records, {"downloads": {"downloaded": 1}})

    loaded = load_metadata(path)
    assert loaded["announcements"] == records
    assert loaded["totalAnnouncements"] == 1
    assert loaded["statistics"] == {"downloads": {"downloaded": 1}}
    assert "lastUpdated" in loaded


def test_missing_or_bad_metadata_is_empty(tmp_path: Path):
    assert load_metadata(tmp_path / "missing.json") == {}
    bad = tmp_path / "metadata.json"
    bad.write_text("[1, 2, 3]")
    assert load_metadata(bad) == {}


# ── Timeline / flat list ────────────────────────────────────────────────────


def test_timeline_and_events_written_as_json(tmp_path: Path):
    timeline, flat = build_timeline(
        "GMCH", [Announcement(title="Round 2 Merit List", url="https://gmch.gov.in/r2.pdf")]
    )
    save_timeline(tmp_path / "timeline.json", timeline)
    save_events(tmp_path / "processed_notifications.json", flat)

    t = json.loads((tmp_path / "timeline.json").read_text())
    assert t["source_name"] == "GMCH"
    assert len(t["rounds"]) == 7
    assert t["rounds"]["round_2"]["events"][0]["type"] == "merit_list"

    events = json.loads((tmp_path / "processed_notifications.json").read_text())
    assert [e["title"] for e in events] == ["Round 2 Merit List"]
    assert events[0]["isNew"] is False


def test_timeline_top_level_keys(tmp_path: Path):
    timeline, _ = build_timeline("DME Assam", [])
    save_timeline(tmp_path / "timeline.json", timeline)

    on_disk = json.loads((tmp_path / "timeline.json").read_text())
    assert set(on_disk) == {"source_name", "updatedAt", "rounds"}
