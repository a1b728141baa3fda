"""Tests for reconciliation against the ledger and the download directory.

Tests cover:
- New vs. previously seen events
- Idempotent re-runs
- Recovery of previously seen events whose file went missing
- Recovery map parsing
"""

from pathlib import Path

import pytest

from counselling_watch.fingerprint import fingerprint
from counselling_watch.models import Announcement
from counselling_watch.reconcile import reconcile, recovery_map
from counselling_watch.timeline import build_timeline


@pytest.fixture
def events():
    anns = [
        Announcement(title="Round 1 Merit List", url="https://example.com/r1.pdf"),
        Announcement(title="Round 2 Seat Matrix", url="https://example.com/r2.pdf"),
        Announcement(title="Mop-up Schedule", url="https://example.com/mop.pdf"),
    ]
    _, flat = build_timeline("Test", anns)
    return flat


def _fp(event) -> str:
    return fingerprint(event.url, event.title)


def test_first_pass_fetches_everything(events):
    result = reconcile(events, set())
    assert [e.title for e in result.to_fetch] == [e.title for e in events]
    assert result.total == 3
    assert result.previously_seen == 0
    assert result.new_count == 3
    assert result.fingerprints == {_fp(e) for e in events}


def test_to_fetch_events_carry_full_fingerprint(events):
    result = reconcile(events, set())
    for event in result.to_fetch:
        assert event.hash == _fp(event)
        assert event.id == event.hash[:16]
    # Input events are not modified
    assert all(e.hash is None for e in events)


def test_second_pass_is_idempotent(events):
    first = reconcile(events, set())
    second = reconcile(events, first.fingerprints)
    assert second.to_fetch == []
    assert second.previously_seen == 3
    assert second.fingerprints == first.fingerprints


def test_only_unseen_events_are_fetched(events):
    prior = {_fp(events[0]), _fp(events[2])}
    result = reconcile(events, prior)
    assert [e.title for e in result.to_fetch] == ["Round 2 Seat Matrix"]
    assert result.previously_seen == 2


def test_union_keeps_prior_fingerprints(events):
    stale = "f" * 64
    prior = {stale}
    result = reconcile(events, prior)
    assert stale in result.fingerprints
    assert len(result.fingerprints) == 4
    assert prior == {stale}


def test_missing_file_is_refetched(events, tmp_path: Path):
    prior = {_fp(e) for e in events}
    (tmp_path / "present.pdf").write_bytes(b"%PDF")
    recovery = {
        _fp(events[0]): "present.pdf",
        _fp(events[1]): "deleted.pdf",
    }

    result = reconcile(events, prior, artifact_dir=tmp_path, recovery=recovery)

    assert [e.title for e in result.to_fetch] == ["Round 2 Seat Matrix"]
    assert result.recovered == 1
    assert result.to_fetch[0].hash == _fp(events[1])


def test_no_recovery_entry_means_seen_stands(events, tmp_path: Path):
    prior = {_fp(e) for e in events}
    result = reconcile(events, prior, artifact_dir=tmp_path, recovery={})
    assert result.to_fetch == []


def test_no_artifact_dir_skips_recovery_check(events):
    prior = {_fp(e) for e in events}
    recovery = {_fp(events[0]): "gone.pdf"}
    result = reconcile(events, prior, artifact_dir=None, recovery=recovery)
    assert result.to_fetch == []


def test_empty_event_list():
    result = reconcile([], {"a" * 64})
    assert result.to_fetch == []
    assert result.total == 0
    assert result.previously_seen == 1
    assert result.fingerprints == {"a" * 64}


def test_stats_keys(events):
    stats = reconcile(events, set()).stats()
    assert stats == {"totalScraped": 3, "totalPrevious": 0, "totalNew": 3, "totalRecovered": 0}


# ── Recovery map ────────────────────────────────────────────────────────────


def test_recovery_map_from_metadata():
    metadata = {
        "announcements": [
            {"hash": "aaa", "savedAs": "a.pdf"},
            {"hash": "bbb"},
            {"savedAs": "orphan.pdf"},
            "not a dict",
            {"hash": "ccc", "savedAs": "c.pdf"},
        ]
    }
    assert recovery_map(metadata) == {"aaa": "a.pdf", "ccc": "c.pdf"}


@pytest.mark.parametrize("metadata", [None, {}, [], {"announcements": "nope"}, "text"])
def test_recovery_map_tolerates_junk(metadata):
    assert recovery_map(metadata) == {}
