"""Reconciliation of the current event list against persisted state.

Decides which events need their document fetched this pass:

- events whose fingerprint is not in the ledger are new and get fetched;
- events the ledger already knows are skipped, *unless* the previous
  metadata says which file they were saved as and that file is gone from
  the download directory. Those are fetched again.

The second rule is what lets a run recover from an interrupted or failed
download, or a pruned download directory, without hand-editing the ledger.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

from counselling_watch.fingerprint import fingerprint
from counselling_watch.models import Event

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""

    to_fetch: list[Event] = field(default_factory=list)
    fingerprints: set[str] = field(default_factory=set)
    total: int = 0
    previously_seen: int = 0
    recovered: int = 0

    @property
    def new_count(self) -> int:
        return len(self.to_fetch)

    def stats(self) -> dict[str, int]:
        return {
            "totalScraped": self.total,
            "totalPrevious": self.previously_seen,
            "totalNew": self.new_count,
            "totalRecovered": self.recovered,
        }


def recovery_map(metadata: Optional[Mapping]) -> dict[str, str]:
    """Build ``{fingerprint: saved filename}`` from a metadata document.

    Entries without both ``hash`` and ``savedAs`` are ignored; anything that
    is not shaped like metadata yields an empty map.
    """
    if not isinstance(metadata, Mapping):
        return {}
    entries = metadata.get("announcements")
    if not isinstance(entries, list):
        return {}

    mapping: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        digest = entry.get("hash")
        saved_as = entry.get("savedAs")
        if digest and saved_as:
            mapping[digest] = saved_as
    return mapping


def _artifact_missing(artifact_dir: Path, filename: str) -> bool:
    return not (artifact_dir / filename).exists()


def reconcile(
    events: Iterable[Event],
    prior_fingerprints: set[str],
    artifact_dir: str | Path | None = None,
    recovery: Optional[Mapping[str, str]] = None,
) -> ReconcileResult:
    """Work out which events to fetch and the updated fingerprint set.

    Fingerprints are recomputed from each event's url and title rather than
    taken from ``Event.id``. The returned ``fingerprints`` is the union of
    ``prior_fingerprints`` and every event seen here; ``prior_fingerprints``
    itself is not modified.
    """
    result = ReconcileResult(
        fingerprints=set(prior_fingerprints),
        previously_seen=len(prior_fingerprints),
    )
    directory = Path(artifact_dir) if artifact_dir is not None else None
    recovery = recovery or {}

    for event in events:
        result.total += 1
        digest = fingerprint(event.url, event.title)
        result.fingerprints.add(digest)

        should_fetch = digest not in prior_fingerprints

        if not should_fetch and directory is not None:
            saved_as = recovery.get(digest)
            if saved_as and _artifact_missing(directory, saved_as):
                logger.info("Fingerprint known but file is missing: %s. Marking for re-fetch.", saved_as)
                should_fetch = True
                result.recovered += 1

        if should_fetch:
            result.to_fetch.append(dataclasses.replace(event, hash=digest))

    logger.info(
        "Reconciled %d events: %d previously known, %d to fetch (%d recovered)",
        result.total,
        result.previously_seen,
        result.new_count,
        result.recovered,
    )
    return result
