"""Storage module for the counselling watch pipeline.

Each source gets its own directory under the data dir (``data/<source id>/``)
holding four JSON files:

1. **Ledger** (``hashes.json``)
   - Every fingerprint ever seen for the source, as a JSON array of hex strings
   - Only ever grows; read back as an unordered set

2. **Metadata** (``metadata.json``)
   - Statistics of the last pass plus, per fetched announcement, the
     ``hash`` and the ``savedAs`` filename used on disk
   - Read back by reconciliation to notice documents that went missing

3. **Timeline** (``timeline.json``) and **flat list** (``processed_notifications.json``)
   - Rewritten wholesale every pass, never merged

Downloaded documents live separately under ``downloads/<source id>/``.

Writes use the atomic write pattern:
  1. Write to .tmp file
  2. fsync
  3. Rename to target (atomic on POSIX)

Ledger and metadata writes keep a .bak copy of the previous version. If the
primary file is corrupted, it's restored from .bak automatically. Reads never
raise: a missing or unreadable file is treated as empty state.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from counselling_watch.models import Event, Timeline

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("data")
DEFAULT_DOWNLOADS_DIR = Path("downloads")

LEDGER_FILE = "hashes.json"
METADATA_FILE = "metadata.json"
TIMELINE_FILE = "timeline.json"
EVENTS_FILE = "processed_notifications.json"


@dataclass(frozen=True)
class SourcePaths:
    """Where one source's state and downloads live."""

    data_dir: Path
    download_dir: Path

    @classmethod
    def for_source(
        cls,
        source_id: str,
        data_root: str | Path = DEFAULT_DATA_DIR,
        downloads_root: str | Path = DEFAULT_DOWNLOADS_DIR,
    ) -> SourcePaths:
        return cls(Path(data_root) / source_id, Path(downloads_root) / source_id)

    @property
    def ledger(self) -> Path:
        return self.data_dir / LEDGER_FILE

    @property
    def metadata(self) -> Path:
        return self.data_dir / METADATA_FILE

    @property
    def timeline(self) -> Path:
        return self.data_dir / TIMELINE_FILE

    @property
    def events(self) -> Path:
        return self.data_dir / EVENTS_FILE


# ── Initialization ─────────────────────────────────────────────────────────

def init_store(paths: SourcePaths) -> None:
    """Ensure the source's data and download directories exist.

    Safe to call multiple times.
    """
    for d in (paths.data_dir, paths.download_dir):
        if not d.exists():
            d.mkdir(parents=True, exist_ok=True)
            logger.info("Created directory %s", d)


# ── Fingerprint Ledger ─────────────────────────────────────────────────────

def load_fingerprints(path: str | Path) -> set[str]:
    """Load the ledger as a set of fingerprints.

    Returns an empty set when the file is missing, unreadable, or not a
    JSON array of strings.
    """
    data = _safe_read_json(Path(path), default=[])
    if not isinstance(data, list):
        logger.warning("Ledger %s is not a JSON array — treating as empty", path)
        return set()

    if any(not isinstance(item, str) for item in data):
        logger.warning("Ledger %s contains non-string entries — ignoring them", path)
    return {item for item in data if isinstance(item, str)}


def save_fingerprints(path: str | Path, fingerprints: Iterable[str]) -> None:
    """Overwrite the ledger with ``fingerprints``.

    Raises OSError if the write fails; the caller's set is untouched.
    """
    ordered = sorted(set(fingerprints))
    _backup_and_write(Path(path), ordered)
    logger.info("Saved %d fingerprints to %s", len(ordered), path)


# ── Metadata ───────────────────────────────────────────────────────────────

def load_metadata(path: str | Path) -> dict:
    """Load the previous pass's metadata, or ``{}`` if there is none."""
    data = _safe_read_json(Path(path), default={})
    if not isinstance(data, dict):
        logger.warning("Metadata %s is not a JSON object — treating as empty", path)
        return {}
    return data


def save_metadata(
    path: str | Path,
    announcements: list[dict],
    statistics: dict[str, Any],
) -> dict:
    """Write the metadata document and return it."""
    metadata = {
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
        "totalAnnouncements": len(announcements),
        "statistics": statistics,
        "announcements": announcements,
    }
    _backup_and_write(Path(path), metadata)
    logger.info("Saved metadata to %s", path)
    return metadata


# ── Timeline / Flat List ───────────────────────────────────────────────────

def save_timeline(path: str | Path, timeline: Timeline) -> None:
    _atomic_write_json(Path(path), timeline.to_dict())
    logger.debug("Wrote timeline for %s to %s", timeline.source_name, path)


def save_events(path: str | Path, events: list[Event]) -> None:
    _atomic_write_json(Path(path), [e.to_dict() for e in events])
    logger.debug("Wrote %d events to %s", len(events), path)


# ── Internal Helpers ───────────────────────────────────────────────────────

def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _safe_read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file, restoring from .bak if corrupted.

    If the primary file can't be parsed, tries .bak. If both fail,
    returns the default value and logs an error.
    """
    fallback = default if default is not None else {}
    if not path.exists():
        return fallback

    try:
        return _read_json(path)
    except (ValueError, OSError) as exc:
        logger.warning("Failed to read %s: %s — trying backup", path, exc)

    bak_path = path.with_suffix(path.suffix + ".bak")
    if bak_path.exists():
        try:
            data = _read_json(bak_path)
        except (ValueError, OSError) as exc:
            logger.error("Backup %s also corrupted: %s", bak_path, exc)
        else:
            logger.info("Restored %s from backup", path)
            try:
                _atomic_write_json(path, data)
            except OSError:
                logger.warning("Could not write restored data back to %s", path)
            return data

    logger.error("Could not read %s or its backup — using default", path)
    return fallback


def _backup_and_write(path: Path, data: Any) -> None:
    """Create a .bak backup of the current file, then atomically write new data."""
    if path.exists():
        bak_path = path.with_suffix(path.suffix + ".bak")
        try:
            shutil.copy2(path, bak_path)
        except OSError as exc:
            logger.warning("Failed to create backup of %s: %s", path, exc)

    _atomic_write_json(path, data)


def _atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON data atomically using temp file + rename.

    1. Write to .tmp file in the same directory
    2. fsync the temp file
    3. Rename temp to target (atomic on POSIX)
    """
    tmp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, path)
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
        if tmp_path.exists():
            tmp_path.unlink()
        raise
