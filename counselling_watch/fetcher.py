"""Artifact fetcher: downloads the documents reconciliation asked for.

Files are named ``<YYYY-MM-DD>_<sanitized title>_<short id>.pdf`` inside the
source's download directory. The short id keeps documents that share a
title (or sanitize to the same name) in separate files.

The filename is reported back for every event, even when the download
failed: the fingerprint still lands in the ledger, and the next pass's
recovery check will find the file missing and try again.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import requests

from counselling_watch.fingerprint import fingerprint, short_id
from counselling_watch.models import Event

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 200
CHUNK_SIZE = 64 * 1024


@dataclass
class FetchStats:
    """Download outcome for one pass."""

    total: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    saved_as: dict[str, str] = field(default_factory=dict)  # fingerprint -> filename

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "downloaded": self.downloaded,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def sanitize_filename(name: str) -> str:
    """Replace unsafe characters with ``_`` and cap the length."""
    cleaned = re.sub(r"[^A-Za-z0-9_.\-]", "_", name)
    cleaned = re.sub(r"_+", "_", cleaned)
    return cleaned[:MAX_FILENAME_LENGTH]


def artifact_filename(title: str, digest: str, today: Optional[str] = None) -> str:
    day = today or datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return f"{day}_{sanitize_filename(title)}_{short_id(digest)}.pdf"


def download_file(
    url: str,
    target: Path,
    session: requests.Session,
    timeout: float = 30.0,
) -> None:
    """Stream ``url`` to ``target`` via a ``.part`` file.

    Raises requests.RequestException or OSError on failure; no partial
    file is left at ``target``.
    """
    part = target.with_name(target.name + ".part")
    try:
        with session.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with open(part, "wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        part.replace(target)
    finally:
        if part.exists():
            part.unlink()


def fetch_artifacts(
    events: Iterable[Event],
    download_dir: str | Path,
    session: Optional[requests.Session] = None,
    delay: float = 1.0,
    timeout: float = 30.0,
) -> FetchStats:
    """Download each event's document into ``download_dir``.

    Events must carry their fingerprint in ``hash`` (as returned by
    reconciliation). Failures are logged and counted, never raised.
    """
    directory = Path(download_dir)
    directory.mkdir(parents=True, exist_ok=True)
    session = session or requests.Session()
    items = list(events)
    stats = FetchStats(total=len(items))

    for i, event in enumerate(items, start=1):
        logger.info("[%d/%d] Processing: %s", i, len(items), event.title)
        digest = event.hash or fingerprint(event.url, event.title)
        filename = artifact_filename(event.title, digest)
        stats.saved_as[digest] = filename
        target = directory / filename

        if target.exists():
            logger.info("  Already exists: %s", filename)
            stats.skipped += 1
            continue

        try:
            download_file(event.url, target, session, timeout=timeout)
        except (requests.RequestException, OSError) as exc:
            logger.error("  Failed to download %s: %s", event.url, exc)
            stats.failed += 1
        else:
            logger.info("  Downloaded: %s", filename)
            stats.downloaded += 1

        if delay and i < len(items):
            time.sleep(delay)

    logger.info(
        "Download summary: %d downloaded, %d skipped, %d failed",
        stats.downloaded,
        stats.skipped,
        stats.failed,
    )
    return stats
