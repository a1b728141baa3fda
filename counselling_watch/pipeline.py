"""Pipeline driver — runs every configured source through one pass.

Per source:
  1. Fetch announcements with the source's adapter (failures are isolated)
  2. Triage, classify and bucket them into a timeline
  3. Write timeline.json and processed_notifications.json
  4. Reconcile against the fingerprint ledger and the download directory
  5. Download whatever reconciliation asked for
  6. Write back the ledger and metadata.json

Sources are processed one after another; each has its own ledger and
metadata under data/<source id>/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests

from counselling_watch.config import PipelineConfig
from counselling_watch.fetcher import FetchStats, fetch_artifacts
from counselling_watch.fingerprint import fingerprint
from counselling_watch.models import Event, Timeline
from counselling_watch.reconcile import ReconcileResult, reconcile, recovery_map
from counselling_watch.sources.base import BaseSource
from counselling_watch.sources.list_items import ListItemsSource
from counselling_watch.sources.notice_api import NoticeApiSource
from counselling_watch.sources.table_rows import TableRowsSource
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

logger = logging.getLogger(__name__)

# Map source_type strings to classes
SOURCE_REGISTRY: dict[str, type[BaseSource]] = {
    "table_rows": TableRowsSource,
    "list_items": ListItemsSource,
    "notice_api": NoticeApiSource,
}


@dataclass
class SourceResult:
    """What happened to one source during a pass."""

    source_id: str
    name: str
    scraped: int = 0
    timeline: Optional[Timeline] = None
    events: list[Event] = field(default_factory=list)
    reconciliation: Optional[ReconcileResult] = None
    fetch_stats: Optional[FetchStats] = None
    persisted: bool = True
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def new_count(self) -> int:
        return self.reconciliation.new_count if self.reconciliation else 0


class SourcePipeline:
    """Orchestrates one pass over all configured sources."""

    def __init__(
        self,
        config: PipelineConfig,
        data_dir: str | Path | None = None,
        downloads_dir: str | Path | None = None,
    ):
        self.config = config
        self.data_dir = Path(data_dir or config.data_dir)
        self.downloads_dir = Path(downloads_dir or config.downloads_dir)
        self.classifier = config.vocabulary.build_classifier()
        self.triage = config.vocabulary.build_triage()

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": config.user_agent})

        self.sources: list[BaseSource] = []
        self._build_sources()

    def _build_sources(self) -> None:
        """Instantiate adapters for each enabled source in config."""
        for source in self.config.enabled_sources:
            source_cls = SOURCE_REGISTRY.get(source.source_type)
            if not source_cls:
                logger.warning(
                    "Unknown source type '%s' for source '%s' — skipping",
                    source.source_type,
                    source.name,
                )
                continue

            try:
                self.sources.append(source_cls(source, self.config))
                logger.info("Initialized source: %s (%s)", source.name, source.source_type)
            except Exception as exc:
                logger.error("Failed to initialize source '%s': %s", source.name, exc)

    def run(self) -> list[SourceResult]:
        """Process every source; one failing source does not stop the others."""
        logger.info("Starting pass over %d sources", len(self.sources))
        try:
            results = [self.process(source) for source in self.sources]
        finally:
            self.close()
        self._log_summary(results)
        return results

    def close(self) -> None:
        """Release the HTTP sessions held by the pipeline and its adapters."""
        for source in self.sources:
            source.close()
        self.session.close()

    def process(self, source: BaseSource) -> SourceResult:
        logger.info("=== Processing: %s ===", source.name)
        result = SourceResult(source_id=source.id, name=source.name)

        try:
            announcements = source.fetch()
        except Exception as exc:
            logger.error("Failed to fetch %s: %s", source.name, exc)
            result.error = str(exc)
            return result

        result.scraped = len(announcements)
        if not announcements:
            logger.warning("[%s] No announcements found", source.name)
            return result

        paths = SourcePaths.for_source(source.id, self.data_dir, self.downloads_dir)
        init_store(paths)

        timeline, events = build_timeline(source.name, announcements, self.classifier, self.triage)
        result.timeline = timeline
        result.events = events
        if not events:
            logger.warning("[%s] No relevant notifications found after filtering", source.name)
            return result

        try:
            save_timeline(paths.timeline, timeline)
            save_events(paths.events, events)
        except OSError as exc:
            logger.error("[%s] Could not write timeline: %s", source.name, exc)
            result.persisted = False

        prior_metadata = load_metadata(paths.metadata)
        recovery = recovery_map(prior_metadata)
        reconciled = reconcile(
            events,
            load_fingerprints(paths.ledger),
            artifact_dir=paths.download_dir,
            recovery=recovery,
        )
        result.reconciliation = reconciled

        if not reconciled.to_fetch:
            logger.info("[%s] No new announcements to download", source.name)
            return result

        logger.info("[%s] Downloading %d new documents", source.name, reconciled.new_count)
        stats = fetch_artifacts(
            reconciled.to_fetch,
            paths.download_dir,
            session=self.session,
            delay=self.config.request_delay_seconds,
            timeout=self.config.request_timeout_seconds,
        )
        result.fetch_stats = stats

        saved_as = dict(recovery)
        saved_as.update(stats.saved_as)
        try:
            save_fingerprints(paths.ledger, reconciled.fingerprints)
            save_metadata(
                paths.metadata,
                _metadata_records(events, saved_as, prior_metadata),
                {"reconciliation": reconciled.stats(), "downloads": stats.to_dict()},
            )
        except OSError as exc:
            logger.error("[%s] Could not write ledger/metadata: %s", source.name, exc)
            result.persisted = False

        return result

    def _log_summary(self, results: list[SourceResult]) -> None:
        logger.info("=== Pass Summary ===")
        for r in results:
            if r.failed:
                logger.info("  %s: FAILED (%s)", r.name, r.error)
            else:
                logger.info(
                    "  %s: %d scraped, %d relevant, %d new",
                    r.name,
                    r.scraped,
                    len(r.events),
                    r.new_count,
                )


def _metadata_records(
    events: list[Event],
    saved_as: dict[str, str],
    prior_metadata: dict,
) -> list[dict]:
    """Metadata entries for this pass, keeping earlier entries not seen now.

    Every entry has ``hash`` and, where known, ``savedAs``.
    """
    records = []
    current: set[str] = set()
    for event in events:
        digest = fingerprint(event.url, event.title)
        current.add(digest)
        record = event.to_dict()
        record["hash"] = digest
        if digest in saved_as:
            record["savedAs"] = saved_as[digest]
        records.append(record)

    prior_entries = prior_metadata.get("announcements")
    if not isinstance(prior_entries, list):
        return records
    for entry in prior_entries:
        if isinstance(entry, dict) and entry.get("hash") and entry["hash"] not in current:
            records.append(entry)
    return records
