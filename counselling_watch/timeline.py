"""Timeline builder.

Turns a source's raw announcement list into:

1. a ``Timeline`` with one bucket per counselling round (all seven always
   present, empty or not), and
2. a flat list of the same events in input order.

No date sorting happens here. Sources publish dates in whatever format they
like (or not at all), so the scraped order is the only order we trust.
"""

from __future__ import annotations

import logging
from typing import Iterable

from counselling_watch.classifier import Classifier
from counselling_watch.fingerprint import short_id
from counselling_watch.models import Announcement, Event, RoundBucket, RoundTag, Timeline
from counselling_watch.triage import TriageFilter

logger = logging.getLogger(__name__)

ROUND_LABELS: dict[RoundTag, str] = {
    RoundTag.ROUND_1: "Round 1 Counselling",
    RoundTag.ROUND_2: "Round 2 Counselling",
    RoundTag.ROUND_3: "Round 3 Counselling",
    RoundTag.MOP_UP: "Mop-Up Round",
    RoundTag.STRAY: "Stray Vacancy Round",
    RoundTag.SPECIAL_STRAY: "Special Stray Vacancy Round",
    RoundTag.GENERAL: "General Notices",
}


def empty_timeline(source_name: str) -> Timeline:
    return Timeline(
        source_name=source_name,
        rounds={tag: RoundBucket(label=label) for tag, label in ROUND_LABELS.items()},
    )


def make_event(announcement: Announcement, classifier: Classifier) -> tuple[RoundTag, Event]:
    """Classify one announcement and build its timeline event."""
    classification = classifier.classify(announcement.title)
    event = Event(
        id=short_id(announcement.fingerprint),
        title=announcement.title,
        date=announcement.date or announcement.scraped_date,
        type=classification.type,
        url=announcement.url,
    )
    return classification.round, event


def build_timeline(
    source_name: str,
    announcements: Iterable[Announcement],
    classifier: Classifier | None = None,
    triage: TriageFilter | None = None,
) -> tuple[Timeline, list[Event]]:
    """Triage, classify and bucket announcements for one source.

    Returns ``(timeline, flat_events)``. An empty flat list means there is
    nothing to persist or download for this pass.
    """
    classifier = classifier or Classifier()
    triage = triage or TriageFilter()

    timeline = empty_timeline(source_name)
    flat: list[Event] = []

    kept, rejected = triage.apply(announcements)
    for ann in kept:
        round_tag, event = make_event(ann, classifier)
        timeline.rounds[round_tag].events.append(event)
        flat.append(event)

    logger.info(
        "[%s] Timeline built: %d events (%d discarded by triage)",
        source_name,
        len(flat),
        len(rejected),
    )
    return timeline, flat
