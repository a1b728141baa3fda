"""Triage filter: drops announcements that are never about counselling.

Government admission pages mix counselling notices with procurement
tenders, staff recruitment drives and the like. Those are removed by a
plain case-insensitive substring check against an exclusion vocabulary,
before anything is classified or fingerprinted.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, NamedTuple

from counselling_watch.models import Announcement

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_TERMS: list[str] = [
    "Tender",
    "Recruitment",
    "Quotation",
    "Walk-in",
    "Corrigendum",
]


class RejectionReason(Enum):
    """Why an announcement was dropped by triage."""

    TITLE_EXCLUDE = "REJECTED_TITLE_EXCLUDE"


class TriageResult(NamedTuple):
    """Result of triaging a single announcement."""

    announcement: Announcement
    passed: bool
    reason: RejectionReason | None = None


def title_matches_exclude(title: str, exclude_terms: Iterable[str]) -> bool:
    """Check if title contains any of the exclude terms (case-insensitive)."""
    title_lower = title.lower()
    return any(term.lower() in title_lower for term in exclude_terms)


class TriageFilter:
    """Exclusion-vocabulary filter bound to one vocabulary."""

    def __init__(self, exclude_terms: Iterable[str] | None = None):
        terms = DEFAULT_EXCLUDE_TERMS if exclude_terms is None else exclude_terms
        # Empty terms would match every title
        self.exclude_terms = [t for t in terms if t]

    def should_discard(self, title: str) -> bool:
        return title_matches_exclude(title, self.exclude_terms)

    def check(self, announcement: Announcement) -> TriageResult:
        if self.should_discard(announcement.title):
            return TriageResult(announcement, False, RejectionReason.TITLE_EXCLUDE)
        return TriageResult(announcement, True)

    def apply(
        self, announcements: Iterable[Announcement]
    ) -> tuple[list[Announcement], list[TriageResult]]:
        """Split announcements into (kept, rejected), preserving input order."""
        kept: list[Announcement] = []
        rejected: list[TriageResult] = []

        for ann in announcements:
            result = self.check(ann)
            if result.passed:
                kept.append(ann)
            else:
                logger.debug("Discarded %r (%s)", ann.title, result.reason.value)
                rejected.append(result)

        logger.debug("Triage: %d kept, %d discarded", len(kept), len(rejected))
        return kept, rejected
