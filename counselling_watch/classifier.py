"""Title classifier for counselling announcements.

Maps a free-text title onto a (round, document type) pair using two
prioritized rule tables. Each table is an ordered list of rules; the first
rule whose pattern matches wins, and a sentinel tag is returned when none
do. Order in the list *is* the priority: ``special_stray`` sits ahead of
``stray`` because "Special Stray Vacancy" also reads as a stray round.

Patterns are case-insensitive and anchored on word boundaries. Each rule is
built from a handful of spelling variants (regex fragments), e.g.
``round[- ]?2`` / ``2nd[- ]?round`` / ``second[- ]?round``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from counselling_watch.models import Classification, DocTag, RoundTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """One entry in a prioritized rule table."""

    tag: str
    pattern: re.Pattern

    @classmethod
    def from_variants(cls, tag: str, variants: Iterable[str]) -> Rule:
        alternatives = "|".join(f"(?:{v})" for v in variants)
        if not alternatives:
            raise ValueError(f"Rule '{tag}' needs at least one variant")
        return cls(tag=tag, pattern=re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


# ── Default vocabulary ──────────────────────────────────────────────────────

# (tag, variants) in priority order
DEFAULT_ROUND_PATTERNS: list[tuple[str, list[str]]] = [
    ("special_stray", [r"special[- ]?stray"]),
    ("stray", [r"stray[- ]?vacancy", r"stray[- ]?round"]),
    ("mop_up", [r"mop[- ]?up"]),
    ("round_3", [r"round[- ]?(?:3|iii)", r"third[- ]?round", r"3rd[- ]?round"]),
    ("round_2", [r"round[- ]?(?:2|ii)", r"second[- ]?round", r"2nd[- ]?round"]),
    ("round_1", [r"round[- ]?1", r"first[- ]?round", r"1st[- ]?round"]),
]

DEFAULT_TYPE_PATTERNS: list[tuple[str, list[str]]] = [
    ("merit_list", [r"merit[- ]?list", r"rank[- ]?card", r"eligible[- ]?candidates"]),
    ("allotment", [r"allotment", r"selection[- ]?list", r"results?"]),
    ("seat_matrix", [r"seat[- ]?matrix", r"vacancy[- ]?position", r"seat[- ]?distribution"]),
    ("schedule", [r"schedule", r"dates?", r"time[- ]?table", r"calendar"]),
    ("notice", [r"notice", r"notification", r"advertisement", r"advt"]),
]


def build_rules(table: Sequence[tuple[str, Iterable[str]]], valid_tags: Iterable[str]) -> list[Rule]:
    """Compile a (tag, variants) table, rejecting tags outside ``valid_tags``."""
    allowed = set(valid_tags)
    rules = []
    for tag, variants in table:
        if tag not in allowed:
            raise ValueError(f"Unknown tag '{tag}' (expected one of {sorted(allowed)})")
        rules.append(Rule.from_variants(tag, variants))
    return rules


def first_match(rules: Sequence[Rule], text: str) -> Optional[str]:
    """Tag of the first rule matching ``text``, or None."""
    for rule in rules:
        if rule.matches(text):
            return rule.tag
    return None


class Classifier:
    """Assigns a round and a document type to announcement titles.

    Both dimensions are independent: a title can be ``round_2`` and
    ``merit_list`` at the same time.
    """

    def __init__(
        self,
        round_patterns: Sequence[tuple[str, Iterable[str]]] | None = None,
        type_patterns: Sequence[tuple[str, Iterable[str]]] | None = None,
    ):
        self.round_rules = build_rules(
            round_patterns if round_patterns is not None else DEFAULT_ROUND_PATTERNS,
            (t.value for t in RoundTag if t is not RoundTag.GENERAL),
        )
        self.type_rules = build_rules(
            type_patterns if type_patterns is not None else DEFAULT_TYPE_PATTERNS,
            (t.value for t in DocTag if t is not DocTag.OTHER),
        )

    def classify_round(self, title: str) -> RoundTag:
        tag = first_match(self.round_rules, title)
        return RoundTag(tag) if tag else RoundTag.GENERAL

    def classify_type(self, title: str) -> DocTag:
        tag = first_match(self.type_rules, title)
        return DocTag(tag) if tag else DocTag.OTHER

    def classify(self, title: str) -> Classification:
        result = Classification(round=self.classify_round(title), type=self.classify_type(title))
        logger.debug("Classified %r as %s/%s", title, result.round.value, result.type.value)
        return result


_default_classifier: Optional[Classifier] = None


def classify(title: str) -> Classification:
    """Classify with the default vocabulary."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = Classifier()
    return _default_classifier.classify(title)
