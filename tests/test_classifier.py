"""Tests for the round / document-type classifier.

Tests cover:
- Round detection and its priority order
- Document type detection and its priority order
- Word-boundary and case-insensitive matching
- Injected vocabularies
"""

import pytest

from counselling_watch.classifier import Classifier, Rule, classify, first_match
from counselling_watch.models import DocTag, RoundTag


@pytest.fixture
def classifier() -> Classifier:
    return Classifier()


# ── Rounds ──────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "title",
    ["Round 2 allotment", "ROUND-2 result", "Round2 schedule", "2nd Round Seat Matrix", "Second round notice"],
)
def test_round_2_variants(classifier, title):
    assert classifier.classify_round(title) is RoundTag.ROUND_2


@pytest.mark.parametrize(
    "title, expected",
    [
        ("First Round Merit List", RoundTag.ROUND_1),
        ("Round 3 provisional allotment", RoundTag.ROUND_3),
        ("3rd round counselling", RoundTag.ROUND_3),
        ("Mop-Up Round registration", RoundTag.MOP_UP),
        ("Mop up counselling", RoundTag.MOP_UP),
        ("Stray Vacancy Round Schedule", RoundTag.STRAY),
        ("Information Brochure 2025", RoundTag.GENERAL),
    ],
)
def test_round_detection(classifier, title, expected):
    assert classifier.classify_round(title) is expected


def test_special_stray_beats_stray(classifier):
    result = classifier.classify("Special Stray Vacancy Round Notice")
    assert result.round is RoundTag.SPECIAL_STRAY


def test_mop_up_beats_numbered_round(classifier):
    # "Mop-up round after Round 2" belongs to the mop-up bucket
    assert classifier.classify_round("Mop-up round after Round 2") is RoundTag.MOP_UP


def test_round_requires_whole_word(classifier):
    assert classifier.classify_round("Round 12 of sports meet") is RoundTag.GENERAL
    assert classifier.classify_round("Background 2") is RoundTag.GENERAL


# ── Types ───────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Round 1 Merit List", DocTag.MERIT_LIST),
        ("State Rank Card", DocTag.MERIT_LIST),
        ("Provisional Selection List", DocTag.ALLOTMENT),
        ("Result of Round 2", DocTag.ALLOTMENT),
        ("Seat Matrix for MBBS", DocTag.SEAT_MATRIX),
        ("Vacancy Position after Round 1", DocTag.SEAT_MATRIX),
        ("Counselling Time-Table", DocTag.SCHEDULE),
        ("Important Dates", DocTag.SCHEDULE),
        ("Advt. for admission", DocTag.NOTICE),
        ("Notification regarding fee", DocTag.NOTICE),
        ("Prospectus 2025", DocTag.OTHER),
    ],
)
def test_type_detection(classifier, title, expected):
    assert classifier.classify_type(title) is expected


def test_type_priority_merit_list_before_notice(classifier):
    assert classifier.classify_type("Notice: Merit List published") is DocTag.MERIT_LIST


def test_type_priority_allotment_before_schedule(classifier):
    assert classifier.classify_type("Schedule and result of allotment") is DocTag.ALLOTMENT


def test_round_and_type_are_independent(classifier):
    result = classifier.classify("Round 2 Merit List Published")
    assert result.round is RoundTag.ROUND_2
    assert result.type is DocTag.MERIT_LIST


def test_matching_is_case_insensitive(classifier):
    assert classifier.classify("SPECIAL STRAY SEAT MATRIX").type is DocTag.SEAT_MATRIX
    assert classifier.classify("special stray seat matrix").round is RoundTag.SPECIAL_STRAY


def test_module_level_classify_uses_defaults():
    result = classify("Round 1 Allotment")
    assert result.round is RoundTag.ROUND_1
    assert result.type is DocTag.ALLOTMENT


# ── Injected vocabularies ───────────────────────────────────────────────────


def test_custom_round_table_order_is_priority():
    clf = Classifier(round_patterns=[("round_1", ["phase[- ]?1"]), ("mop_up", ["phase"])])
    assert clf.classify_round("Phase 1 allotment") is RoundTag.ROUND_1
    assert clf.classify_round("Phase 4 allotment") is RoundTag.MOP_UP
    assert clf.classify_round("Round 2 allotment") is RoundTag.GENERAL


def test_custom_type_table():
    clf = Classifier(type_patterns=[("notice", ["press release"])])
    assert clf.classify_type("Press Release") is DocTag.NOTICE
    assert clf.classify_type("Merit List") is DocTag.OTHER


def test_unknown_tag_is_rejected():
    with pytest.raises(ValueError):
        Classifier(round_patterns=[("round_9", ["round 9"])])


def test_sentinel_tag_cannot_be_a_rule():
    with pytest.raises(ValueError):
        Classifier(type_patterns=[("other", ["misc"])])


def test_first_match_returns_none_without_match():
    rules = [Rule.from_variants("a", ["alpha"]), Rule.from_variants("b", ["beta"])]
    assert first_match(rules, "gamma") is None
    assert first_match(rules, "beta then alpha") == "a"
