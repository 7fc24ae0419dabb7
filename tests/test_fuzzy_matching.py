"""
Tests for label similarity and the field vocabulary.
"""

import pytest

from notes_parser.core.fuzzy import FieldVocabulary, fuzzy_match, normalize_label


def test_normalize_label():
    assert normalize_label("• Competitors:") == "competitors"
    assert normalize_label("Primary   Industry -") == "primary industry"


def test_identical_labels_score_one():
    assert fuzzy_match("Competitors", "competitors") == 1.0


def test_containment_scores_substring_score():
    assert fuzzy_match("Competitive Intel", "competitive intelligence") == 0.8


def test_edit_distance_similarity():
    assert fuzzy_match("Compettitors", "competitors") == pytest.approx(1 - 1 / 12)


def test_empty_labels_score_zero():
    assert fuzzy_match("", "client") == 0.0
    assert fuzzy_match("", "") == 0.0


def test_unrelated_labels_score_low():
    assert fuzzy_match("Schedule", "Industry") < 0.7


class TestFieldVocabulary:
    def test_typo_maps_to_field(self):
        assert FieldVocabulary().match("Compettitors") == "competitors"

    def test_unknown_label_has_no_field(self):
        assert FieldVocabulary().match("Favorite Color") is None
        assert FieldVocabulary().match("") is None

    def test_fuzzy_matching_can_be_disabled(self):
        vocabulary = FieldVocabulary(enable_fuzzy_matching=False)
        assert vocabulary.match("Compettitors") is None
        assert vocabulary.match("Competitors") == "competitors"

    def test_ties_resolve_in_field_order(self):
        # 'market' (industry) and 'rivals' (competitors) are both contained in the label
        assert FieldVocabulary().match("Market Rivals") == "industry"

    def test_custom_patterns_extend_vocabulary(self):
        vocabulary = FieldVocabulary(custom_patterns={"competitors": ["Market Rivals"]})
        assert vocabulary.match("market rivals") == "competitors"

    def test_learned_counts_rank_candidates(self):
        vocabulary = FieldVocabulary(learned_count=lambda field, label: 5 if field == "competitors" else 0)
        assert vocabulary.match("Market Rivals") == "competitors"

    def test_learned_counts_never_create_matches(self):
        vocabulary = FieldVocabulary(learned_count=lambda field, label: 100)
        assert vocabulary.match("Favorite Color") is None
