"""
Test suite for confidence scoring and profile merging.

Confidence depends only on which fields a profile carries; merging must never
lose a populated field.
"""

import pytest

from notes_parser.core.confidence_calculator import ConfidenceCalculator
from notes_parser.core.merger import is_better_value, merge_profiles
from notes_parser.core.schemas import ClientProfile, Competitor, SourceTiers


def full_profile():
    return ClientProfile(
        client_name="Acme Corp",
        industry="Software",
        competitors=[Competitor(name="Foo")],
        sources=SourceTiers(tier1=["Wired"]),
        excluded_topics=["Layoffs"],
    )


class TestConfidence:
    def test_empty_profile_scores_zero(self):
        confidence = ConfidenceCalculator.score(ClientProfile())
        assert confidence.overall == 0.0
        assert confidence.quality == "low"
        assert set(confidence.per_field.values()) == {0.0}

    def test_client_name_only(self):
        confidence = ConfidenceCalculator.score(ClientProfile(client_name="Acme"))
        assert confidence.overall == pytest.approx(0.3)
        assert confidence.per_field["client_name"] == 1.0

    def test_minimal_brief_is_medium(self):
        profile = ClientProfile(
            client_name="Acme Corp",
            industry="Software",
            competitors=[Competitor(name="Foo"), Competitor(name="Bar", priority=2)],
        )
        confidence = ConfidenceCalculator.score(profile)
        assert confidence.overall == pytest.approx(0.64)
        assert confidence.quality == "medium"

    def test_full_profile_is_high(self):
        confidence = ConfidenceCalculator.score(full_profile())
        assert confidence.overall == pytest.approx(0.87)
        assert confidence.quality == "high"
        assert confidence.per_field == {
            "client_name": 1.0,
            "industry": 0.8,
            "competitors": 0.9,
            "sources": 0.8,
            "excluded_topics": 0.7,
        }

    def test_any_source_tier_counts(self):
        profile = ClientProfile(sources=SourceTiers(hand_search=["Trade forums"]))
        assert ConfidenceCalculator.score(profile).per_field["sources"] == 0.8

    def test_scoring_does_not_depend_on_values(self):
        other = full_profile().model_copy(update={"client_name": "Someone Else Entirely"})
        assert ConfidenceCalculator.score(other) == ConfidenceCalculator.score(full_profile())


class TestMerging:
    def test_better_value_rules(self):
        assert is_better_value("", "Acme")
        assert not is_better_value("Acme", "")
        assert is_better_value(["A"], ["A", "B"])
        assert not is_better_value(["A", "B"], ["C"])
        assert is_better_value("Acme", "Acme Corporation")
        assert not is_better_value("Acme", "x" * 150)
        assert is_better_value(SourceTiers(tier1=["A"]), SourceTiers(tier1=["A"], tier2=["B"]))

    def test_merge_never_clears_fields(self):
        merged = merge_profiles(full_profile(), ClientProfile())
        assert merged == full_profile()

    def test_merge_takes_better_values(self):
        existing = ClientProfile(client_name="Acme", competitors=[Competitor(name="Foo")])
        new = ClientProfile(
            client_name="Acme Corporation",
            industry="Software",
            competitors=[Competitor(name="Bar"), Competitor(name="Baz", priority=2)],
        )
        merged = merge_profiles(existing, new)
        assert merged.client_name == "Acme Corporation"
        assert merged.industry == "Software"
        assert merged.competitor_names() == ["Bar", "Baz"]

    def test_merge_does_not_modify_inputs(self):
        existing = ClientProfile(client_name="Acme")
        new = ClientProfile(products=["Widget"])
        merged = merge_profiles(existing, new)
        merged.products.append("Gadget")
        assert existing.products == []
        assert new.products == ["Widget"]
