"""
Confidence scoring for client profile extraction.

Confidence is a fixed function of what the profile contains, never of which
strategy produced a value. Each scored field has a presence score and a weight:

  Field            Present   Weight
  client_name      1.0       0.3
  industry         0.8       0.2
  competitors      0.9       0.2
  sources          0.8       0.2   (any tier non-empty)
  excluded_topics  0.7       0.1

Overall confidence is the weighted average, so it lies in [0, 1] and is 0
only when every scored field is empty.

Quality tiers:
  "high"   : overall >= 0.85
  "medium" : overall >= 0.6
  "low"    : otherwise
"""

from typing import Dict, Tuple

from notes_parser.core.schemas import ClientProfile, Confidence


FIELD_WEIGHTS: Dict[str, float] = {
    "client_name": 0.3,
    "industry": 0.2,
    "competitors": 0.2,
    "sources": 0.2,
    "excluded_topics": 0.1,
}


class ConfidenceCalculator:
    """Central place for all extraction confidence logic."""

    @staticmethod
    def client_name(value: str) -> Tuple[float, str]:
        if not value:
            return 0.0, "no_client_name_found"
        return 1.0, "client_name_present"

    @staticmethod
    def industry(value: str) -> Tuple[float, str]:
        if not value:
            return 0.0, "no_industry_found"
        return 0.8, "industry_present"

    @staticmethod
    def competitors(profile: ClientProfile) -> Tuple[float, str]:
        if not profile.competitors:
            return 0.0, "no_competitors_found"
        return 0.9, "competitors_present"

    @staticmethod
    def sources(profile: ClientProfile) -> Tuple[float, str]:
        if not profile.sources.all_sources():
            return 0.0, "no_sources_found"
        return 0.8, "sources_present"

    @staticmethod
    def excluded_topics(profile: ClientProfile) -> Tuple[float, str]:
        if not profile.excluded_topics:
            return 0.0, "no_excluded_topics_found"
        return 0.7, "excluded_topics_present"

    @classmethod
    def field_scores(cls, profile: ClientProfile) -> Dict[str, float]:
        return {
            "client_name": cls.client_name(profile.client_name)[0],
            "industry": cls.industry(profile.industry)[0],
            "competitors": cls.competitors(profile)[0],
            "sources": cls.sources(profile)[0],
            "excluded_topics": cls.excluded_topics(profile)[0],
        }

    @staticmethod
    def calculate_overall_parse_quality(overall: float) -> str:
        if overall >= 0.85:
            return "high"
        elif overall >= 0.6:
            return "medium"
        else:
            return "low"

    @classmethod
    def score(cls, profile: ClientProfile) -> Confidence:
        """Per-field and overall confidence for a profile."""
        per_field = cls.field_scores(profile)
        total_weight = sum(FIELD_WEIGHTS.values())
        overall = sum(per_field[field] * weight for field, weight in FIELD_WEIGHTS.items()) / total_weight
        overall = max(0.0, min(1.0, round(overall, 6)))
        return Confidence(
            overall=overall,
            per_field=per_field,
            quality=cls.calculate_overall_parse_quality(overall),
        )
