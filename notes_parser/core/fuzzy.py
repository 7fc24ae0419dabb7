"""
Fuzzy label matching.

Labels in client notes drift: "Competition", "Competitors", "Competitive Intel",
"Compettitors". fuzzy_match() scores a label against a canonical name in [0, 1]:

  1.0  identical (case-insensitive)
  0.8  one contains the other
  else 1 - levenshtein / max_length

A label maps to a field only when its best score exceeds FUZZY_MATCH_THRESHOLD.
"""

import re
from typing import Callable, Dict, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from notes_parser.core.patterns import FIELD_VARIATIONS


FUZZY_MATCH_THRESHOLD = 0.7
SUBSTRING_SCORE = 0.8

# Learned (field, label) hits nudge ranking among labels that already passed the threshold
LEARNED_BONUS_PER_HIT = 0.02
LEARNED_BONUS_CAP = 0.1

LABEL_NOISE_RE = re.compile(r"^[•\s]+|[\s:\-–]+$")


def normalize_label(label: str) -> str:
    """
    Lower-case, trim bullets/separators, collapse inner whitespace.

    Examples:
      '• Competitors:' -> 'competitors'
      'Primary   Industry -' -> 'primary industry'
    """
    label = LABEL_NOISE_RE.sub("", label or "")
    return " ".join(label.lower().split())


def fuzzy_match(first: str, second: str) -> float:
    s1 = normalize_label(first)
    s2 = normalize_label(second)
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return SUBSTRING_SCORE
    longest = max(len(s1), len(s2))
    return 1.0 - Levenshtein.distance(s1, s2) / longest


class FieldVocabulary:
    """
    Maps free-form labels to profile fields.

    Built once per engine from FIELD_VARIATIONS plus caller-supplied synonyms.
    An optional learned_count(field, label) callback lets past successful
    mappings rank candidates; it never makes a label match that would not
    match on its own.
    """

    def __init__(
        self,
        custom_patterns: Optional[Dict[str, List[str]]] = None,
        enable_fuzzy_matching: bool = True,
        threshold: float = FUZZY_MATCH_THRESHOLD,
        learned_count: Optional[Callable[[str, str], int]] = None,
    ):
        self.variations: Dict[str, List[str]] = {field: list(words) for field, words in FIELD_VARIATIONS.items()}
        for field, extra in (custom_patterns or {}).items():
            for word in extra:
                if normalize_label(word) and word not in self.variations[field]:
                    self.variations[field].append(word)
        self.enable_fuzzy_matching = enable_fuzzy_matching
        self.threshold = threshold
        self.learned_count = learned_count

    def score(self, label: str, field: str) -> float:
        """Best similarity between label and any synonym of field."""
        if self.enable_fuzzy_matching:
            return max((fuzzy_match(label, word) for word in self.variations[field]), default=0.0)
        norm = normalize_label(label)
        return 1.0 if any(norm == normalize_label(word) for word in self.variations[field]) else 0.0

    def candidates(self, label: str) -> List[Tuple[str, float]]:
        """All fields the label maps to, best first."""
        norm = normalize_label(label)
        if not norm:
            return []
        ranked = []
        for order, field in enumerate(self.variations):
            similarity = self.score(norm, field)
            if similarity <= self.threshold:
                continue
            bonus = 0.0
            if self.learned_count is not None:
                bonus = min(LEARNED_BONUS_CAP, LEARNED_BONUS_PER_HIT * self.learned_count(field, norm))
            ranked.append((similarity + bonus, order, field, similarity))
        ranked.sort(key=lambda item: (-item[0], item[1]))
        return [(field, similarity) for _, _, field, similarity in ranked]

    def match(self, label: str) -> Optional[str]:
        found = self.candidates(label)
        return found[0][0] if found else None
