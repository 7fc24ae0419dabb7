"""
Fallback parser.

Runs only when the primary strategies leave overall confidence below the
configured threshold. Four weaker heuristics each work on their own copy of
the current profile:

  table_scraping       'key: value' / 'key | value' rows with substring key mapping
  capitalized_phrase   the most frequent capitalized phrase becomes the client name
  definition_sentence  'X is a Y company.' gives a client name and an industry
  cue_phrase_list      'competitors include ...' followed by a bullet or inline list

A heuristic's copy replaces the profile only if it improves field coverage.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from notes_parser.core.field_extractors import (
    clean_client_name,
    clean_extracted_text,
    competitors_from_names,
    dedupe,
    split_list_value,
)
from notes_parser.core.merger import is_empty, populated_keys
from notes_parser.core.schemas import ClientProfile

logger = logging.getLogger(__name__)

MIN_PHRASE_FREQUENCY = 3
MIN_PHRASE_LENGTH = 4
MAX_NAME_LENGTH = 50
MAX_NAME_WORDS = 6

CAPITALIZED_PHRASE_RE = re.compile(r"\b[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*")
PHRASE_STOPWORDS = {
    "The", "This", "That", "These", "Those", "A", "An", "In", "On", "At", "For", "With",
    "Our", "We", "Their", "They", "It", "Its", "And", "But", "Or", "When", "While",
    "After", "Before", "Since", "Last", "Next", "Each", "Every", "All", "Most", "Some",
}
TABLE_SPLIT_RE = re.compile(r"[:|]")
SENTENCE_RE = re.compile(r"[^.!?\n]+(?:[.!?]+|:(?=[ \t]*\n))")
DEFINITION_RE = re.compile(r"^\s*(.+?)\s+is\s+(?:a|an|the)\s+(.+?)(?:[.,;]|$)", re.I)
DEFINITION_INDUSTRY_RE = re.compile(r"([\w-]+)\s+(?:company|corporation|firm|provider|publisher)\b", re.I)
CUE_PHRASE_RE = re.compile(r"\b(?:include|includes|including|such as|following|follows|follow)\b:?", re.I)
BULLET_LINE_RE = re.compile(r"^(?:•|\d+[.)])\s*(.+)$", re.M)
COMPETITOR_CUE_RE = re.compile(r"compet|rival", re.I)
PRODUCT_CUE_RE = re.compile(r"product|service|game|offering|brand", re.I)
SOURCE_CUE_RE = re.compile(r"source|publication|outlet|media", re.I)
EXCLUDE_CUE_RE = re.compile(r"avoid|exclude|sensitive", re.I)


@dataclass
class FallbackOutcome:
    profile: ClientProfile
    heuristic: Optional[str] = None
    improvement: float = 0.0
    failures: List[str] = field(default_factory=list)


def calculate_improvement(original: ClientProfile, updated: ClientProfile) -> float:
    """
    Fraction of profile fields that went empty -> non-empty or grew.

    Examples:
      client_name '' -> 'Acme' only            -> 1/9
      competitors [A] -> [A, B] and industry set -> 2/9
    """
    improved = 0
    fields = list(ClientProfile.model_fields)
    for field_name in fields:
        before = getattr(original, field_name)
        after = getattr(updated, field_name)
        if is_empty(before) and not is_empty(after):
            improved += 1
        elif isinstance(before, list) and len(after) > len(before):
            improved += 1
        elif field_name == "sources" and len(after.all_sources()) > len(before.all_sources()):
            improved += 1
        elif field_name == "briefing_info" and populated_keys(after) > populated_keys(before):
            improved += 1
    return improved / len(fields)


# ============================================================================
# Heuristics
# ============================================================================

def scrape_table_rows(text: str, profile: ClientProfile) -> ClientProfile:
    """Two-cell rows; keys mapped by substring ('client', 'industry', 'compet')."""
    for line in text.split("\n"):
        if ":" not in line and "|" not in line:
            continue
        parts = [part.strip() for part in TABLE_SPLIT_RE.split(line) if part.strip()]
        if len(parts) != 2:
            continue
        key, value = parts[0].lower(), parts[1]
        if ("client" in key or "customer" in key) and not profile.client_name:
            profile.client_name = clean_client_name(value)
        elif ("industry" in key or "sector" in key) and not profile.industry:
            profile.industry = clean_extracted_text(value)
        elif "compet" in key:
            names = profile.competitor_names() + split_list_value(value)
            profile.competitors = competitors_from_names(names)
    return profile


def _strip_leading_stopwords(phrase: str) -> str:
    words = phrase.split()
    while words and words[0] in PHRASE_STOPWORDS:
        words = words[1:]
    return " ".join(words)


def rank_capitalized_phrases(text: str) -> List[Tuple[str, int]]:
    """
    Capitalized phrases by (frequency, word count), most likely name first.

    Examples:
      'Northwind Traders ships. The Northwind Traders team ...'
          -> [('Northwind Traders', 2), ...]
    """
    counts: Counter = Counter()
    for m in CAPITALIZED_PHRASE_RE.finditer(text):
        phrase = _strip_leading_stopwords(m.group(0))
        if len(phrase) >= MIN_PHRASE_LENGTH:
            counts[phrase] += 1
    return sorted(counts.items(), key=lambda item: (-item[1], -len(item[0].split())))


def guess_client_from_capitalization(text: str, profile: ClientProfile) -> ClientProfile:
    if profile.client_name:
        return profile
    ranked = rank_capitalized_phrases(text)
    if ranked and ranked[0][1] >= MIN_PHRASE_FREQUENCY:
        profile.client_name = ranked[0][0]
    return profile


def extract_from_definitions(text: str, profile: ClientProfile) -> ClientProfile:
    """'Acme is a leading software company.' -> client 'Acme', industry 'software'."""
    for sentence in SENTENCE_RE.findall(text):
        m = DEFINITION_RE.match(sentence)
        if not m:
            continue
        name, definition = m.group(1).strip(), m.group(2).strip()
        if not name[:1].isupper() or len(name) >= MAX_NAME_LENGTH or len(name.split()) > MAX_NAME_WORDS:
            continue
        if not profile.client_name:
            profile.client_name = clean_client_name(name)
        industry = DEFINITION_INDUSTRY_RE.search(definition)
        if industry and not profile.industry:
            profile.industry = industry.group(1)
        if profile.client_name and profile.industry:
            break
    return profile


def _items_after_cue(sentence: str, cue: re.Match, following: str) -> List[str]:
    bullets = [clean_extracted_text(item) for item in BULLET_LINE_RE.findall(following.split("\n\n")[0])]
    if bullets:
        return dedupe(bullets)
    return split_list_value(sentence[cue.end():].strip().rstrip(".!?"))


def extract_cue_phrase_lists(text: str, profile: ClientProfile) -> ClientProfile:
    """
    'Key competitors include:' + bullets, or 'Competitors include Foo, Bar and Baz.'
    Fills only fields that are still empty.
    """
    for m in SENTENCE_RE.finditer(text):
        sentence = m.group(0)
        cue = CUE_PHRASE_RE.search(sentence)
        if not cue:
            continue
        lead = sentence[: cue.start()]
        items = _items_after_cue(sentence, cue, text[m.end():].lstrip("\n"))
        if not items:
            continue
        if COMPETITOR_CUE_RE.search(lead) and not profile.competitors:
            profile.competitors = competitors_from_names(items)
        elif PRODUCT_CUE_RE.search(lead) and not profile.products:
            profile.products = items
        elif SOURCE_CUE_RE.search(lead) and not profile.sources.all_sources():
            profile.sources.tier1 = items
        elif EXCLUDE_CUE_RE.search(lead) and not profile.excluded_topics:
            profile.excluded_topics = items
    return profile


# ============================================================================
# Parser
# ============================================================================

class FallbackParser:
    """Tries every heuristic; keeps the copy with the highest positive improvement."""

    def __init__(self):
        self.heuristics: List[Tuple[str, Callable[[str, ClientProfile], ClientProfile]]] = [
            ("table_scraping", scrape_table_rows),
            ("capitalized_phrase", guess_client_from_capitalization),
            ("definition_sentence", extract_from_definitions),
            ("cue_phrase_list", extract_cue_phrase_lists),
        ]

    def parse(self, text: str, profile: ClientProfile) -> FallbackOutcome:
        outcome = FallbackOutcome(profile=profile)
        for name, heuristic in self.heuristics:
            try:
                candidate = heuristic(text, profile.model_copy(deep=True))
            except Exception as exc:
                logger.warning(f"Fallback heuristic '{name}' failed: {exc}")
                outcome.failures.append(name)
                continue

            improvement = calculate_improvement(profile, candidate)
            logger.debug(f"FALLBACK {name}: improvement={improvement:.3f}")
            if improvement > outcome.improvement:
                outcome.profile = candidate
                outcome.heuristic = name
                outcome.improvement = improvement
        return outcome
