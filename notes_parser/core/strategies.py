"""
Extraction strategies.

Each strategy is one independent pass over the normalized text and its
DocumentStructure, returning a partial ClientProfile:

  PatternMatchingStrategy    ordered regex tables for client_name / industry
  SectionDetectionStrategy   per-section extractors chosen by header or classified type
  KeyValueStrategy           'label: value' lines with fuzzy label -> field mapping
  ContextualAnalysisStrategy client category detection (gaming / technology / healthcare)
  TemplateMatchingStrategy   known document templates with dedicated extractors

The engine runs them in that order and merges their results. A strategy may
raise; the engine isolates it.
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from notes_parser.core.client_profiles import detect_category
from notes_parser.core.field_extractors import (
    clean_client_name,
    clean_extracted_text,
    competitors_from_names,
    compose_schedule,
    dedupe,
    extract_briefing,
    extract_competitors,
    extract_contacts,
    extract_executives,
    extract_free_text,
    extract_list_items,
    extract_sources,
    mentioned,
    parse_person_line,
    split_list_value,
    tier_for_label,
)
from notes_parser.core.fuzzy import FieldVocabulary, normalize_label
from notes_parser.core.patterns import (
    BRIEFING_FIELDS,
    CLIENT_NAME_PATTERNS,
    INDUSTRY_PATTERNS,
    KEY_VALUE_LINE_RE,
    SECTION_TYPE_FIELDS,
    TEMPLATE_MATCH_THRESHOLD,
    TEMPLATES,
    PatternSpec,
)
from notes_parser.core.schemas import SOURCE_TIERS, ClientProfile, Contact, DocumentStructure

logger = logging.getLogger(__name__)

MAX_STRING_VALUE_LENGTH = 100


# ============================================================================
# Assigning raw values to profile fields
# ============================================================================

def _extend_by_name(existing: list, new: list) -> list:
    names = {item.name for item in existing}
    merged = list(existing)
    for item in new:
        if item.name not in names:
            names.add(item.name)
            merged.append(item)
    return merged


def _contacts_from(value: str) -> List[Contact]:
    contacts = extract_contacts(value)
    if contacts:
        return contacts
    person = parse_person_line(value)
    if person:
        return [Contact(name=person.name, role=person.role)]
    name = clean_extracted_text(value)
    if name and len(name.split()) <= 4:
        return [Contact(name=name)]
    return []


def assign_value(profile: ClientProfile, target: str, value: str, bullets_only: bool = False) -> None:
    """
    Fold a raw value into one profile field.

    target is a profile field name, a briefing key (schedule, audience,
    length) or a source tier (tier1 .. hand_search). Strings keep the first
    value seen; lists accumulate in document order.
    """
    value = value.strip()
    if not value:
        return

    if target == "client_name":
        if not profile.client_name:
            name = clean_client_name(value)
            if len(name) < MAX_STRING_VALUE_LENGTH:
                profile.client_name = name
    elif target == "industry":
        if not profile.industry:
            industry = clean_extracted_text(value)
            if len(industry) < MAX_STRING_VALUE_LENGTH:
                profile.industry = industry
    elif target in ("products", "excluded_topics"):
        if "\n" in value:
            items = extract_list_items(value, bullets_only=bullets_only)
        else:
            items = split_list_value(value)
        setattr(profile, target, dedupe(getattr(profile, target) + items))
    elif target == "competitors":
        profile.competitors = _extend_by_name(profile.competitors, extract_competitors(value, bullets_only=bullets_only))
    elif target == "executives":
        profile.executives = _extend_by_name(profile.executives, extract_executives(value))
    elif target == "contacts":
        profile.contacts = _extend_by_name(profile.contacts, _contacts_from(value))
    elif target == "sources":
        found = extract_sources(value, bullets_only=bullets_only)
        for tier in SOURCE_TIERS:
            setattr(profile.sources, tier, dedupe(getattr(profile.sources, tier) + getattr(found, tier)))
    elif target in SOURCE_TIERS:
        items = split_list_value(value) if "\n" not in value else extract_list_items(value)
        setattr(profile.sources, target, dedupe(getattr(profile.sources, target) + items))
    elif target in BRIEFING_FIELDS:
        if not getattr(profile.briefing_info, target):
            setattr(profile.briefing_info, target, clean_extracted_text(" ".join(value.split())))


# ============================================================================
# Strategy contract
# ============================================================================

class ExtractionStrategy:
    """
    One extraction pass. Subclasses implement run(); they share the engine's
    field vocabulary (built-in synonyms + custom patterns + learned counts).
    """

    name = "base"

    def __init__(self, vocabulary: FieldVocabulary):
        self.vocabulary = vocabulary

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        raise NotImplementedError

    def resolve_label(self, label: str) -> Optional[str]:
        """Tier labels map directly; anything else goes through the vocabulary."""
        tier = tier_for_label(label)
        if tier:
            return tier
        return self.vocabulary.match(label)


class PatternMatchingStrategy(ExtractionStrategy):
    name = "pattern_matching"

    @staticmethod
    def first_match(specs: List[PatternSpec], text: str) -> Tuple[Optional[PatternSpec], str]:
        for spec in specs:
            for m in spec.compiled.finditer(text):
                value = clean_extracted_text(m.group(1))
                if value:
                    return spec, value
        return None, ""

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        profile = ClientProfile()
        for field_name, specs in (("client_name", CLIENT_NAME_PATTERNS), ("industry", INDUSTRY_PATTERNS)):
            spec, value = self.first_match(specs, text)
            if spec:
                logger.debug(f"PATTERN {spec.name} -> {field_name}='{value}'")
                assign_value(profile, field_name, value)
        return profile


class SectionDetectionStrategy(ExtractionStrategy):
    """
    A section's field comes from its header when the header maps to a field,
    otherwise from its classified type. Sections typed only by keywords get
    conservative extraction (bullet lines, known companies).
    """

    name = "section_detection"

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        profile = ClientProfile()
        for section in structure.sections:
            if section.header and self._title_names_client(profile, section.header):
                continue
            target = self.resolve_label(section.header) if section.header else None
            from_header = target is not None
            if target is None:
                target = SECTION_TYPE_FIELDS.get(section.classified_type)
            if target is None:
                continue

            body = section.body if section.header else section.raw_text
            logger.debug(f"SECTION [{section.start_offset}:{section.end_offset}] -> {target} (from_header={from_header})")
            self._extract(profile, target, body, from_header)
        return profile

    @staticmethod
    def _title_names_client(profile: ClientProfile, header: str) -> bool:
        """'Rackspace Client Notes' is a document title naming the client, not a client section."""
        for spec in CLIENT_NAME_PATTERNS:
            m = spec.compiled.match(header)
            if m:
                assign_value(profile, "client_name", m.group(1))
                return True
        return False

    @staticmethod
    def _extract(profile: ClientProfile, target: str, body: str, from_header: bool) -> None:
        if target in ("client_name", "industry"):
            assign_value(profile, target, extract_free_text(body))
        elif target == "schedule":
            briefing = extract_briefing(body)
            for key in BRIEFING_FIELDS:
                assign_value(profile, key, getattr(briefing, key))
        elif target in ("audience", "length"):
            assign_value(profile, target, ", ".join(extract_list_items(body)))
        elif target == "executives":
            profile.executives = _extend_by_name(
                profile.executives, extract_executives(body, require_role=not from_header)
            )
        else:
            assign_value(profile, target, body, bullets_only=not from_header)


class KeyValueStrategy(ExtractionStrategy):
    name = "key_value"

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        profile = ClientProfile()
        for line in text.split("\n"):
            m = KEY_VALUE_LINE_RE.match(line.strip())
            if not m:
                continue
            label, value = m.group(1), m.group(2)
            target = self.resolve_label(label)
            if target is None:
                continue
            logger.debug(f"KEY-VALUE '{normalize_label(label)}' -> {target}")
            assign_value(profile, target, value)
        return profile


class ContextualAnalysisStrategy(ExtractionStrategy):
    """
    Seeds competitors from the detected category's well-known companies that
    the text mentions, and supplies the category's industry when the text has
    no explicit industry label.
    """

    name = "contextual_analysis"

    EXPLICIT_INDUSTRY = next(spec for spec in INDUSTRY_PATTERNS if spec.name == "explicit_industry_label")

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        profile = ClientProfile()
        category = detect_category(text)
        if category is None:
            return profile
        logger.debug(f"CONTEXT category='{category.name}'")

        profile.competitors = competitors_from_names(mentioned(text, list(category.known_competitors)))
        if not self.EXPLICIT_INDUSTRY.compiled.search(text) and not self._has_industry_label(text):
            profile.industry = category.industry_default
        return profile

    def _has_industry_label(self, text: str) -> bool:
        for line in text.split("\n"):
            m = KEY_VALUE_LINE_RE.match(line.strip())
            if m and self.vocabulary.match(m.group(1)) == "industry":
                return True
        return False


class TemplateMatchingStrategy(ExtractionStrategy):
    """
    Templates are ordered marker lists. The first template with at least 60%
    of its markers present runs its extractor.
    """

    name = "template_matching"

    # Template-specific header -> target. None means 'parse the block as label lines'.
    STANDARD_HEADERS: Dict[str, Optional[str]] = {
        "base information": None,
        "client information": None,
        "competitive intelligence": "competitors",
        "highlighted sources": "sources",
        "industry insights": None,
    }
    DETAILED_HEADERS: Dict[str, Optional[str]] = {
        "client profile": None,
        "market analysis": "market_analysis",
        "strategic focus": "products",
        "key executives": "executives",
    }

    def __init__(self, vocabulary: FieldVocabulary):
        super().__init__(vocabulary)
        self.extractors: Dict[str, Callable[[str], ClientProfile]] = {
            "standard_client_notes": self.parse_standard,
            "brief_format": self.parse_brief,
            "detailed_format": self.parse_detailed,
        }
        self.exact_labels: Dict[str, str] = {}
        for field_name, words in vocabulary.variations.items():
            for word in words:
                self.exact_labels.setdefault(normalize_label(word), field_name)

    @staticmethod
    def match_ratio(text: str, markers: List[str]) -> float:
        lower = text.lower()
        return sum(1 for marker in markers if marker.lower() in lower) / len(markers)

    def run(self, text: str, structure: DocumentStructure) -> ClientProfile:
        for name, markers in TEMPLATES:
            ratio = self.match_ratio(text, markers)
            if ratio >= TEMPLATE_MATCH_THRESHOLD:
                logger.debug(f"TEMPLATE '{name}' matched ({ratio:.2f})")
                return self.extractors[name](text)
        return ClientProfile()

    # ------------------------------------------------------------------------

    def exact_target(self, label: str) -> Optional[str]:
        return tier_for_label(label) or self.exact_labels.get(normalize_label(label))

    def labelled_blocks(self, text: str) -> Iterator[Tuple[str, str]]:
        """
        (target, value) pairs from exact-label lines. A label with nothing after
        its colon owns the lines below it up to the next label or blank line.
        """
        target, buffer = None, []
        for line in text.split("\n") + [""]:
            stripped = line.strip()
            m = KEY_VALUE_LINE_RE.match(stripped)
            label_only = stripped.endswith(":") and self.exact_target(stripped[:-1])
            new_target = None
            if m:
                new_target = self.exact_target(m.group(1))
            elif label_only:
                new_target = label_only

            if new_target or not stripped:
                if target and buffer:
                    yield target, "\n".join(buffer)
                target, buffer = new_target, []
                if m and new_target:
                    buffer.append(m.group(2))
            elif target:
                buffer.append(stripped)

    def header_blocks(self, text: str, headers: Dict[str, Optional[str]]) -> Iterator[Tuple[Optional[str], str, str]]:
        """(header, target, body) for every block opened by one of the given header lines."""
        header, target, buffer = None, None, []
        for line in text.split("\n"):
            key = normalize_label(line.rstrip(":"))
            if key in headers:
                if header is not None:
                    yield header, target, "\n".join(buffer)
                header, target, buffer = key, headers[key], []
            elif header is not None:
                buffer.append(line)
        if header is not None:
            yield header, target, "\n".join(buffer)

    def _fill_from_labels(self, profile: ClientProfile, block: str) -> None:
        for target, value in self.labelled_blocks(block):
            assign_value(profile, target, value)

    def _fill_from_headers(self, profile: ClientProfile, text: str, headers: Dict[str, Optional[str]]) -> None:
        for _, target, body in self.header_blocks(text, headers):
            if target is None:
                self._fill_from_labels(profile, body)
            elif target == "market_analysis":
                self._market_analysis(profile, body)
            else:
                assign_value(profile, target, body)

    @staticmethod
    def _title_client(profile: ClientProfile, text: str) -> None:
        title_spec = next(spec for spec in CLIENT_NAME_PATTERNS if spec.name == "title_with_notes_suffix")
        first_line = text.split("\n", 1)[0]
        m = title_spec.compiled.match(first_line)
        if m:
            assign_value(profile, "client_name", m.group(1))

    @staticmethod
    def _market_analysis(profile: ClientProfile, body: str) -> None:
        industry_spec, industry = PatternMatchingStrategy.first_match(INDUSTRY_PATTERNS[1:], body)
        if industry_spec:
            assign_value(profile, "industry", industry)
        assign_value(profile, "competitors", body, bullets_only=True)

    # ------------------------------------------------------------------------

    def parse_standard(self, text: str) -> ClientProfile:
        profile = ClientProfile()
        self._title_client(profile, text)
        self._fill_from_headers(profile, text, self.STANDARD_HEADERS)
        self._fill_from_labels(profile, text)
        return profile

    def parse_brief(self, text: str) -> ClientProfile:
        profile = ClientProfile()
        self._fill_from_labels(profile, text)
        return profile

    def parse_detailed(self, text: str) -> ClientProfile:
        profile = ClientProfile()
        self._fill_from_headers(profile, text, self.DETAILED_HEADERS)
        self._fill_from_labels(profile, text)
        if not profile.briefing_info.schedule:
            assign_value(profile, "schedule", compose_schedule(text))
        return profile


DEFAULT_STRATEGIES = (
    PatternMatchingStrategy,
    SectionDetectionStrategy,
    KeyValueStrategy,
    ContextualAnalysisStrategy,
    TemplateMatchingStrategy,
)


def build_strategies(vocabulary: FieldVocabulary) -> List[ExtractionStrategy]:
    return [strategy_cls(vocabulary) for strategy_cls in DEFAULT_STRATEGIES]
