"""
Field-level extractors shared by the strategies and the fallback parser.

Each function takes a block of normalized text (a section body, a key-value
value, a template block) and returns values shaped for one ClientProfile
field. None of them look at document structure.
"""

import re
from typing import List, Optional

from notes_parser.core.patterns import (
    BRIEFING_FIELDS,
    DELIVERY_TIME_RE,
    ENTITY_PATTERNS,
    FIELD_VARIATIONS,
    FREQUENCIES,
    KEY_VALUE_LINE_RE,
    KNOWN_COMPANIES,
    ROLE_TITLES,
    SOURCE_TIER_LABELS,
    SOURCE_TIER_MARKER_RE,
    TIMEZONES,
)
from notes_parser.core.schemas import BriefingInfo, Competitor, Contact, Executive, SourceTiers


MAX_LIST_ITEM_LENGTH = 100
MAX_COMPETITOR_LENGTH = 50
MAX_FREE_TEXT_LENGTH = 60
MAX_FREE_TEXT_WORDS = 6

BULLET_ITEM_RE = re.compile(r"^(?:•|\d+[.)])\s*(.+)$")
LIST_SPLIT_RE = re.compile(r"\s*[,;]\s*")
LEADING_AND_RE = re.compile(r"^(?:and|or)\s+", re.I)
AND_SPLIT_RE = re.compile(r"\s+and\s+")
BRACKETS_RE = re.compile(r"[()\[\]{}]")
TRAILING_SEPARATOR_RE = re.compile(r"\s*[,;:-]+\s*$")
LEADING_BULLET_RE = re.compile(r"^[•*-]\s*")
WHITESPACE_RE = re.compile(r"\s+")
CLIENT_NAME_NOISE_RE = re.compile(r"\([^)]*\)|\bclient notes?\b|\bbrief\b", re.I)

PERSON_LINE_RE = re.compile(r"^([A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*){1,3})\s*(?:,|[-–:]|(?=\())?\s*(.*)$")
PARENTHETICAL_RE = re.compile(r"\(([^)]*)\)")
SENTIMENT_RE = re.compile(r"\b(?:positive|neutral|negative|avoid|sensitive|no criticism)\b", re.I)
ROLE_RE = re.compile(r"\b(?:" + "|".join(ROLE_TITLES) + r"|Chief \w+ Officer|Founder|Chair(?:man|woman)?)\b")
LENGTH_RE = re.compile(r"\b\d+(?:\s*-\s*\d+)?\s*(?:words|pages|minutes|bullets|items|stories|paragraphs)\b", re.I)
EMAIL_SEPARATOR_RE = re.compile(r"[\s<>()\[\],:;–-]+$")


# ============================================================================
# Text cleanup
# ============================================================================

def clean_extracted_text(text: Optional[str]) -> str:
    """
    Tidy a raw captured value.

    Examples:
      '  Acme   Corp , '  -> 'Acme Corp'
      '• [Software]'      -> 'Software'
    """
    if not text:
        return ""
    text = WHITESPACE_RE.sub(" ", text)
    text = BRACKETS_RE.sub("", text)
    text = TRAILING_SEPARATOR_RE.sub("", text)
    text = LEADING_BULLET_RE.sub("", text)
    return text.strip()


def clean_client_name(name: str) -> str:
    """
    Examples:
      'Acme Corp (ACME) Client Notes' -> 'Acme Corp'
      'Brief: Acme'                   -> 'Acme'
    """
    name = CLIENT_NAME_NOISE_RE.sub(" ", name or "")
    return clean_extracted_text(name.strip(" :-"))


def dedupe(items: List[str]) -> List[str]:
    """Order-preserving, case-sensitive: 'EA' and 'ea' are different items."""
    return list(dict.fromkeys(item for item in items if item))


def contains_phrase(text: str, phrase: str) -> bool:
    return re.search(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)", text) is not None


def mentioned(text: str, names: List[str]) -> List[str]:
    """Names (case-sensitive, whole-word) that occur anywhere in text, in list order."""
    return [name for name in names if contains_phrase(text, name)]


# ============================================================================
# Lists
# ============================================================================

def split_list_value(value: str) -> List[str]:
    """
    Split an inline list.

    Examples:
      'Foo, Bar'              -> ['Foo', 'Bar']
      'IGN; GameSpot, and EA' -> ['IGN', 'GameSpot', 'EA']
      'Foo, Bar and Baz'      -> ['Foo', 'Bar', 'Baz']
      'Johnson & Johnson'     -> ['Johnson & Johnson']
    """
    raw_parts = LIST_SPLIT_RE.split(value.strip())
    if len(raw_parts) > 1:
        # 'and' separates items only in the tail of a comma list
        raw_parts = raw_parts[:-1] + AND_SPLIT_RE.split(raw_parts[-1])
    parts = []
    for part in raw_parts:
        part = clean_extracted_text(LEADING_AND_RE.sub("", part.strip().rstrip(".")))
        if part:
            parts.append(part)
    return dedupe(parts)


def extract_list_items(content: str, bullets_only: bool = False) -> List[str]:
    """
    Items from bullet lines, numbered lines, comma lists, and short standalone lines.

    Lines carrying a 'label:' are skipped unless they are bullets. With
    bullets_only, only bullet and numbered lines count.
    """
    items = []
    for line in content.split("\n"):
        line = line.strip()
        if not line:
            continue
        bullet = BULLET_ITEM_RE.match(line)
        if bullet:
            items.append(clean_extracted_text(bullet.group(1)))
        elif bullets_only or ":" in line:
            continue
        elif "," in line or ";" in line:
            items.extend(split_list_value(line))
        elif len(line) < MAX_LIST_ITEM_LENGTH:
            items.append(clean_extracted_text(line))
    return dedupe(items)


# ============================================================================
# Sources
# ============================================================================

def tier_for_label(label: str) -> Optional[str]:
    """
    Map a tier label to its bucket.

    Examples:
      'Tier 1'           -> 'tier1'
      'Secondary Media'  -> 'tier2'
      'Hand Search'      -> 'hand_search'
      'Sources'          -> None
    """
    label = " ".join(LEADING_BULLET_RE.sub("", label.strip()).split())
    for tier, pattern in SOURCE_TIER_LABELS:
        if pattern.match(label):
            return tier
    return None


def extract_sources(content: str, bullets_only: bool = False) -> SourceTiers:
    """
    Split a source block into tiers by inline tier markers.

    Each marker's list runs until the next marker. A block with no markers
    goes entirely into tier1.

    Examples:
      'Tier 1: IGN, GameSpot\\nTier 2: PC Gamer'
          -> tier1=['IGN', 'GameSpot'], tier2=['PC Gamer']
    """
    sources = SourceTiers()
    markers = list(SOURCE_TIER_MARKER_RE.finditer(content))
    if not markers:
        sources.tier1 = extract_list_items(content, bullets_only=bullets_only)
        return sources

    for i, marker in enumerate(markers):
        tier = tier_for_label(marker.group(1))
        if tier is None:
            continue
        end = markers[i + 1].start() if i + 1 < len(markers) else len(content)
        items = extract_list_items(content[marker.end():end])
        setattr(sources, tier, dedupe(getattr(sources, tier) + items))
    return sources


# ============================================================================
# Competitors
# ============================================================================

def extract_competitors(content: str, bullets_only: bool = False) -> List[Competitor]:
    """
    Listed competitors first (document order), then well-known companies
    mentioned in the block that the list did not already name.
    """
    items = extract_list_items(content, bullets_only=bullets_only)
    names = [item for item in items if len(item) < MAX_COMPETITOR_LENGTH]
    for company in mentioned(content, KNOWN_COMPANIES):
        if company not in names:
            names.append(company)
    return [Competitor(name=name, priority=idx + 1) for idx, name in enumerate(dedupe(names))]


def competitors_from_names(names: List[str]) -> List[Competitor]:
    return [Competitor(name=name, priority=idx + 1) for idx, name in enumerate(dedupe(names))]


# ============================================================================
# People
# ============================================================================

def parse_person_line(line: str, require_role: bool = False) -> Optional[Executive]:
    """
    'Name - Role (policy)' style lines.

    Examples:
      'Bobby Kotick - CEO (neutral coverage only)'
          -> Executive(name='Bobby Kotick', role='CEO', sentiment_policy='neutral coverage only')
      'Jane Doe, VP Marketing' -> Executive(name='Jane Doe', role='VP Marketing')
    """
    line = LEADING_BULLET_RE.sub("", line.strip())
    m = PERSON_LINE_RE.match(line)
    if not m:
        return None
    name, rest = m.group(1).strip(), m.group(2).strip()

    policy = ""
    for paren in PARENTHETICAL_RE.findall(rest):
        if SENTIMENT_RE.search(paren):
            policy = paren.strip()
            break
    role = clean_extracted_text(PARENTHETICAL_RE.sub("", rest))

    if require_role and not ROLE_RE.search(role):
        return None
    if not role and not policy:
        return None
    return Executive(name=name, role=role, sentiment_policy=policy)


def extract_executives(content: str, require_role: bool = False) -> List[Executive]:
    executives = []
    seen = set()
    for line in content.split("\n"):
        if "@" in line:
            continue
        executive = parse_person_line(line, require_role=require_role)
        if executive and executive.name not in seen:
            seen.add(executive.name)
            executives.append(executive)
    return executives


def _name_before_email(line: str, email: str) -> str:
    before = line[: line.index(email)]
    before = EMAIL_SEPARATOR_RE.sub("", LEADING_BULLET_RE.sub("", before.strip()))
    person = PERSON_LINE_RE.match(before)
    if person:
        return person.group(1).strip()
    return clean_extracted_text(before)


def extract_contacts(content: str) -> List[Contact]:
    """
    One contact per line carrying an email address.

    Examples:
      'Jane Doe <jane.doe@acme.com> - Account Manager'
          -> Contact(name='Jane Doe', email='jane.doe@acme.com', role='Manager')
    """
    contacts = []
    seen = set()
    for line in content.split("\n"):
        m = ENTITY_PATTERNS["emails"].search(line)
        if not m:
            continue
        email = m.group(0)
        name = _name_before_email(line, email) or email.split("@")[0]
        role_match = ROLE_RE.search(line)
        if name in seen:
            continue
        seen.add(name)
        contacts.append(Contact(name=name, email=email, role=role_match.group(0) if role_match else ""))
    return contacts


# ============================================================================
# Briefing schedule
# ============================================================================

def compose_schedule(content: str) -> str:
    """
    'Daily 7:00 AM ET' style summary from frequency, delivery time and timezone mentions.
    """
    lower = content.lower()
    frequency = next((f for f in FREQUENCIES if contains_phrase(lower, f)), "")
    time_match = DELIVERY_TIME_RE.search(content)
    timezone = next((tz for tz in TIMEZONES if contains_phrase(content, tz)), "")
    parts = [frequency.capitalize(), time_match.group(1) if time_match else "", timezone]
    return " ".join(part for part in parts if part)


def extract_briefing(content: str) -> BriefingInfo:
    """
    Schedule, audience and length from a schedule-like block.

    Labelled lines ('Audience: Exec team') win over inferred values.
    """
    info = BriefingInfo(schedule=compose_schedule(content))
    for line in content.split("\n"):
        m = KEY_VALUE_LINE_RE.match(line.strip())
        if not m:
            continue
        label = " ".join(m.group(1).lower().split())
        value = clean_extracted_text(m.group(2))
        for key in BRIEFING_FIELDS:
            if label in FIELD_VARIATIONS[key] and value:
                setattr(info, key, value)
    if not info.length:
        length = LENGTH_RE.search(content)
        if length:
            info.length = length.group(0)
    return info


# ============================================================================
# Free text (client / industry sections)
# ============================================================================

def extract_free_text(content: str) -> str:
    """
    First short, label-free line of a block.

    Long lines are prose, not a name, and are skipped.
    """
    for line in content.split("\n"):
        line = clean_extracted_text(line)
        if not line or ":" in line:
            continue
        if len(line) < MAX_FREE_TEXT_LENGTH and len(line.split()) <= MAX_FREE_TEXT_WORDS:
            return line
    return ""
