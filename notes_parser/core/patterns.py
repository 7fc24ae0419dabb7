"""
Pattern tables for client notes extraction.

Everything here is data: ordered regex tables (each entry names the field it
fills and its priority), keyword vocabularies, and entity pattern families.
Strategies iterate these tables; they never hard-code a regex inline.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class PatternSpec:
    """A named regex targeting one profile field. Lower priority number wins."""
    name: str
    field: str
    pattern: str
    example: str
    priority: int = 1
    notes: Optional[str] = None
    flags: int = re.IGNORECASE | re.MULTILINE
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "compiled", re.compile(self.pattern, self.flags))


def ordered(specs: List[PatternSpec]) -> List[PatternSpec]:
    """Stable sort by priority, so table order breaks ties."""
    return sorted(specs, key=lambda spec: spec.priority)


# ============================================================================
# Direct pattern matching tables
# ============================================================================

CLIENT_NAME_PATTERNS = ordered([
    PatternSpec(
        name="explicit_client_label",
        field="client_name",
        pattern=r"^(?:client|customer|account)(?:\s+name)?\s*(?::|\s-\s)\s*(\S.*)$",
        example="Client: Acme Corp",
        priority=1,
    ),
    PatternSpec(
        name="company_name_label",
        field="client_name",
        pattern=r"^(?:company|organization)\s+name\s*(?::|\s-\s)\s*(\S.*)$",
        example="Company Name: Acme Corp",
        priority=1,
    ),
    PatternSpec(
        name="notes_for",
        field="client_name",
        pattern=r"^(?:notes|briefing|brief)\s+for\s*:?\s*(\S.*)$",
        example="Notes for Acme Corp",
        priority=2,
    ),
    PatternSpec(
        name="title_with_notes_suffix",
        field="client_name",
        pattern=r"^([A-Za-z0-9][\w&.,' ]*?)\s*(?:\([^)\n]*\))?\s*(?:client notes|client brief|briefing notes|client profile)\s*$",
        example="Rackspace Client Notes",
        priority=3,
        notes="Positional: a document title naming the client",
    ),
    PatternSpec(
        name="base_information_title",
        field="client_name",
        pattern=r"^([A-Za-z0-9][\w&.' ]*?)\s+(?:base|client)\s+information\s*$",
        example="Activision Blizzard Base Information",
        priority=4,
    ),
])

INDUSTRY_PATTERNS = ordered([
    PatternSpec(
        name="explicit_industry_label",
        field="industry",
        pattern=r"^(?:primary\s+)?(?:industry|sector|vertical)\s*(?::|\s-\s)\s*(\S.*)$",
        example="Industry: Software",
        priority=1,
    ),
    PatternSpec(
        name="operates_in",
        field="industry",
        pattern=r"\boperates in (?:the\s+)?([a-z][\w &/-]*?)\s+(?:industry|sector|space|market)\b",
        example="Acme operates in the cloud hosting industry",
        priority=2,
    ),
    PatternSpec(
        name="is_a_kind_of_company",
        field="industry",
        pattern=r"\b(?:is|are) an? (?:leading |global |major |large )?([a-z][\w &/-]{2,40}?) (?:company|firm|provider|publisher|developer|manufacturer)\b",
        example="Acme is a leading software company",
        priority=3,
    ),
])

# "Tier 1: IGN, GameSpot" style labels, checked before any fuzzy label mapping
SOURCE_TIER_LABELS: List[Tuple[str, re.Pattern]] = [
    ("tier1", re.compile(r"^(?:tier\s*(?:1|one|i)|primary|priority)(?:\s+(?:sources?|media|outlets))?$", re.I)),
    ("tier2", re.compile(r"^(?:tier\s*(?:2|two|ii)|secondary)(?:\s+(?:sources?|media|outlets))?$", re.I)),
    ("tier3", re.compile(r"^(?:tier\s*(?:3|three|iii)|supplementary|additional)(?:\s+(?:sources?|media|outlets))?$", re.I)),
    ("hand_search", re.compile(r"^(?:hand[\s-]*search(?:es)?|manual(?:\s+search)?|special)(?:\s+(?:sources?|media|outlets))?$", re.I)),
]

# Inline tier markers inside a source block; each value runs until the next marker
SOURCE_TIER_MARKER_RE = re.compile(
    r"^(?:•\s*)?(tier\s*[123]|primary|priority|secondary|supplementary|additional|hand[\s-]*search(?:es)?|manual|special)"
    r"(?:\s+(?:sources?|media|outlets))?\s*:\s*",
    re.I | re.M,
)

KEY_VALUE_LINE_RE = re.compile(r"^(?:•\s*)?([A-Za-z][\w &/()'.-]{0,40}?)\s*(?::|\s[-–]\s)\s*(\S.*)$")


# ============================================================================
# Field vocabulary (label synonyms), extended by ParserConfig.custom_patterns
# ============================================================================

FIELD_VARIATIONS: Dict[str, List[str]] = {
    "client_name": ["client", "customer", "account", "company", "organization", "client name", "company name"],
    "industry": ["industry", "sector", "vertical", "business", "field", "market"],
    "competitors": ["competitors", "competition", "competitive intelligence", "competitor news", "competing", "rivals"],
    "products": ["products", "games", "properties", "offerings", "services", "portfolio", "game properties"],
    "executives": ["executives", "leadership", "management", "c-suite", "officers", "leaders", "leadership team"],
    "excluded_topics": ["excluded topics", "excluded", "exclude", "do not include", "avoid", "omit", "restrictions", "sensitive"],
    "sources": ["sources", "publications", "media", "outlets", "news sources", "highlighted sources"],
    "schedule": ["schedule", "delivery", "timing", "delivery time", "frequency"],
    "audience": ["audience", "recipients", "readers", "stakeholders", "distribution list", "distribution"],
    "length": ["length", "format", "word count"],
    "contacts": ["contacts", "contact", "point of contact", "poc", "account manager", "account lead"],
}

BRIEFING_FIELDS = ("schedule", "audience", "length")


# ============================================================================
# Section classification keywords (structure analyzer)
# ============================================================================

SECTION_KEYWORDS: Dict[str, List[str]] = {
    "client": ["client", "customer", "account", "company name", "organization"],
    "industry": ["industry", "sector", "vertical", "market", "business"],
    "competitor": ["competitor", "competition", "compete", "competitive", "rival", "versus", "vs"],
    "source": ["source", "publication", "media", "news", "outlet", "tier"],
    "exclude": ["exclude", "excluded", "not include", "avoid", "do not", "negative", "sensitive"],
    "schedule": ["schedule", "time", "daily", "weekly", "am", "pm", "delivery", "morning"],
    "description": ["about", "description", "overview", "is a", "provides"],
}

# Classified section type -> profile field it feeds
SECTION_TYPE_FIELDS: Dict[str, str] = {
    "client": "client_name",
    "industry": "industry",
    "competitor": "competitors",
    "source": "sources",
    "exclude": "excluded_topics",
    "schedule": "schedule",
}


# ============================================================================
# Entity pattern families
# ============================================================================

ENTITY_PATTERNS: Dict[str, re.Pattern] = {
    "organizations": re.compile(
        r"\b[A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*\s+(?:Inc|Corp|LLC|Ltd|Limited|Co|Company)\b"
        r"|\b(?:Microsoft|Google|Apple|Amazon|Meta|IBM|Rackspace|Activision|Blizzard|Electronic Arts|EA|Ubisoft|Nintendo|Sony)\b"
    ),
    "people": re.compile(
        r"\b(?:Mr|Mrs|Ms|Dr|Prof)\.?\s+[A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*"
        r"|\b[A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)+,\s+(?:CEO|CTO|CFO|COO|CMO|CIO|VP|Director|President|Manager)\b"
    ),
    "emails": re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}"),
    "urls": re.compile(r"https?://[^\s)>\]]+"),
    "times": re.compile(
        r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm|AM|PM)\b|\b(?:morning|afternoon|evening|daily|weekly|monthly)\b"
    ),
}

ROLE_TITLES = ["CEO", "CTO", "CFO", "COO", "CMO", "CIO", "President", "Director", "VP", "Manager", "Lead", "Head"]

FREQUENCIES = ["bi-weekly", "daily", "weekly", "monthly", "quarterly"]
TIMEZONES = ["EST", "EDT", "PST", "PDT", "CST", "GMT", "UTC", "CET", "ET", "PT", "CT"]
DELIVERY_TIME_RE = re.compile(r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm))\b", re.I)


# ============================================================================
# Known companies (competitor recognition)
# ============================================================================

KNOWN_COMPANIES = [
    "IBM", "Microsoft", "Google", "Amazon", "AWS", "Oracle", "Salesforce",
    "Electronic Arts", "EA", "Ubisoft", "Nintendo", "Sony", "Activision",
    "Pfizer", "Johnson & Johnson", "J&J", "Merck", "Roche",
    "Accenture", "Deloitte", "PwC", "EY", "KPMG",
    "DXC", "HCL", "TCS", "Wipro", "Infosys", "Cognizant",
]


# ============================================================================
# Document templates (marker lists, in priority order)
# ============================================================================

TEMPLATES: List[Tuple[str, List[str]]] = [
    ("standard_client_notes", ["Client Notes", "Base Information", "Competitive Intelligence"]),
    ("brief_format", ["Client:", "Industry:", "Competitors:", "Sources:"]),
    ("detailed_format", ["Client Profile", "Market Analysis", "Strategic Focus"]),
]
TEMPLATE_MATCH_THRESHOLD = 0.6
