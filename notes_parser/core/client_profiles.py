"""
Client categories and named client profiles.

Categories (gaming / technology / healthcare) are detected from indicator
keywords in the text. Profiles are configured per client ("rackspace",
"activision") and carry defaults and requirements specific to that account.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ClientCategory:
    name: str
    indicators: Tuple[str, ...]
    industry_default: str
    known_competitors: Tuple[str, ...]
    required_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClientProfileConfig:
    key: str
    industry_default: str
    required_fields: Tuple[str, ...]
    known_competitors: Tuple[str, ...] = ()
    label_synonyms: Dict[str, List[str]] = field(default_factory=dict)


MIN_CATEGORY_INDICATORS = 2

CLIENT_CATEGORIES: Dict[str, ClientCategory] = {
    "gaming": ClientCategory(
        name="gaming",
        indicators=("game", "gaming", "esports", "console", "mobile gaming", "pc gaming", "gamer", "publisher"),
        industry_default="Video Game Publishing",
        known_competitors=("Electronic Arts", "EA", "Ubisoft", "Nintendo", "Sony", "Microsoft", "Activision", "Blizzard", "Epic Games"),
        required_fields=("products",),
    ),
    "technology": ClientCategory(
        name="technology",
        indicators=("cloud", "saas", "software", "tech", "digital", "cyber", "data center", "managed services"),
        industry_default="Technology Services",
        known_competitors=("IBM", "AWS", "Google Cloud", "Microsoft", "Oracle", "Salesforce", "SAP"),
    ),
    "healthcare": ClientCategory(
        name="healthcare",
        indicators=("health", "medical", "pharma", "biotech", "clinical", "patient", "hospital"),
        industry_default="Healthcare",
        known_competitors=("Pfizer", "J&J", "Johnson & Johnson", "Roche", "Novartis", "Merck", "GSK"),
    ),
}

CLIENT_PROFILES: Dict[str, ClientProfileConfig] = {
    "rackspace": ClientProfileConfig(
        key="rackspace",
        industry_default="Cloud Technology / Managed Services",
        required_fields=("client_name", "competitors", "sources"),
        known_competitors=("IBM", "Tierpoint", "WiPro", "Wipro", "Accenture", "Cloudreach", "DXC"),
        label_synonyms={
            "competitors": ["competitive intelligence"],
            "sources": ["highlighted sources", "highlighted rackspace sources"],
        },
    ),
    "activision": ClientProfileConfig(
        key="activision",
        industry_default="Video Game Publishing",
        required_fields=("client_name", "products", "executives", "excluded_topics"),
        label_synonyms={
            "products": ["game properties"],
            "executives": ["leadership team"],
        },
    ),
}

# Evidence keywords for industry inference when a client is known but no industry was found
INDUSTRY_INFERENCES: List[Tuple[str, Tuple[str, ...]]] = [
    ("Gaming", ("game", "gaming", "entertainment", "interactive", "esports")),
    ("Technology", ("tech", "software", "cloud", "digital", "cyber")),
    ("Healthcare", ("health", "medical", "pharma", "biotech", "clinical")),
    ("Finance", ("bank", "financial", "capital", "investment", "insurance")),
    ("Retail", ("retail", "store", "commerce", "shop", "consumer")),
]


def _keyword_re(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword) + r"s?\b", re.I)


def detect_category(text: str) -> Optional[ClientCategory]:
    """
    Category with the most distinct indicators present, if it has at least two.

    Examples:
      'Gaming publisher with console and PC titles' -> gaming
      'We sell cloud software'                       -> technology
      'Acme makes widgets'                           -> None
    """
    best = None
    best_hits = 0
    for category in CLIENT_CATEGORIES.values():
        hits = sum(1 for indicator in category.indicators if _keyword_re(indicator).search(text))
        if hits > best_hits:
            best, best_hits = category, hits
    if best_hits < MIN_CATEGORY_INDICATORS:
        return None
    return best


def detect_client_from_filename(file_name: Optional[str]) -> Optional[str]:
    """'Rackspace_Client_Notes_2024.docx' -> 'rackspace'."""
    if not file_name:
        return None
    lower = file_name.lower()
    for key in CLIENT_PROFILES:
        if key in lower:
            return key
    return None


def infer_industry(client_name: str, text: str) -> str:
    """First industry whose evidence keywords appear in the client name or text; '' when none do."""
    combined = f"{client_name} {text}"
    for industry, keywords in INDUSTRY_INFERENCES:
        if any(_keyword_re(keyword).search(combined) for keyword in keywords):
            return industry
    return ""
