"""
Structure analysis for normalized client notes.

Segments text into fragments with three independent splitters (blank-line
paragraphs, table blocks, bullet/numbered runs), attaches headers, classifies
each fragment by keyword scoring, and pulls lightweight entities and
'label: value' metadata out of it.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from notes_parser.core.patterns import ENTITY_PATTERNS, KEY_VALUE_LINE_RE, SECTION_KEYWORDS
from notes_parser.core.schemas import DocumentStructure, DocumentType, ExtractedEntities, Section

logger = logging.getLogger(__name__)

MIN_FRAGMENT_LENGTH = 20
MAX_HEADER_LENGTH = 60
STRUCTURED_HEADER_COUNT = 5
NARRATIVE_LINE_LENGTH = 50

BLANK_LINE_RE = re.compile(r"\n[ \t]*\n\s*")
TABLE_BLOCK_RE = re.compile(r"(?:^[ \t]*[+|].*[+|][ \t]*$\n?){2,}", re.M)
LIST_BLOCK_RE = re.compile(r"(?:^(?:•|\d+[.)])[ \t]+\S.*$\n?)+", re.M)
NUMBERED_LINE_RE = re.compile(r"^\d+[.)]\s+\S")

SMALL_WORDS = r"(?:of|and|for|the|to|in|on|a|an|&|vs\.?)"
TITLE_WORD = r"[A-Z0-9][\w&'/().-]*"
HEADER_RE = re.compile(
    rf"^(?:{TITLE_WORD}(?: (?:{TITLE_WORD}|{SMALL_WORDS}))*:?|[^:\n•]{{1,{MAX_HEADER_LENGTH - 2}}}:)$"
)

KEYWORD_RES: Dict[str, List[re.Pattern]] = {
    section_type: [re.compile(r"\b" + re.escape(kw) + r"(?:s|es)?\b") for kw in keywords]
    for section_type, keywords in SECTION_KEYWORDS.items()
}


# ============================================================================
# Headers
# ============================================================================

def is_header_line(line: str, next_line: Optional[str]) -> bool:
    """
    A header is a short title-cased or colon-terminated line followed by a non-blank line.

    Examples:
      ('Competitive Intelligence', '• IBM') -> True
      ('Sources:', 'IGN, GameSpot')        -> True
      ('Client: Acme Corp', 'Industry: X') -> False (label with a value)
      ('Competitors', '')                  -> False (nothing follows)
    """
    text = line.strip()
    if not text or len(text) > MAX_HEADER_LENGTH:
        return False
    if next_line is None or not next_line.strip():
        return False
    return bool(HEADER_RE.match(text))


def _header_text(line: str) -> str:
    return line.strip().rstrip(":").strip()


# ============================================================================
# Segmentation
# ============================================================================

def _trim_span(text: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def _paragraph_spans(text: str) -> List[Tuple[int, int]]:
    spans = []
    start = 0
    for m in BLANK_LINE_RE.finditer(text):
        spans.append((start, m.start()))
        start = m.end()
    spans.append((start, len(text)))
    return spans


def _block_spans(text: str, pattern: re.Pattern) -> List[Tuple[int, int]]:
    return [(m.start(), m.end()) for m in pattern.finditer(text)]


def segment(text: str) -> List[Tuple[str, int, int]]:
    """
    Split text into (family, start, end) fragments.

    Fragments of different families may overlap (a bullet run is usually also
    part of a paragraph); fragments within one family never do. Anything not
    longer than MIN_FRAGMENT_LENGTH is noise.
    """
    fragments = []
    families = [
        ("paragraph", _paragraph_spans(text)),
        ("table", _block_spans(text, TABLE_BLOCK_RE)),
        ("list", _block_spans(text, LIST_BLOCK_RE)),
    ]
    for family_order, (family, spans) in enumerate(families):
        for start, end in spans:
            start, end = _trim_span(text, start, end)
            if end - start > MIN_FRAGMENT_LENGTH:
                fragments.append((family_order, family, start, end))
    fragments.sort(key=lambda f: (f[2], f[0]))
    return [(family, start, end) for _, family, start, end in fragments]


# ============================================================================
# Classification
# ============================================================================

def score_section_types(fragment: str) -> Dict[str, float]:
    """
    Keyword score per section type. Each hit counts 10, boosted by up to 2x
    for keywords whose first occurrence is near the start of the fragment.
    """
    lower = fragment.lower()
    scores: Dict[str, float] = {}
    for section_type, patterns in KEYWORD_RES.items():
        score = 0.0
        for pattern in patterns:
            hits = list(pattern.finditer(lower))
            if not hits:
                continue
            position_weight = 1 + 1 / (1 + hits[0].start() * 0.01)
            score += len(hits) * position_weight * 10
        scores[section_type] = score
    return scores


def classify_section(fragment: str) -> str:
    """Arg-max section type; ties go to 'description', no keyword at all is 'unknown'."""
    scores = score_section_types(fragment)
    best = max(scores.values(), default=0.0)
    if best <= 0:
        return "unknown"
    top = [section_type for section_type, score in scores.items() if score == best]
    if len(top) > 1:
        return "description"
    return top[0]


# ============================================================================
# Entities and metadata
# ============================================================================

def extract_entities(fragment: str) -> ExtractedEntities:
    found = {}
    for family, pattern in ENTITY_PATTERNS.items():
        matches = [m.group(0).strip() for m in pattern.finditer(fragment)]
        found[family] = list(dict.fromkeys(matches))
    return ExtractedEntities(**found)


def extract_metadata(fragment: str) -> Dict[str, str]:
    """
    'label: value' / 'label - value' lines -> {lower-cased label: raw value}.
    The first occurrence of a label wins.
    """
    metadata: Dict[str, str] = {}
    for line in fragment.split("\n"):
        m = KEY_VALUE_LINE_RE.match(line.strip())
        if m:
            key = " ".join(m.group(1).lower().split())
            metadata.setdefault(key, m.group(2).strip())
    return metadata


# ============================================================================
# Document-level analysis
# ============================================================================

def determine_document_type(header_count: int, has_bullets: bool, has_numbering: bool, avg_line_length: float) -> DocumentType:
    if header_count > STRUCTURED_HEADER_COUNT:
        return "structured"
    if has_bullets or has_numbering:
        return "semi-structured"
    if avg_line_length > NARRATIVE_LINE_LENGTH:
        return "narrative"
    return "brief"


def _line_starts(lines: List[str]) -> List[int]:
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts


def _header_for(family: str, start: int, lines: List[str], line_starts: List[int]) -> Optional[str]:
    # Index of the line the fragment starts on
    line_idx = max(i for i, s in enumerate(line_starts) if s <= start)
    next_line = lines[line_idx + 1] if line_idx + 1 < len(lines) else None
    if is_header_line(lines[line_idx], next_line):
        return _header_text(lines[line_idx])
    if family == "list" and line_idx > 0 and is_header_line(lines[line_idx - 1], lines[line_idx]):
        return _header_text(lines[line_idx - 1])
    return None


def analyze(text: str) -> DocumentStructure:
    """
    Build the DocumentStructure for normalized text.
    """
    if not text:
        return DocumentStructure()

    lines = text.split("\n")
    line_starts = _line_starts(lines)

    headers = []
    for i, line in enumerate(lines):
        next_line = lines[i + 1] if i + 1 < len(lines) else None
        if is_header_line(line, next_line):
            headers.append(_header_text(line))

    sections = []
    for family, start, end in segment(text):
        raw = text[start:end]
        section = Section(
            header=_header_for(family, start, lines, line_starts),
            start_offset=start,
            end_offset=end,
            raw_text=raw,
            classified_type=classify_section(raw),
            entities=extract_entities(raw),
            extracted_metadata=extract_metadata(raw),
        )
        logger.debug(f"SECTION {family} [{start}:{end}] header={section.header!r} -> type='{section.classified_type}'")
        sections.append(section)

    has_bullets = any(line.startswith("•") for line in lines)
    has_numbering = any(NUMBERED_LINE_RE.match(line) for line in lines)
    avg_line_length = sum(len(line) for line in lines) / len(lines)

    return DocumentStructure(
        sections=sections,
        headers=headers,
        has_headers=bool(headers),
        has_bullets=has_bullets,
        has_numbering=has_numbering,
        line_count=len(lines),
        avg_line_length=avg_line_length,
        document_type=determine_document_type(len(headers), has_bullets, has_numbering, avg_line_length),
    )
