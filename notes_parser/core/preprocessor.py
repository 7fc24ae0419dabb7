"""
Text normalization for client notes.

Client notes arrive pasted from email, exported from Word, scraped from wikis or
OCR'd from scans. normalize() turns any of them into one canonical plain-text
form that the structure analyzer and strategies can rely on:

1. encoding repair   (mis-decoded punctuation, curly quotes, dashes)
2. markup stripping  (HTML tags/entities, markdown emphasis, links, headings)
3. OCR correction    (exact-word table of known misreads)
4. list markers      (-, *, o, ● ... at line start become "• ")
5. whitespace        (tabs, runs of spaces, blank-line runs, line endings)

The pipeline is applied until the text stops changing, which makes
normalize() idempotent.
"""

import html
import re
import unicodedata
from typing import Union


MAX_PASSES = 8
BULLET = "•"


# ============================================================================
# Step 1: Encoding repair
# ============================================================================

# UTF-8 punctuation decoded as cp1252. Longer sequences first.
MOJIBAKE_FIXES = [
    ("â€™", "'"),
    ("â€˜", "'"),
    ("â€œ", '"'),
    ("â€\x9d", '"'),
    ("â€\u201d", "-"),
    ("â€\u201c", "-"),
    ("â€¦", "..."),
    ("â€¢", BULLET),
    ("â€", '"'),
    ("Â\xa0", " "),
]

UNICODE_PUNCT_FIXES = {
    "‘": "'", "’": "'", "‚": "'", "‛": "'",
    "“": '"', "”": '"', "„": '"',
    "–": "-", "—": "-", "―": "-", "−": "-",
    "…": "...",
    " ": " ",
    " ": "\n", " ": "\n",
    "﻿": "",
}

C0_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def repair_encoding(text: str) -> str:
    """
    Replace mis-decoded and typographic punctuation with plain ASCII.

    Examples:
      'Itâ€™s' -> "It's"
      '“quoted”' -> '"quoted"'
      'Q3 — Q4' -> 'Q3 - Q4'
    """
    text = C0_CONTROL_RE.sub("", text)
    for bad, good in MOJIBAKE_FIXES:
        text = text.replace(bad, good)
    text = text.translate(str.maketrans(UNICODE_PUNCT_FIXES))
    return unicodedata.normalize("NFKC", text)


# ============================================================================
# Step 2: Markup stripping
# ============================================================================

HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.S)
HTML_TAG_RE = re.compile(r"</?[A-Za-z][\w:-]*(?:\s[^<>]*)?/?>")
MD_LINK_RE = re.compile(r"!?\[([^\[\]\n]*)\]\([^()\s]*\)")
MD_BOLD_RE = re.compile(r"\*\*(?=\S)([^*\n]+?)(?<=\S)\*\*")
MD_UNDERLINE_RE = re.compile(r"__(?=\S)([^_\n]+?)(?<=\S)__")
MD_EMPHASIS_RE = re.compile(r"(?<![*\w])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![*\w])")
MD_HEADING_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.M)


def strip_markup(text: str) -> str:
    """
    Remove embedded tags and markdown syntax, keeping the visible text.

    Examples:
      '<b>Client:</b> Acme' -> 'Client: Acme'
      '**Industry**: [Gaming](https://x.io)' -> 'Industry: Gaming'
      '## Competitors' -> 'Competitors'
      'Jane Doe <jane.doe@acme.com>' -> unchanged
    """
    while True:
        stripped = HTML_COMMENT_RE.sub("", text)
        stripped = HTML_TAG_RE.sub("", stripped)
        stripped = html.unescape(stripped)
        stripped = MD_LINK_RE.sub(r"\1", stripped)
        stripped = MD_BOLD_RE.sub(r"\1", stripped)
        stripped = MD_UNDERLINE_RE.sub(r"\1", stripped)
        stripped = MD_EMPHASIS_RE.sub(r"\1", stripped)
        stripped = MD_HEADING_RE.sub("", stripped)
        if stripped == text:
            return text
        text = stripped


# ============================================================================
# Step 3: OCR correction
# ============================================================================

OCR_FIXES = {
    "rnay": "may",
    "frorn": "from",
    "cornpany": "company",
    "custorner": "customer",
    "cornpetitor": "competitor",
    "cornpetitors": "competitors",
    "clierit": "client",
    "rnedia": "media",
    "rnarket": "market",
    "industrv": "industry",
}

OCR_RE = re.compile(r"\b(" + "|".join(sorted(OCR_FIXES, key=len, reverse=True)) + r")\b", re.I)


def _apply_ocr_fix(match: re.Match) -> str:
    token = match.group(1)
    fixed = OCR_FIXES[token.lower()]
    # Preserve capitalization of the misread token
    if token[:1].isupper():
        fixed = fixed[:1].upper() + fixed[1:]
    return fixed


def correct_ocr_errors(text: str) -> str:
    """
    Exact-word substitution of known OCR misreads ('rn' read for 'm', ...).

    Examples:
      'Cornpany overview' -> 'Company overview'
      'news frorn partners' -> 'news from partners'
    """
    return OCR_RE.sub(_apply_ocr_fix, text)


# ============================================================================
# Step 4: List marker canonicalization
# ============================================================================

LIST_MARKER_RE = re.compile(r"^[ \t]*(?:[-*•●▪◦]|o)[ \t]+(?=\S)", re.M)


def canonicalize_list_markers(text: str) -> str:
    """
    Make every bullet line start with a single '• '. Numbered markers are left alone.

    Examples:
      '- EA'   -> '• EA'
      '  * EA' -> '• EA'
      'o EA'   -> '• EA'
      '1. EA'  -> '1. EA'
    """
    return LIST_MARKER_RE.sub(f"{BULLET} ", text)


# ============================================================================
# Step 5: Whitespace normalization
# ============================================================================

BLANK_RUN_RE = re.compile(r"\n{3,}")
SPACE_RUN_RE = re.compile(r" {2,}")


def normalize_whitespace(text: str) -> str:
    """
    Canonical line endings, single spaces, no trailing blanks, at most one blank line in a row.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\t", " ")
    text = SPACE_RUN_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


# ============================================================================
# Public entry point
# ============================================================================

def _single_pass(text: str) -> str:
    text = repair_encoding(text)
    text = strip_markup(text)
    text = correct_ocr_errors(text)
    text = canonicalize_list_markers(text)
    return normalize_whitespace(text)


def normalize(raw_text: Union[str, bytes, None]) -> str:
    """
    Normalize raw client notes into canonical plain text.

    Never fails: bytes are decoded as UTF-8 with malformed sequences replaced,
    None and empty input give ''.
    """
    if raw_text is None:
        return ""
    if isinstance(raw_text, (bytes, bytearray)):
        raw_text = bytes(raw_text).decode("utf-8", errors="replace")

    text = raw_text
    for _ in range(MAX_PASSES):
        normalized = _single_pass(text)
        if normalized == text:
            break
        text = normalized
    return text
