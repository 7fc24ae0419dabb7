"""
Text-layer extraction for uploaded PDF notes.

pdfplumber gives positioned words; each page is rebuilt line by line from
word positions, trying every configured horizontal tolerance and keeping the
reading with the fewest glued or shattered words.
"""

from io import BytesIO
from itertools import groupby
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import pdfplumber

from notes_parser.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

GLUED_TOKEN_LENGTH = 18
ALLOWED_SINGLE_LETTERS = 10


def _visual_lines(words: List[Dict[str, Any]], line_tolerance: float) -> List[str]:
    """
    Rebuild visual lines from pdfplumber word dicts.

    Words whose tops fall in the same line_tolerance band share a line and
    are ordered left to right.

    Examples:
      [{'text': 'Acme', 'top': 10.2, 'x0': 40}, {'text': 'Client:', 'top': 10.0, 'x0': 5}]
          -> ['Client: Acme']
    """
    def band(word: Dict[str, Any]) -> int:
        return round(word["top"] / line_tolerance)

    ordered = sorted(words, key=lambda w: (band(w), w["x0"]))
    return [" ".join(w["text"] for w in group) for _, group in groupby(ordered, key=band)]


def _fragment_penalty(lines: Sequence[str]) -> int:
    """Glued tokens cost 10, single letters beyond the allowance cost 3 each."""
    tokens = re.findall(r"[A-Za-z]+", " ".join(lines))
    if not tokens:
        return 0
    glued = sum(1 for t in tokens if len(t) >= GLUED_TOKEN_LENGTH)
    singles = sum(1 for t in tokens if len(t) == 1)
    return glued * 10 + max(0, singles - ALLOWED_SINGLE_LETTERS) * 3


def _page_lines(page: Any, x_tolerances: Sequence[float], line_tolerance: float) -> List[str]:
    readings = []
    for x_tolerance in x_tolerances:
        words = page.extract_words(
            x_tolerance=x_tolerance,
            y_tolerance=line_tolerance,
            keep_blank_chars=False,
            use_text_flow=True,
        )
        lines = [ln.strip() for ln in _visual_lines(words, line_tolerance) if ln.strip()]
        readings.append((_fragment_penalty(lines), x_tolerance, lines))
    if not readings:
        return []
    penalty, x_tolerance, lines = min(readings, key=lambda r: (r[0], r[1]))
    logger.debug(f"Page {page.page_number}: x_tolerance={x_tolerance} penalty={penalty} lines={len(lines)}")
    return lines


def extract_pdf_text(pdf_bytes: bytes, settings: Optional[Settings] = None) -> str:
    """
    Text layer of a PDF, one line per visual line, pages separated by a blank line.
    Scanned PDFs without a text layer give ''.
    """
    settings = settings or get_settings()
    pages: List[str] = []
    with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
        for page in pdf.pages:
            lines = _page_lines(page, settings.pdf_x_tolerances, settings.pdf_line_tolerance)
            if lines:
                pages.append("\n".join(lines))
    return "\n\n".join(pages)
