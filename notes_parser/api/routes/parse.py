import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, File, HTTPException, UploadFile

from notes_parser.core.cache import ParsingCache
from notes_parser.core.config import ParserConfig, get_settings
from notes_parser.core.docx_extractor import extract_docx_text
from notes_parser.core.engine import ClientNotesParser, parse_with_timeout
from notes_parser.core.patterns import FIELD_VARIATIONS
from notes_parser.core.pdf_extractor import extract_pdf_text
from notes_parser.core.schemas import DocumentMetadata, LearnedPattern, ParseResult, TextParseRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["parse"])

DOCX_CONTENT_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
TEXT_CONTENT_TYPES = {"text/plain", "text/markdown"}

_parser = None


def get_parser() -> ClientNotesParser:
    """One engine (and so one cache / learning store) per process."""
    global _parser
    if _parser is None:
        settings = get_settings()
        cache = ParsingCache(
            max_entries=settings.cache_max_entries,
            ttl=timedelta(hours=settings.cache_ttl_hours),
            min_confidence=settings.cache_min_confidence,
        )
        _parser = ClientNotesParser(config=ParserConfig.from_settings(settings), cache=cache)
    return _parser


def _run_parse(text: str, metadata: DocumentMetadata) -> ParseResult:
    return parse_with_timeout(get_parser(), text, metadata, timeout=get_settings().parse_timeout_seconds)


PARSE_EXAMPLE = {
    "data": {
        "client_name": "Acme Corp",
        "industry": "Software",
        "products": [],
        "executives": [],
        "competitors": [{"name": "Foo", "type": "direct", "priority": 1}],
        "excluded_topics": [],
        "sources": {"tier1": ["IGN"], "tier2": [], "tier3": [], "hand_search": []},
        "briefing_info": {"schedule": "", "audience": "", "length": ""},
        "contacts": [],
    },
    "confidence": {"overall": 0.8, "per_field": {"client_name": 1.0}, "quality": "medium"},
    "document_type": "brief",
    "validation": {"is_valid": True, "issues": [], "score": 1.0},
    "warnings": [],
    "metadata": {"file_name": "acme_notes.txt", "file_size": 120, "last_modified": None},
    "from_cache": False,
}


@router.post(
    "/parse",
    response_model=ParseResult,
    summary="Parse Client Notes File",
    description="Extract a structured client profile from a client notes file (TXT, MD, DOCX, or PDF). Returns the profile with confidence scores, validation issues and warnings.",
    responses={
        200: {"description": "Successfully parsed client notes", "content": {"application/json": {"example": PARSE_EXAMPLE}}},
        400: {"description": "Empty file uploaded"},
        415: {"description": "Unsupported file format"},
        422: {"description": "File is unreadable or has no extractable text"},
    },
)
async def parse_notes_file(
    file: UploadFile = File(..., description="Client notes file (TXT, MD, DOCX, or PDF format)")
):
    """
    Parse a client notes file.

    **Supported formats:**
    - TXT / MD (.txt, .md)
    - DOCX (.docx) - paragraphs and table rows
    - PDF (.pdf) - Text-layer extraction only, OCR not supported
    """
    raw = await file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Empty file uploaded.")

    filename = (file.filename or "").lower()
    content_type = (file.content_type or "").lower()
    metadata = DocumentMetadata(file_name=file.filename, file_size=len(raw))

    # DOCX
    if filename.endswith(".docx") or content_type in DOCX_CONTENT_TYPES:
        try:
            text = extract_docx_text(raw)
        except Exception as exc:
            logger.warning(f"Unreadable DOCX '{file.filename}': {exc}")
            raise HTTPException(status_code=422, detail="DOCX file could not be read.") from exc
        return _run_parse(text, metadata)

    # PDF
    if filename.endswith(".pdf") or content_type == "application/pdf":
        try:
            text = extract_pdf_text(raw)
        except Exception as exc:
            logger.warning(f"Unreadable PDF '{file.filename}': {exc}")
            raise HTTPException(status_code=422, detail="PDF file could not be read.") from exc
        if not text.strip():
            raise HTTPException(
                status_code=422,
                detail="PDF appears to have no extractable text. OCR is not supported.",
            )
        return _run_parse(text, metadata)

    # Text
    if content_type in TEXT_CONTENT_TYPES or filename.endswith((".txt", ".md")):
        return _run_parse(raw.decode("utf-8", errors="replace"), metadata)

    raise HTTPException(status_code=415, detail=f"Unsupported content type: {file.content_type}")


@router.post(
    "/parse/text",
    response_model=ParseResult,
    summary="Parse Client Notes Text",
    description="Extract a structured client profile from raw client notes text.",
)
def parse_notes_text(request: TextParseRequest):
    return _run_parse(request.text, request.metadata)


@router.get(
    "/learned-patterns/{field}",
    response_model=List[LearnedPattern],
    summary="Learned Label Patterns",
    description="Labels that preceded successfully extracted values for a profile field, most frequent first.",
)
def learned_patterns(field: str):
    if field not in FIELD_VARIATIONS:
        raise HTTPException(status_code=404, detail=f"Unknown field: {field}")
    return get_parser().cache.suggested_patterns(field)
