"""
Client notes parsing engine.

ClientNotesParser.parse() runs the whole pipeline:

  normalize -> cache lookup -> analyze structure -> strategies (merged in order)
  -> post-process -> confidence -> fallback (below threshold) -> validate
  -> warnings -> cache store / learning

parse() does not raise. Strategy and fallback failures become warning
entries; anything else unexpected is logged and turned into an empty,
zero-confidence result.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from notes_parser.core.cache import ParsingCache
from notes_parser.core.client_profiles import (
    CLIENT_PROFILES,
    detect_category,
    detect_client_from_filename,
    infer_industry,
)
from notes_parser.core.confidence_calculator import ConfidenceCalculator
from notes_parser.core.config import ParserConfig, get_settings
from notes_parser.core.fallback import FallbackParser
from notes_parser.core.field_extractors import clean_client_name, dedupe, mentioned
from notes_parser.core.fuzzy import FieldVocabulary
from notes_parser.core.merger import merge_profiles
from notes_parser.core.preprocessor import normalize
from notes_parser.core.schemas import (
    SOURCE_TIERS,
    ClientProfile,
    Competitor,
    Confidence,
    DocumentMetadata,
    ParseResult,
    ParseWarning,
    ValidationResult,
)
from notes_parser.core.strategies import ExtractionStrategy, build_strategies
from notes_parser.core.structure_analyzer import analyze
from notes_parser.core.validator import ParsingValidator

logger = logging.getLogger(__name__)

LEARNING_CONFIDENCE = 0.7
LABEL_CONTEXT_WINDOW = 50
LABEL_BEFORE_VALUE_RE = re.compile(r"([A-Za-z0-9 \t]+)[:–-]\s*$")

MetadataInput = Union[DocumentMetadata, Dict, None]


def _unique_by_name(items: list) -> list:
    seen = set()
    unique = []
    for item in items:
        if item.name not in seen:
            seen.add(item.name)
            unique.append(item)
    return unique


class ClientNotesParser:
    """
    Multi-strategy client notes parser.

    Usage:
        parser = ClientNotesParser(confidence_threshold=0.5)
        result = parser.parse(text, {"file_name": "acme_notes.txt"})
    """

    def __init__(self, config: Optional[ParserConfig] = None, cache: Optional[ParsingCache] = None, **overrides):
        if config is None:
            config = ParserConfig.build(**overrides)
        elif overrides:
            config = ParserConfig.build(**{**config.model_dump(), **overrides})
        self.config = config
        self.cache = cache if cache is not None else ParsingCache()
        self.fallback_parser = FallbackParser()
        self.validator = ParsingValidator()
        self._strategies: Dict[Optional[str], List[ExtractionStrategy]] = {}

    # ========================================================================
    # Public API
    # ========================================================================

    def parse(self, document_text: Union[str, bytes, None], metadata: MetadataInput = None) -> ParseResult:
        meta = self._coerce_metadata(metadata)
        try:
            return self._parse(document_text, meta)
        except Exception as exc:
            logger.exception("Client notes parse failed")
            return self.empty_result(meta, f"Parsing failed unexpectedly: {exc}")

    def empty_result(self, metadata: Optional[DocumentMetadata] = None, message: str = "Client name could not be extracted") -> ParseResult:
        """All-empty, zero-confidence result carrying a single error-level warning."""
        profile = ClientProfile()
        return ParseResult(
            data=profile,
            confidence=ConfidenceCalculator.score(profile),
            document_type="brief",
            validation=self.validator.validate(profile, "brief", None),
            warnings=[ParseWarning(level="error", message=message, suggestion="Review the document manually")],
            metadata=metadata or DocumentMetadata(),
        )

    # ========================================================================
    # Pipeline
    # ========================================================================

    @staticmethod
    def _coerce_metadata(metadata: MetadataInput) -> DocumentMetadata:
        """Validated metadata, or empty metadata when the input is malformed."""
        if metadata is None:
            return DocumentMetadata()
        if isinstance(metadata, DocumentMetadata):
            return metadata
        try:
            return DocumentMetadata.model_validate(metadata)
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed metadata: {exc}")
            return DocumentMetadata()

    def _strategies_for(self, client_type: Optional[str]) -> List[ExtractionStrategy]:
        if client_type not in self._strategies:
            synonyms = {field: list(words) for field, words in self.config.custom_patterns.items()}
            profile = CLIENT_PROFILES.get(client_type or "")
            if profile:
                for field, words in profile.label_synonyms.items():
                    synonyms.setdefault(field, []).extend(words)
            vocabulary = FieldVocabulary(
                custom_patterns=synonyms,
                enable_fuzzy_matching=self.config.enable_fuzzy_matching,
                learned_count=self.cache.learned_count,
            )
            self._strategies[client_type] = build_strategies(vocabulary)
        return self._strategies[client_type]

    def _parse(self, document_text: Union[str, bytes, None], metadata: DocumentMetadata) -> ParseResult:
        normalized = normalize(document_text)

        if self.config.enable_caching:
            cached = self.cache.lookup(normalized)
            if cached is not None:
                cached.from_cache = True
                cached.metadata = metadata
                return cached

        structure = analyze(normalized)
        client_type = self.config.client_type or detect_client_from_filename(metadata.file_name)
        logger.debug(f"PARSE {len(normalized)} chars, type='{structure.document_type}', client_type={client_type!r}")

        isolation_warnings: List[ParseWarning] = []
        profile = ClientProfile()
        for strategy in self._strategies_for(client_type):
            try:
                partial = strategy.run(normalized, structure)
            except Exception as exc:
                logger.warning(f"Strategy '{strategy.name}' failed: {exc}")
                isolation_warnings.append(ParseWarning(
                    level="warning",
                    message=f"Strategy '{strategy.name}' failed and was skipped",
                    suggestion="Results may be incomplete",
                ))
                continue
            profile = merge_profiles(profile, partial)

        profile = self.post_process(profile, normalized, client_type)
        confidence = ConfidenceCalculator.score(profile)

        fallback_heuristic = None
        if confidence.overall < self.config.confidence_threshold:
            outcome = self.fallback_parser.parse(normalized, profile)
            for name in outcome.failures:
                isolation_warnings.append(ParseWarning(
                    level="warning",
                    message=f"Fallback heuristic '{name}' failed and was skipped",
                    suggestion="Results may be incomplete",
                ))
            if outcome.heuristic:
                fallback_heuristic = outcome.heuristic
                profile = self.post_process(outcome.profile, normalized, client_type)
                confidence = ConfidenceCalculator.score(profile)
                logger.debug(f"FALLBACK applied '{fallback_heuristic}', overall={confidence.overall:.2f}")

        validation_type = client_type
        if validation_type is None:
            category = detect_category(normalized)
            validation_type = category.name if category else None
        validation = self.validator.validate(profile, structure.document_type, validation_type)

        result = ParseResult(
            data=profile,
            confidence=confidence,
            document_type=structure.document_type,
            validation=validation,
            warnings=self.generate_warnings(profile, confidence, validation, fallback_heuristic) + isolation_warnings,
            metadata=metadata,
        )

        if self.config.enable_caching and confidence.overall > self.cache.min_confidence:
            self.cache.store(normalized, result)
        if confidence.overall > LEARNING_CONFIDENCE:
            self.learn_from_extraction(profile, normalized)
        return result

    # ========================================================================
    # Post-processing
    # ========================================================================

    def post_process(self, profile: ClientProfile, text: str, client_type: Optional[str]) -> ClientProfile:
        processed = profile.model_copy(deep=True)
        processed.client_name = clean_client_name(processed.client_name)

        processed.products = dedupe(processed.products)
        processed.excluded_topics = dedupe(processed.excluded_topics)
        for tier in SOURCE_TIERS:
            setattr(processed.sources, tier, dedupe(getattr(processed.sources, tier)))
        processed.executives = _unique_by_name(processed.executives)
        processed.contacts = _unique_by_name(processed.contacts)

        client_profile = CLIENT_PROFILES.get(client_type or "")
        names = processed.competitor_names()
        if client_profile:
            names += [n for n in mentioned(text, list(client_profile.known_competitors)) if n not in names]
        names = [n for n in dedupe(names) if not self._is_client(n, processed.client_name)]
        by_name = {c.name: c for c in processed.competitors}
        processed.competitors = [
            (by_name.get(name) or Competitor(name=name)).model_copy(update={"priority": idx + 1})
            for idx, name in enumerate(names)
        ]

        if not processed.industry:
            if client_profile:
                processed.industry = client_profile.industry_default
            elif processed.client_name:
                processed.industry = infer_industry(processed.client_name, text)
        return processed

    @staticmethod
    def _is_client(name: str, client_name: str) -> bool:
        if not client_name:
            return False
        name, client = name.lower(), client_name.lower()
        return name == client or client.startswith(name + " ")

    # ========================================================================
    # Warnings
    # ========================================================================

    def generate_warnings(
        self,
        profile: ClientProfile,
        confidence: Confidence,
        validation: ValidationResult,
        fallback_heuristic: Optional[str] = None,
    ) -> List[ParseWarning]:
        warnings = []
        if not profile.client_name:
            warnings.append(ParseWarning(
                level="error",
                message="Client name could not be extracted",
                suggestion="Ensure the document contains client identification",
            ))
        if confidence.overall < self.config.confidence_threshold:
            warnings.append(ParseWarning(
                level="warning",
                message=f"Overall confidence ({round(confidence.overall * 100)}%) is below threshold",
                suggestion="Document may need manual review",
            ))
        if not profile.competitors:
            warnings.append(ParseWarning(
                level="info",
                message="No competitors were identified",
                suggestion="Add a competitive intelligence section if needed",
            ))
        if fallback_heuristic:
            warnings.append(ParseWarning(
                level="info",
                message=f"Fallback heuristic '{fallback_heuristic}' was applied",
                suggestion="Verify fields recovered by the fallback parser",
            ))
        for issue in validation.issues:
            if issue.field == "client_name" and not profile.client_name:
                continue
            warnings.append(ParseWarning(level=issue.level, message=issue.message, suggestion=issue.suggestion))
        return warnings

    # ========================================================================
    # Learning
    # ========================================================================

    @staticmethod
    def find_label_for_value(text: str, value: str) -> Optional[str]:
        """
        The 'Label:' immediately before a value's first occurrence, on the same line.

        Examples:
          ('Client: Acme Corp', 'Acme Corp')     -> 'Client'
          ('Acme Corp is great', 'Acme Corp')    -> None
        """
        if not value:
            return None
        idx = text.find(value)
        if idx <= 0:
            return None
        context = text[max(0, idx - LABEL_CONTEXT_WINDOW):idx].split("\n")[-1]
        m = LABEL_BEFORE_VALUE_RE.search(context)
        if m and m.group(1).strip():
            return m.group(1).strip()
        return None

    def learn_from_extraction(self, profile: ClientProfile, text: str) -> None:
        firsts = {
            "client_name": profile.client_name,
            "industry": profile.industry,
            "products": profile.products[0] if profile.products else "",
            "competitors": profile.competitors[0].name if profile.competitors else "",
            "excluded_topics": profile.excluded_topics[0] if profile.excluded_topics else "",
            "sources": next(iter(profile.sources.all_sources()), ""),
        }
        for field, value in firsts.items():
            label = self.find_label_for_value(text, value)
            if label:
                self.cache.record_pattern(field, label, value)


def parse_with_timeout(
    parser: ClientNotesParser,
    text: Union[str, bytes, None],
    metadata: MetadataInput = None,
    timeout: Optional[float] = None,
) -> ParseResult:
    """
    Run parser.parse on a worker thread and give up after timeout seconds.

    A timed-out parse yields an empty, zero-confidence result with an
    error-level warning. The worker is not interrupted.
    """
    if timeout is None:
        timeout = get_settings().parse_timeout_seconds
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notes-parse")
    try:
        future = executor.submit(parser.parse, text, metadata)
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning(f"Parse timed out after {timeout}s")
        return parser.empty_result(parser._coerce_metadata(metadata), f"Parsing timed out after {timeout} seconds")
    finally:
        executor.shutdown(wait=False)
