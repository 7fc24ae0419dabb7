"""
Parse cache and learning store.

ParsingCache is the only state shared across parses. It memoizes results by
the SHA-256 of the normalized text and tallies which labels preceded values
that were extracted successfully. One instance is constructed by the host and
injected into the engine, so tests can use a fresh one with a fake clock.

Writes take a lock; reads do not. A stale read at worst costs a re-parse.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from notes_parser.core.config import ConfigurationError
from notes_parser.core.fuzzy import normalize_label
from notes_parser.core.schemas import LearnedPattern, ParseResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL = timedelta(hours=24)
DEFAULT_MIN_CONFIDENCE = 0.9
EVICTION_FRACTION = 0.1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    content_hash: str
    result: ParseResult
    confidence: float
    timestamp: datetime
    access_count: int = 0


class ParsingCache:
    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: timedelta = DEFAULT_TTL,
        clock: Optional[Callable[[], datetime]] = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ):
        if max_entries < 1:
            raise ConfigurationError(f"max_entries must be positive, got {max_entries}")
        if ttl <= timedelta(0):
            raise ConfigurationError(f"ttl must be positive, got {ttl}")
        if not 0.0 <= min_confidence <= 1.0:
            raise ConfigurationError(f"min_confidence must be within [0, 1], got {min_confidence}")
        self.max_entries = max_entries
        self.ttl = ttl
        self.min_confidence = min_confidence
        self.clock = clock or utc_now
        self._lock = threading.Lock()
        # Insertion order is storage order, so the first keys are the oldest
        self._entries: Dict[str, CacheEntry] = {}
        self._patterns: Dict[str, Dict[str, LearnedPattern]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def content_hash(normalized_text: str) -> str:
        return hashlib.sha256(normalized_text.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------------
    # Result cache
    # ------------------------------------------------------------------------

    def lookup(self, normalized_text: str) -> Optional[ParseResult]:
        """
        Cached result for this exact normalized text, or None.

        Only results stored with confidence above min_confidence and younger than the
        TTL are returned. The caller gets its own deep copy.
        """
        entry = self._entries.get(self.content_hash(normalized_text))
        if entry is None:
            return None
        if entry.confidence <= self.min_confidence:
            return None
        if self.clock() - entry.timestamp >= self.ttl:
            logger.debug(f"CACHE expired {entry.content_hash[:12]}")
            return None
        entry.access_count += 1
        logger.debug(f"CACHE hit {entry.content_hash[:12]} (access_count={entry.access_count})")
        return entry.result.model_copy(deep=True)

    def store(self, normalized_text: str, result: ParseResult) -> None:
        content_hash = self.content_hash(normalized_text)
        entry = CacheEntry(
            content_hash=content_hash,
            result=result.model_copy(deep=True),
            confidence=result.confidence.overall,
            timestamp=self.clock(),
        )
        with self._lock:
            self._entries.pop(content_hash, None)
            self._entries[content_hash] = entry
            if len(self._entries) > self.max_entries:
                self._evict_oldest()

    def _evict_oldest(self) -> None:
        count = max(1, int(self.max_entries * EVICTION_FRACTION))
        for content_hash in list(self._entries)[:count]:
            del self._entries[content_hash]
        logger.debug(f"CACHE evicted {count} entries, {len(self._entries)} remain")

    # ------------------------------------------------------------------------
    # Learning store
    # ------------------------------------------------------------------------

    def record_pattern(self, field: str, label: str, value) -> None:
        """Count one successful (field, label) pairing. Advisory only."""
        label_text = normalize_label(label)
        if not label_text or not value:
            return
        now = self.clock()
        with self._lock:
            patterns = self._patterns.setdefault(field, {})
            existing = patterns.get(label_text)
            if existing:
                existing.occurrence_count += 1
                existing.last_seen = now
            else:
                patterns[label_text] = LearnedPattern(field=field, label_text=label_text, first_seen=now, last_seen=now)

    def suggested_patterns(self, field: str) -> List[LearnedPattern]:
        """Learned labels for a field, most frequent first."""
        patterns = list(self._patterns.get(field, {}).values())
        patterns.sort(key=lambda p: (-p.occurrence_count, p.label_text))
        return [p.model_copy() for p in patterns]

    def learned_count(self, field: str, label: str) -> int:
        pattern = self._patterns.get(field, {}).get(normalize_label(label))
        return pattern.occurrence_count if pattern else 0
