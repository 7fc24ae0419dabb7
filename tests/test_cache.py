"""
Tests for the parse cache and the learned-pattern store.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from notes_parser.core.cache import ParsingCache
from notes_parser.core.config import ConfigurationError
from notes_parser.core.schemas import ClientProfile, Confidence, ParseResult, ValidationResult


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_result(overall=0.95, client_name="Acme"):
    return ParseResult(
        data=ClientProfile(client_name=client_name),
        confidence=Confidence(overall=overall),
        document_type="brief",
        validation=ValidationResult(is_valid=True, score=1.0),
    )


class TestResultCache:
    def test_store_and_lookup(self):
        cache = ParsingCache()
        result = make_result()
        cache.store("Client: Acme", result)

        cached = cache.lookup("Client: Acme")
        assert cached == result
        assert cached is not result
        assert cache.lookup("Client: Other") is None

    def test_lookup_returns_independent_copies(self):
        cache = ParsingCache()
        cache.store("Client: Acme", make_result())
        cache.lookup("Client: Acme").data.products.append("Widget")
        assert cache.lookup("Client: Acme").data.products == []

    def test_low_confidence_results_are_not_returned(self):
        cache = ParsingCache()
        cache.store("a", make_result(overall=0.85))
        cache.store("b", make_result(overall=0.9))
        assert cache.lookup("a") is None
        assert cache.lookup("b") is None

    def test_min_confidence_is_configurable(self):
        cache = ParsingCache(min_confidence=0.8)
        cache.store("a", make_result(overall=0.85))
        assert cache.lookup("a") is not None

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = ParsingCache(clock=clock)
        cache.store("Client: Acme", make_result())

        clock.advance(hours=23)
        assert cache.lookup("Client: Acme") is not None
        clock.advance(hours=1, seconds=1)
        assert cache.lookup("Client: Acme") is None

    def test_oldest_entries_are_evicted(self):
        cache = ParsingCache(max_entries=10)
        for i in range(11):
            cache.store(f"text {i}", make_result())
            assert len(cache) <= 10
        assert len(cache) == 10
        assert cache.lookup("text 0") is None
        assert cache.lookup("text 1") is not None
        assert cache.lookup("text 10") is not None

    def test_default_eviction_removes_a_tenth(self):
        cache = ParsingCache()
        for i in range(101):
            cache.store(f"text {i}", make_result())
        assert len(cache) == 91

    def test_restoring_refreshes_position(self):
        cache = ParsingCache(max_entries=3)
        for text in ("a", "b", "c"):
            cache.store(text, make_result())
        cache.store("a", make_result())
        cache.store("d", make_result())
        assert cache.lookup("a") is not None
        assert cache.lookup("b") is None

    def test_concurrent_stores_respect_bound(self):
        cache = ParsingCache(max_entries=50)
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: cache.store(f"text {i}", make_result()), range(500)))
        assert len(cache) <= 50

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError):
            ParsingCache(max_entries=0)
        with pytest.raises(ConfigurationError):
            ParsingCache(ttl=timedelta(0))
        with pytest.raises(ConfigurationError):
            ParsingCache(min_confidence=1.5)


class TestLearnedPatterns:
    def test_record_and_count(self):
        cache = ParsingCache()
        cache.record_pattern("client_name", "Client", "Acme")
        cache.record_pattern("client_name", "client:", "Other")
        cache.record_pattern("client_name", "Account", "Acme")

        assert cache.learned_count("client_name", "CLIENT") == 2
        assert cache.learned_count("industry", "Client") == 0

        patterns = cache.suggested_patterns("client_name")
        assert [(p.label_text, p.occurrence_count) for p in patterns] == [("client", 2), ("account", 1)]

    def test_empty_values_are_not_recorded(self):
        cache = ParsingCache()
        cache.record_pattern("industry", "Industry", "")
        assert cache.suggested_patterns("industry") == []

    def test_timestamps_follow_clock(self):
        clock = FakeClock()
        cache = ParsingCache(clock=clock)
        cache.record_pattern("industry", "Industry", "Software")
        clock.advance(hours=2)
        cache.record_pattern("industry", "Industry", "Gaming")

        pattern = cache.suggested_patterns("industry")[0]
        assert pattern.last_seen - pattern.first_seen == timedelta(hours=2)
