"""
Tests for the TTL result cache and store upserts.
"""

import pytest

from talentmatch.cache import ResultCache
from talentmatch.errors import StoreError


@pytest.fixture
def cache(store, clock):
    return ResultCache(store, clock=clock)


class TestTTL:
    """Test per-field freshness windows."""

    def test_fresh_score_hit(self, cache, clock):
        cache.put("v1", "c1", neural_rank_score=0.7)
        clock.advance(days=6)

        assert cache.get("v1", "c1", "neural_rank_score") == 0.7

    def test_score_stale_after_seven_days(self, cache, clock):
        cache.put("v1", "c1", llm_score=0.7)
        clock.advance(days=8)

        assert cache.get("v1", "c1", "llm_score") is None

    def test_explanation_lives_thirty_days(self, cache, clock):
        cache.put("v1", "c1", llm_score=0.7, explanation="Strong backend background")
        clock.advance(days=8)

        assert cache.get("v1", "c1", "llm_score") is None
        assert cache.get("v1", "c1", "explanation") == "Strong backend background"

        clock.advance(days=23)
        assert cache.get("v1", "c1", "explanation") is None

    def test_absent_entry_is_miss(self, cache):
        assert cache.get("v1", "c1", "final_score") is None

    def test_unknown_field_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.get("v1", "c1", "pre_score")
        with pytest.raises(ValueError):
            cache.put("v1", "c1", bogus=1)


class TestPerFieldUpsert:
    """Test that each write touches only its own columns."""

    def test_fields_written_independently(self, store, cache):
        cache.put("v1", "c1", neural_rank_score=0.4)
        cache.put("v1", "c1", llm_score=0.9, explanation="Good fit")

        entry = store.get_cache_entry("v1", "c1")
        assert entry.neural_rank_score == 0.4
        assert entry.llm_score == 0.9
        assert entry.explanation == "Good fit"
        assert entry.final_score is None

    def test_overwrite_refreshes_timestamp(self, store, cache, clock):
        cache.put("v1", "c1", neural_rank_score=0.4)
        clock.advance(days=5)
        cache.put("v1", "c1", neural_rank_score=0.5)

        entry = store.get_cache_entry("v1", "c1")
        assert entry.neural_rank_score == 0.5
        assert entry.neural_rank_updated_at == clock.now

    def test_get_many_returns_only_fresh(self, cache, clock):
        cache.put("v1", "old", llm_score=0.1)
        clock.advance(days=8)
        cache.put("v1", "new", llm_score=0.2)

        assert cache.get_many("v1", ["old", "new", "none"], "llm_score") == {"new": 0.2}


class TestFailures:
    """Test that cache failures never propagate."""

    def test_write_failure_swallowed(self, store, cache, monkeypatch):
        def boom(*args, **kwargs):
            raise StoreError("database is locked")

        monkeypatch.setattr(store, "upsert_cache", boom)

        assert cache.put("v1", "c1", final_score=0.5) is False

    def test_read_failure_is_miss(self, store, cache, monkeypatch):
        def boom(*args, **kwargs):
            raise StoreError("database is locked")

        monkeypatch.setattr(store, "get_cache_entries", boom)

        assert cache.get_many("v1", ["c1"], "llm_score") == {}
