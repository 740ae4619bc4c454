"""Tests for the best-effort response cache and its invalidation policy."""
import json

import pytest

from app.core.cache import (
    ResponseCache,
    explore_cache_key,
    note_cache_key,
    note_index_key,
)
from tests.fakes import FailingRedis, FakeRedis, SlowRedis

pytestmark = pytest.mark.anyio


class TestKeys:
    def test_note_keys_are_per_viewer(self):
        assert note_cache_key(5, None) == "note:5:viewer:anonymous"
        assert note_cache_key(5, 12) == "note:5:viewer:12"
        assert note_index_key(5) == "note:5:viewers"

    def test_explore_key(self):
        assert explore_cache_key(None) == "explore:anonymous"
        assert explore_cache_key(3) == "explore:3"


class TestResponseCache:
    async def test_note_view_round_trip_with_ttl(self):
        redis = FakeRedis()
        cache = ResponseCache(redis, note_ttl=45)

        await cache.set_note_view(1, 7, {"title": "Midterm Review"})

        assert await cache.get_note_view(1, 7) == {"title": "Midterm Review"}
        assert await cache.get_note_view(1, None) is None
        assert redis.ttls["note:1:viewer:7"] == 45
        assert redis.sets["note:1:viewers"] == {"note:1:viewer:7"}

    async def test_invalidate_purges_every_viewer_variant(self):
        redis = FakeRedis()
        cache = ResponseCache(redis)
        for viewer in (None, 1, 2, 3):
            await cache.set_note_view(9, viewer, {"v": viewer})
        await cache.set_note_view(10, None, {"v": "other note"})

        await cache.invalidate_note(9, 1)

        for viewer in (None, 1, 2, 3):
            assert await cache.get_note_view(9, viewer) is None
        assert "note:9:viewers" not in redis.sets
        assert await cache.get_note_view(10, None) == {"v": "other note"}

    async def test_invalidate_without_index_still_purges_owner_and_anonymous(self):
        redis = FakeRedis()
        cache = ResponseCache(redis)
        redis.values[note_cache_key(4, None)] = json.dumps({"a": 1})
        redis.values[note_cache_key(4, 8)] = json.dumps({"a": 2})

        await cache.invalidate_note(4, 8)

        assert redis.values == {}

    async def test_explore_uses_short_ttl(self):
        redis = FakeRedis()
        cache = ResponseCache(redis, explore_ttl=30)

        await cache.set_explore(None, {"notes": []})

        assert redis.ttls["explore:anonymous"] == 30
        assert await cache.get_explore(None) == {"notes": []}

    async def test_disabled_cache_is_a_permanent_miss(self):
        cache = ResponseCache(None)

        await cache.set_note_view(1, None, {"x": 1})
        await cache.invalidate_note(1)

        assert cache.enabled is False
        assert await cache.get_note_view(1, None) is None

    async def test_failures_are_swallowed_as_misses(self, caplog):
        redis = FailingRedis()
        cache = ResponseCache(redis)

        await cache.set_note_view(1, None, {"x": 1})
        assert await cache.get_note_view(1, None) is None
        await cache.invalidate_note(1, 2)
        assert await cache.get_explore(3) is None

        assert redis.calls > 0
        assert "Cache" in caplog.text

    async def test_slow_cache_is_bounded_by_timeout(self):
        cache = ResponseCache(SlowRedis(), timeout=0.05)

        assert await cache.get_note_view(1, None) is None
        await cache.set_explore(None, {"notes": []})

    async def test_undecodable_entry_is_a_miss(self):
        redis = FakeRedis()
        redis.values["note:1:viewer:anonymous"] = "{not json"
        cache = ResponseCache(redis)

        assert await cache.get_note_view(1, None) is None
