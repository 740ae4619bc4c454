"""Best-effort response cache and its invalidation policy.

Every call into Redis is bounded by a timeout and never retried; any
failure is logged and reported to the caller as a miss, so a cache outage
degrades to reading the authoritative store.

Key layout:
    note:{note_id}:viewer:{user_id|anonymous}   projected single-note view
    note:{note_id}:viewers                      set of the keys above
    explore:{user_id|anonymous}                 combined explore feed
"""
import asyncio
import json
import logging
from typing import Any, Optional

from fastapi import Request

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


def viewer_tag(viewer_id: Optional[int]) -> str:
    return ANONYMOUS if viewer_id is None else str(viewer_id)


def note_cache_key(note_id: int, viewer_id: Optional[int]) -> str:
    return f"note:{note_id}:viewer:{viewer_tag(viewer_id)}"


def note_index_key(note_id: int) -> str:
    return f"note:{note_id}:viewers"


def explore_cache_key(viewer_id: Optional[int]) -> str:
    return f"explore:{viewer_tag(viewer_id)}"


class ResponseCache:
    """Thin wrapper around an async Redis client.

    ``client`` may be None, in which case every read misses and every
    write is a no-op.
    """

    def __init__(self, client: Any = None, timeout: float = 0.5, note_ttl: int = 60, explore_ttl: int = 30):
        self.client = client
        self.timeout = timeout
        self.note_ttl = note_ttl
        self.explore_ttl = explore_ttl

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _call(self, operation: str, coro) -> Any:
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cache {operation} timed out after {self.timeout}s")
        except Exception as e:
            logger.warning(f"Cache {operation} failed: {e}")
        return None

    async def get_json(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        raw = await self._call(f"read {key}", self.client.get(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        if not self.enabled:
            return
        await self._call(f"write {key}", self.client.setex(key, ttl, json.dumps(value)))

    async def delete(self, *keys: str) -> None:
        if not self.enabled or not keys:
            return
        await self._call("delete", self.client.delete(*keys))

    # Single-note views

    async def get_note_view(self, note_id: int, viewer_id: Optional[int]) -> Optional[dict]:
        return await self.get_json(note_cache_key(note_id, viewer_id))

    async def set_note_view(self, note_id: int, viewer_id: Optional[int], payload: dict) -> None:
        """Store one viewer's projection and record its key in the note's index."""
        if not self.enabled:
            return
        key = note_cache_key(note_id, viewer_id)
        index = note_index_key(note_id)
        await self.set_json(key, payload, self.note_ttl)
        await self._call(f"index {index}", self._index(index, key))

    async def _index(self, index: str, key: str) -> None:
        await self.client.sadd(index, key)
        # The index outlives its members by one TTL so no member is orphaned
        await self.client.expire(index, self.note_ttl * 2)

    async def invalidate_note(self, note_id: int, *viewer_ids: Optional[int]) -> None:
        """Purge every cached viewer variant of a note.

        The owner and anonymous variants are always purged by name, in case
        the index itself was lost; any other viewer keys come from the index.
        """
        if not self.enabled:
            return
        index = note_index_key(note_id)
        members = await self._call(f"read {index}", self.client.smembers(index)) or set()
        keys = set(members)
        keys.add(note_cache_key(note_id, None))
        keys.update(note_cache_key(note_id, viewer_id) for viewer_id in viewer_ids)
        keys.add(index)
        await self.delete(*sorted(keys))

    async def invalidate_notes(self, note_ids, *viewer_ids: Optional[int]) -> None:
        for note_id in note_ids:
            await self.invalidate_note(note_id, *viewer_ids)

    async def invalidate_viewer(self, note_id: int, viewer_id: Optional[int]) -> None:
        await self.delete(note_cache_key(note_id, viewer_id))

    # Explore feed: TTL only, no explicit invalidation

    async def get_explore(self, viewer_id: Optional[int]) -> Optional[dict]:
        return await self.get_json(explore_cache_key(viewer_id))

    async def set_explore(self, viewer_id: Optional[int], payload: dict) -> None:
        await self.set_json(explore_cache_key(viewer_id), payload, self.explore_ttl)


def get_cache(request: Request) -> ResponseCache:
    return request.app.state.cache
