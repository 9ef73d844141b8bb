"""Cache-aside helpers shared by the entity services."""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import log_cache_event
from app.services.redis_client import CacheClient, cache_client


class EntityCache:
    """
    JSON snapshots of entities and entity lists kept in Redis with a TTL.

    Values passed in must already be JSON-compatible (for pydantic models,
    ``model_dump(mode="json")``).
    """

    def __init__(self, client: CacheClient | None = None, ttl_seconds: int | None = None):
        self.client = client if client is not None else cache_client
        self.ttl_seconds = ttl_seconds or settings.CACHE_TTL_SECONDS

    async def read(self, key: str) -> Any | None:
        raw = await self.client.get(key)
        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            # Unreadable snapshot: drop it and let the store answer
            log_cache_event("discard", key, error=str(e))
            await self.client.delete(key)
            return None

    async def write(self, key: str, payload: Any) -> bool:
        return await self.client.set_with_ttl(key, json.dumps(payload), self.ttl_seconds)

    async def invalidate(self, *keys: str) -> None:
        """Delete keys. Missing keys and an unreachable cache are both fine."""
        for key in dict.fromkeys(keys):
            deleted = await self.client.delete(key)
            log_cache_event("invalidate", key, deleted=deleted)

    async def read_through(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any | None:
        """
        Return the cached payload for ``key``, or load it from the store and
        cache it. A loader result of ``None`` means not found and is never cached.
        """
        cached = await self.read(key)
        if cached is not None:
            log_cache_event("hit", key)
            return cached

        log_cache_event("miss", key)
        payload = await loader()
        if payload is None:
            return None

        await self.write(key, payload)
        return payload
