import json
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis

from app.core.exceptions import SessionStoreUnavailableError

logger = logging.getLogger(__name__)


class CacheService:
    """Thin wrapper around an async Redis client.

    If *redis_client* is ``None`` (Redis unavailable), every operation
    degrades to a no-op; callers never need to check for ``None``.

    Runner and draft sessions live only here, so their callers pass
    ``strict=True``: a missing client or a failed command then raises
    :class:`SessionStoreUnavailableError` instead of being skipped.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    # ------------------------------------------------------------------
    # Core get / set / delete
    # ------------------------------------------------------------------

    async def get(self, key: str, *, strict: bool = False) -> Optional[str]:
        """Return the raw string value for *key*, or ``None``."""
        if self._redis is None:
            return self._unavailable(strict)
        try:
            return await self._redis.get(key)
        except Exception as exc:
            logger.warning("Redis GET failed for key %s", key)
            if strict:
                raise SessionStoreUnavailableError() from exc
            return None

    async def set(
        self, key: str, value: str, ttl: int | None = None, *, strict: bool = False
    ) -> None:
        """Store a raw string value, optionally with a TTL (seconds)."""
        if self._redis is None:
            return self._unavailable(strict)
        try:
            if ttl:
                await self._redis.setex(key, ttl, value)
            else:
                await self._redis.set(key, value)
        except Exception as exc:
            logger.warning("Redis SET failed for key %s", key)
            if strict:
                raise SessionStoreUnavailableError() from exc

    async def add(
        self, key: str, value: str, ttl: int | None = None, *, strict: bool = False
    ) -> bool:
        """Store *value* only if *key* is absent (``SET NX``); ``True`` if stored."""
        if self._redis is None:
            self._unavailable(strict)
            return False
        try:
            return bool(await self._redis.set(key, value, ex=ttl, nx=True))
        except Exception as exc:
            logger.warning("Redis SET NX failed for key %s", key)
            if strict:
                raise SessionStoreUnavailableError() from exc
            return False

    async def delete(self, key: str, *, strict: bool = False) -> None:
        """Remove *key* from the cache (best-effort unless *strict*)."""
        if self._redis is None:
            return self._unavailable(strict)
        try:
            await self._redis.delete(key)
        except Exception as exc:
            logger.warning("Redis DELETE failed for key %s", key)
            if strict:
                raise SessionStoreUnavailableError() from exc

    # ------------------------------------------------------------------
    # JSON helpers: store / retrieve Python dicts
    # ------------------------------------------------------------------

    async def get_json(
        self, key: str, *, strict: bool = False
    ) -> Optional[Dict[str, Any]]:
        """Deserialise a JSON-encoded value from Redis."""
        raw = await self.get(key, strict=strict)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Invalid JSON in cache key %s", key)
            return None

    async def set_json(
        self,
        key: str,
        data: Any,
        ttl: int | None = None,
        *,
        strict: bool = False,
    ) -> None:
        """Serialise *data* to JSON and store it in Redis."""
        try:
            payload = json.dumps(data, default=str)
        except (TypeError, ValueError):
            logger.warning("Failed to serialise data for cache key %s", key)
            if strict:
                raise
            return
        await self.set(key, payload, ttl=ttl, strict=strict)

    @staticmethod
    def _unavailable(strict: bool) -> None:
        if strict:
            raise SessionStoreUnavailableError()
        return None
