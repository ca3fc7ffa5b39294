import logging
import secrets
from typing import Any, Dict, Optional

from app.core.cache import CacheService

logger = logging.getLogger(__name__)


class SessionStore:
    """Ephemeral JSON sessions in Redis under ``<namespace>:<session_id>``.

    Used for respondent runner sessions and owner draft sessions.  This is
    scratch state with a TTL, never the system of record: nothing here is
    visible to the relational store until a submission or a save commits.
    Every call is strict, so an unreachable Redis surfaces as
    ``SessionStoreUnavailableError`` rather than silently losing state.
    """

    def __init__(self, cache: CacheService, namespace: str, ttl: int) -> None:
        self._cache = cache
        self._namespace = namespace
        self._ttl = ttl

    def _key(self, session_id: str) -> str:
        return f"{self._namespace}:{session_id}"

    async def create(self, data: Dict[str, Any]) -> str:
        """Store *data* under a fresh unguessable id and return the id."""
        session_id = secrets.token_urlsafe(16)
        await self.save(session_id, data)
        logger.debug("Created %s session %s", self._namespace, session_id)
        return session_id

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self._cache.get_json(self._key(session_id), strict=True)

    async def save(self, session_id: str, data: Dict[str, Any]) -> None:
        """Overwrite a session and restart its TTL."""
        await self._cache.set_json(
            self._key(session_id), data, ttl=self._ttl, strict=True
        )

    async def delete(self, session_id: str) -> None:
        await self._cache.delete(self._key(session_id), strict=True)

    async def claim(self, session_id: str, step: str) -> bool:
        """Atomically mark *step* as taken for a session.

        Only the first caller gets ``True``; the mark lives as long as the
        session would.
        """
        return await self._cache.add(
            f"{self._key(session_id)}:{step}", "1", ttl=self._ttl, strict=True
        )

    async def release(self, session_id: str, step: str) -> None:
        await self._cache.delete(f"{self._key(session_id)}:{step}", strict=True)
