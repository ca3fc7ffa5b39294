import asyncio
import logging
from typing import Any, Awaitable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.cache import CacheService
from app.core.config import settings
from app.core.exceptions import StoreFailureError
from app.repositories.dashboard_repository import DashboardRepository
from app.schemas.dashboard import DashboardResponse, FormSummary, KpiOut

logger = logging.getLogger(__name__)


class DashboardService:
    """Builds the owner dashboard from two independent reads.

    The KPI read and the per-form count read run concurrently, each on
    its own session and each bounded by ``STORE_TIMEOUT_SECONDS``.  One
    failing never hides the other.  Every successful read is cached in
    Redis as the last good value, which stands in (flagged stale) when
    that read fails later.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: Optional[CacheService] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache: CacheService = cache or CacheService()
        self._timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

    async def get_dashboard(self, owner_id: UUID) -> DashboardResponse:
        kpis_result, forms_result = await asyncio.gather(
            self._bounded(self._read_kpis(owner_id)),
            self._bounded(self._read_forms(owner_id)),
            return_exceptions=True,
        )
        response = DashboardResponse()

        if isinstance(kpis_result, Exception):
            logger.error("Dashboard KPI read failed for %s: %r", owner_id, kpis_result)
            response.errors.append("Could not load dashboard KPIs")
            cached = await self._cache.get_json(self._kpis_key(owner_id))
            if cached is not None:
                response.kpis = KpiOut.model_validate(cached)
                response.kpis_stale = True
        elif isinstance(kpis_result, BaseException):
            raise kpis_result
        else:
            response.kpis = kpis_result
            await self._cache.set_json(
                self._kpis_key(owner_id),
                kpis_result.model_dump(mode="json"),
                ttl=settings.REDIS_CACHE_TTL,
            )

        if isinstance(forms_result, Exception):
            logger.error("Dashboard forms read failed for %s: %r", owner_id, forms_result)
            response.errors.append("Could not load forms")
            cached = await self._cache.get_json(self._forms_key(owner_id))
            if cached is not None:
                response.forms = [FormSummary.model_validate(f) for f in cached]
                response.forms_stale = True
        elif isinstance(forms_result, BaseException):
            raise forms_result
        else:
            response.forms = forms_result
            await self._cache.set_json(
                self._forms_key(owner_id),
                [f.model_dump(mode="json") for f in forms_result],
                ttl=settings.REDIS_CACHE_TTL,
            )

        return response

    async def list_forms(self, owner_id: UUID) -> List[FormSummary]:
        """Forms-with-counts read on its own; no stale fallback.

        Raises:
            StoreFailureError: The read failed or timed out.
        """
        try:
            return await self._bounded(self._read_forms(owner_id))
        except (SQLAlchemyError, asyncio.TimeoutError) as exc:
            logger.error("Forms read failed for %s: %r", owner_id, exc)
            raise StoreFailureError("Could not load forms, please retry") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _read_kpis(self, owner_id: UUID) -> KpiOut:
        async with self._session_factory() as session:
            row = await DashboardRepository(session).get_kpis(owner_id)
        return KpiOut(
            total_forms=row.total_forms or 0,
            active_forms=row.active_forms or 0,
            total_submissions=row.total_submissions or 0,
        )

    async def _read_forms(self, owner_id: UUID) -> List[FormSummary]:
        async with self._session_factory() as session:
            rows = await DashboardRepository(session).get_forms_with_submission_counts(
                owner_id
            )
        return [FormSummary.model_validate(row) for row in rows]

    async def _bounded(self, coro: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(coro, timeout=self._timeout)

    @staticmethod
    def _kpis_key(owner_id: UUID) -> str:
        return f"dashboard:kpis:{owner_id}"

    @staticmethod
    def _forms_key(owner_id: UUID) -> str:
        return f"dashboard:forms:{owner_id}"
