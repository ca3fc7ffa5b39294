import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from redis.asyncio import Redis

from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – sessions and dashboard cache disabled")
        return None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_form_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.form_repository import FormRepository

    return FormRepository(db)


async def get_question_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.question_repository import QuestionRepository

    return QuestionRepository(db)


async def get_submission_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.submission_repository import SubmissionRepository

    return SubmissionRepository(db)


# ---------------------------------------------------------------------------
# Cache service factory
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=redis_client)


async def get_runner_sessions(
    cache=Depends(get_cache_service),
):
    from app.services.session_store import SessionStore

    return SessionStore(cache, namespace="runner", ttl=settings.RUNNER_SESSION_TTL)


async def get_draft_sessions(
    cache=Depends(get_cache_service),
):
    from app.services.session_store import SessionStore

    return SessionStore(cache, namespace="draft", ttl=settings.DRAFT_SESSION_TTL)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_scoring_engine():
    from app.services.scoring_engine import QualificationScoringEngine

    return QualificationScoringEngine()


async def get_form_sync_service():
    from app.services.form_sync_service import FormSyncService

    return FormSyncService()


async def get_form_service(
    sync_service=Depends(get_form_sync_service),
):
    """Build a :class:`FormService` with an injected sync service."""
    from app.services.form_service import FormService

    return FormService(sync_service=sync_service)


async def get_draft_session_service(
    sessions=Depends(get_draft_sessions),
    sync_service=Depends(get_form_sync_service),
    form_service=Depends(get_form_service),
):
    """Build a :class:`DraftSessionService` with injected dependencies."""
    from app.services.draft_session_service import DraftSessionService

    return DraftSessionService(
        sessions=sessions,
        sync_service=sync_service,
        form_service=form_service,
    )


async def get_public_form_service(
    sessions=Depends(get_runner_sessions),
    scoring_engine=Depends(get_scoring_engine),
):
    """Build a :class:`PublicFormService` with injected dependencies."""
    from app.services.public_form_service import PublicFormService

    return PublicFormService(sessions=sessions, scoring_engine=scoring_engine)


async def get_dashboard_service(
    cache=Depends(get_cache_service),
):
    """Build a :class:`DashboardService`; each read opens its own session."""
    from app.services.dashboard_service import DashboardService

    return DashboardService(session_factory=AsyncSessionLocal, cache=cache)


async def get_sheets_client():
    from app.services.sheets_client import GoogleSheetsClient

    return GoogleSheetsClient.from_settings()


async def get_submission_forwarder(
    sheets_client=Depends(get_sheets_client),
):
    """Build a :class:`SubmissionForwarder` that outlives the request session."""
    from app.services.submission_forwarder import SubmissionForwarder

    return SubmissionForwarder(
        session_factory=AsyncSessionLocal, sheets_client=sheets_client
    )
