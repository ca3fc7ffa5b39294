"""API-layer dependency functions.

Re-exports all dependency factories from ``app.dependencies`` and the
auth dependencies from ``app.core.security`` so that endpoint modules
only need to import from ``app.api.deps``.
"""

from app.core.security import get_current_owner, get_optional_owner
from app.dependencies import (
    # Repository factories
    get_form_repo,
    get_question_repo,
    get_submission_repo,
    # Cache / sessions
    get_cache_service,
    get_draft_sessions,
    get_runner_sessions,
    # Service factories
    get_scoring_engine,
    get_form_sync_service,
    get_form_service,
    get_draft_session_service,
    get_public_form_service,
    get_dashboard_service,
    get_sheets_client,
    get_submission_forwarder,
    # Redis
    get_redis_client,
)

__all__ = [
    "get_current_owner",
    "get_optional_owner",
    "get_form_repo",
    "get_question_repo",
    "get_submission_repo",
    "get_cache_service",
    "get_draft_sessions",
    "get_runner_sessions",
    "get_scoring_engine",
    "get_form_sync_service",
    "get_form_service",
    "get_draft_session_service",
    "get_public_form_service",
    "get_dashboard_service",
    "get_sheets_client",
    "get_submission_forwarder",
    "get_redis_client",
]
