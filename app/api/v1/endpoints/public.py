import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas.runner import AnswerSelection, OneShotSubmission, RunnerView, SubmissionResult
from app.schemas.submission import SubmissionRecord
from app.services.public_form_service import PublicFormService
from app.services.submission_forwarder import SubmissionForwarder
from app.repositories.form_repository import FormRepository
from app.repositories.submission_repository import SubmissionRepository
from app.api.deps import (
    get_form_repo,
    get_public_form_service,
    get_submission_forwarder,
    get_submission_repo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])


def _schedule_forward(
    background_tasks: BackgroundTasks,
    forwarder: SubmissionForwarder,
    record: Optional[SubmissionRecord],
) -> None:
    """Queue the Sheets forward to run after the response is sent."""
    if record is None or not settings.FORWARD_SUBMISSIONS_INLINE:
        return
    background_tasks.add_task(forwarder.forward_in_background, record)


@router.post("/forms/{subdomain}/sessions", response_model=RunnerView, status_code=201)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def start_session(
    request: Request,
    subdomain: str,
    service: PublicFormService = Depends(get_public_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
) -> RunnerView:
    """Start a respondent session; ``utm_*`` query parameters are captured here."""
    return await service.start_session(subdomain, request.url.query, form_repo)


@router.get("/sessions/{session_id}", response_model=RunnerView)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def get_session(
    request: Request,
    session_id: str,
    service: PublicFormService = Depends(get_public_form_service),
) -> RunnerView:
    return await service.get_session(session_id)


@router.put("/sessions/{session_id}/answer", response_model=RunnerView)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def select_option(
    request: Request,
    session_id: str,
    selection: AnswerSelection,
    service: PublicFormService = Depends(get_public_form_service),
) -> RunnerView:
    """Record (or overwrite) the answer to the current question."""
    return await service.select_option(session_id, selection.option_id)


@router.post("/sessions/{session_id}/advance", response_model=RunnerView)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def advance(
    request: Request,
    session_id: str,
    background_tasks: BackgroundTasks,
    service: PublicFormService = Depends(get_public_form_service),
    submission_repo: SubmissionRepository = Depends(get_submission_repo),
    forwarder: SubmissionForwarder = Depends(get_submission_forwarder),
) -> RunnerView:
    """Move to the next question, or score and store on the last one.

    The redirect URL is only present once the submission is stored.
    """
    view, record = await service.advance(session_id, submission_repo)
    _schedule_forward(background_tasks, forwarder, record)
    return view


@router.post("/sessions/{session_id}/back", response_model=RunnerView)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def back(
    request: Request,
    session_id: str,
    service: PublicFormService = Depends(get_public_form_service),
) -> RunnerView:
    return await service.back(session_id)


@router.post(
    "/forms/{subdomain}/submissions",
    response_model=SubmissionResult,
    status_code=201,
)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def submit_answers(
    request: Request,
    subdomain: str,
    payload: OneShotSubmission,
    background_tasks: BackgroundTasks,
    service: PublicFormService = Depends(get_public_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
    submission_repo: SubmissionRepository = Depends(get_submission_repo),
    forwarder: SubmissionForwarder = Depends(get_submission_forwarder),
) -> SubmissionResult:
    """Answer every question in one request (no server-side session)."""
    result, record = await service.submit_answers(
        subdomain,
        payload,
        request.url.query,
        form_repo,
        submission_repo,
    )
    _schedule_forward(background_tasks, forwarder, record)
    return result
