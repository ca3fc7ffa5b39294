from fastapi import APIRouter, Depends

from app.schemas.auth import OwnerContext
from app.schemas.common import SuccessResponse
from app.schemas.draft import DraftSessionOut, FieldUpdate, OpenDraftRequest
from app.services.draft_session_service import DraftSessionService
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.api.deps import (
    get_current_owner,
    get_draft_session_service,
    get_form_repo,
    get_question_repo,
)

router = APIRouter(prefix="/drafts", tags=["Drafts"])


@router.post("", response_model=DraftSessionOut, status_code=201)
async def open_draft(
    request_body: OpenDraftRequest,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
    form_repo: FormRepository = Depends(get_form_repo),
) -> DraftSessionOut:
    """Open a draft over an existing form, or a blank one without ``form_id``."""
    return await service.open_draft(owner, request_body.form_id, form_repo)


@router.get("/{draft_id}", response_model=DraftSessionOut)
async def get_draft(
    draft_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.get_draft(draft_id, owner)


@router.delete("/{draft_id}", response_model=SuccessResponse)
async def discard_draft(
    draft_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> SuccessResponse:
    """Throw the draft away; the stored form is not touched."""
    await service.discard_draft(draft_id, owner)
    return SuccessResponse()


@router.patch("/{draft_id}", response_model=DraftSessionOut)
async def update_form_field(
    draft_id: str,
    update: FieldUpdate,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.update_form(draft_id, owner, update.field, update.value)


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@router.post("/{draft_id}/questions", response_model=DraftSessionOut, status_code=201)
async def add_question(
    draft_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.add_question(draft_id, owner)


@router.patch("/{draft_id}/questions/{question_id}", response_model=DraftSessionOut)
async def update_question(
    draft_id: str,
    question_id: str,
    update: FieldUpdate,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.update_question(
        draft_id, owner, question_id, update.field, update.value
    )


@router.delete("/{draft_id}/questions/{question_id}", response_model=DraftSessionOut)
async def delete_question(
    draft_id: str,
    question_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.delete_question(draft_id, owner, question_id)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@router.post(
    "/{draft_id}/questions/{question_id}/options",
    response_model=DraftSessionOut,
    status_code=201,
)
async def add_option(
    draft_id: str,
    question_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.add_option(draft_id, owner, question_id)


@router.patch(
    "/{draft_id}/questions/{question_id}/options/{option_id}",
    response_model=DraftSessionOut,
)
async def update_option(
    draft_id: str,
    question_id: str,
    option_id: str,
    update: FieldUpdate,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.update_option(
        draft_id, owner, question_id, option_id, update.field, update.value
    )


@router.delete(
    "/{draft_id}/questions/{question_id}/options/{option_id}",
    response_model=DraftSessionOut,
)
async def delete_option(
    draft_id: str,
    question_id: str,
    option_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
) -> DraftSessionOut:
    return await service.delete_option(draft_id, owner, question_id, option_id)


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------


@router.post("/{draft_id}/save", response_model=DraftSessionOut)
async def save_draft(
    draft_id: str,
    owner: OwnerContext = Depends(get_current_owner),
    service: DraftSessionService = Depends(get_draft_session_service),
    form_repo: FormRepository = Depends(get_form_repo),
    question_repo: QuestionRepository = Depends(get_question_repo),
) -> DraftSessionOut:
    """Validate and persist the draft.

    Business logic is delegated to :class:`DraftSessionService`; on any
    failure the draft stays exactly as it was.
    """
    return await service.save_draft(draft_id, owner, form_repo, question_repo)
