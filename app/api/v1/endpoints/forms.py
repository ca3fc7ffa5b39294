from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from app.schemas.auth import OwnerContext
from app.schemas.common import SuccessResponse
from app.schemas.dashboard import FormSummary
from app.schemas.form import FormOut, FormTreeIn
from app.services.dashboard_service import DashboardService
from app.services.form_service import FormService
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.api.deps import (
    get_current_owner,
    get_dashboard_service,
    get_form_repo,
    get_form_service,
    get_question_repo,
)

router = APIRouter(prefix="/forms", tags=["Forms"])


@router.get("", response_model=List[FormSummary])
async def list_forms(
    owner: OwnerContext = Depends(get_current_owner),
    service: DashboardService = Depends(get_dashboard_service),
) -> List[FormSummary]:
    return await service.list_forms(owner.user_id)


@router.get("/{form_id}", response_model=FormOut)
async def get_form(
    form_id: UUID,
    owner: OwnerContext = Depends(get_current_owner),
    service: FormService = Depends(get_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
) -> FormOut:
    return await service.get_form(form_id, owner.user_id, form_repo)


@router.post("", response_model=FormOut, status_code=201)
async def create_form(
    tree: FormTreeIn,
    owner: OwnerContext = Depends(get_current_owner),
    service: FormService = Depends(get_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
    question_repo: QuestionRepository = Depends(get_question_repo),
) -> FormOut:
    """Create a form with its whole question tree in one save."""
    return await service.create_form(tree, owner.user_id, form_repo, question_repo)


@router.put("/{form_id}", response_model=FormOut)
async def replace_form(
    form_id: UUID,
    tree: FormTreeIn,
    owner: OwnerContext = Depends(get_current_owner),
    service: FormService = Depends(get_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
    question_repo: QuestionRepository = Depends(get_question_repo),
) -> FormOut:
    """Replace a form and its whole question tree.

    Stored questions and options are deleted and re-created, so their ids
    change on every replace.
    """
    return await service.replace_form(
        form_id, tree, owner.user_id, form_repo, question_repo
    )


@router.delete("/{form_id}", response_model=SuccessResponse)
async def delete_form(
    form_id: UUID,
    owner: OwnerContext = Depends(get_current_owner),
    service: FormService = Depends(get_form_service),
    form_repo: FormRepository = Depends(get_form_repo),
) -> SuccessResponse:
    await service.delete_form(form_id, owner.user_id, form_repo)
    return SuccessResponse()
