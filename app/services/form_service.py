import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import FormNotFoundError, StoreFailureError
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.schemas.form import FormOut, FormTreeIn
from app.services.draft_editor import DraftEditor
from app.services.form_sync_service import FormSyncService

logger = logging.getLogger(__name__)


class FormService:
    """Owner-scoped form operations that work on whole trees.

    Creating and replacing a form go through a throwaway
    :class:`DraftEditor`, so a full-tree request is validated and synced
    exactly like an interactively edited draft.
    """

    def __init__(self, sync_service: FormSyncService) -> None:
        self._sync = sync_service

    async def get_form(
        self, form_id: UUID, owner_id: UUID, form_repo: FormRepository
    ) -> FormOut:
        """Return an owned form with its ordered tree.

        Raises:
            FormNotFoundError: No such form for this owner.
            StoreFailureError: The read failed.
        """
        try:
            form = await form_repo.get_owned_with_questions(form_id, owner_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to load form %s: %s", form_id, exc)
            raise StoreFailureError("Could not load the form, please retry") from exc
        if form is None:
            raise FormNotFoundError(f"Form {form_id} not found")
        return FormOut.model_validate(form)

    async def create_form(
        self,
        tree: FormTreeIn,
        owner_id: UUID,
        form_repo: FormRepository,
        question_repo: QuestionRepository,
    ) -> FormOut:
        editor = DraftEditor.from_tree(tree)
        return await editor.save(
            self._sync, owner_id, form_repo=form_repo, question_repo=question_repo
        )

    async def replace_form(
        self,
        form_id: UUID,
        tree: FormTreeIn,
        owner_id: UUID,
        form_repo: FormRepository,
        question_repo: QuestionRepository,
    ) -> FormOut:
        """Replace a stored form and its whole subtree with *tree*."""
        editor = DraftEditor.from_tree(tree, form_id=form_id)
        return await editor.save(
            self._sync, owner_id, form_repo=form_repo, question_repo=question_repo
        )

    async def delete_form(
        self, form_id: UUID, owner_id: UUID, form_repo: FormRepository
    ) -> None:
        """Delete an owned form; questions, options and submissions cascade.

        Raises:
            FormNotFoundError: No such form for this owner.
            StoreFailureError: The delete failed and was rolled back.
        """
        try:
            form = await form_repo.get_owned(form_id, owner_id)
            if form is None:
                raise FormNotFoundError(f"Form {form_id} not found")
            await form_repo.delete(form)
            await form_repo.commit()
        except SQLAlchemyError as exc:
            await form_repo.rollback()
            logger.error("Failed to delete form %s: %s", form_id, exc)
            raise StoreFailureError("Deleting the form failed; nothing was changed") from exc
        logger.info("Deleted form %s for owner %s", form_id, owner_id)
