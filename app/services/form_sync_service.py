import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.exceptions import (
    FormNotFoundError,
    StoreFailureError,
    SubdomainConflictError,
)
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.schemas.draft import FormDraft
from app.schemas.form import FormOut

logger = logging.getLogger(__name__)

_FORM_COLUMNS = (
    "client_name",
    "subdomain",
    "score_threshold",
    "redirect_good_url",
    "redirect_bad_url",
    "is_active",
    "google_sheet_url",
)


class FormSyncService:
    """Reconcile an edited draft with the stored form tree.

    Saving is a *full subtree replace*, not a diff: for an existing form
    every stored question (and, through the FK cascade, every option) is
    deleted and the draft's questions are inserted fresh.  A new form is
    inserted first to obtain its id, then its subtree.

    All of it happens in one database transaction.  Concurrent runner
    reads see either the old subtree or the new one, never an empty or
    half-written one, and any failure rolls the whole save back.

    Two saves of the same form racing each other are last-write-wins;
    nothing here serializes them.
    """

    async def save(
        self,
        draft: FormDraft,
        owner_id: UUID,
        form_repo: FormRepository,
        question_repo: QuestionRepository,
    ) -> FormOut:
        """Persist *draft* for *owner_id* and return the stored tree.

        Raises:
            FormNotFoundError: The draft targets a form this owner does not have.
            SubdomainConflictError: Another form already uses the subdomain.
            StoreFailureError: Any other store error (rolled back).
        """
        try:
            form_id = await self._write(draft, owner_id, form_repo, question_repo)
            await form_repo.commit()
        except (FormNotFoundError, SubdomainConflictError):
            await form_repo.rollback()
            raise
        except IntegrityError as exc:
            await form_repo.rollback()
            logger.warning("Integrity error saving form %s: %s", draft.form_id, exc)
            raise SubdomainConflictError(
                f"Subdomain '{draft.subdomain}' is already in use"
            ) from exc
        except SQLAlchemyError as exc:
            await form_repo.rollback()
            logger.error("Failed to save form %s: %s", draft.form_id, exc)
            raise StoreFailureError("Saving the form failed; nothing was changed") from exc

        try:
            stored = await form_repo.get_owned_with_questions(form_id, owner_id)
        except SQLAlchemyError as exc:
            logger.error("Saved form %s but could not read it back: %s", form_id, exc)
            raise StoreFailureError("The form was saved but could not be reloaded") from exc

        logger.info(
            "Saved form %s (%d question(s)) for owner %s",
            form_id,
            len(stored.questions),
            owner_id,
        )
        return FormOut.model_validate(stored)

    async def _write(
        self,
        draft: FormDraft,
        owner_id: UUID,
        form_repo: FormRepository,
        question_repo: QuestionRepository,
    ) -> UUID:
        """Stage the form row and its subtree inside the open transaction."""
        if await form_repo.subdomain_taken(draft.subdomain, exclude_form_id=draft.form_id):
            raise SubdomainConflictError(
                f"Subdomain '{draft.subdomain}' is already in use"
            )

        values = {column: getattr(draft, column) for column in _FORM_COLUMNS}

        if draft.form_id is None:
            form = await form_repo.create(owner_id=owner_id, **values)
            await form_repo.flush()
        else:
            form = await form_repo.get_owned(draft.form_id, owner_id)
            if form is None:
                raise FormNotFoundError(f"Form {draft.form_id} not found")
            for column, value in values.items():
                setattr(form, column, value)
            removed = await question_repo.delete_for_form(form.id)
            logger.debug("Replacing %d stored question(s) of form %s", removed, form.id)

        for question in draft.questions:
            await question_repo.create(
                form_id=form.id,
                question_text=question.question_text,
                question_type=question.question_type.value,
                order_index=question.order_index,
                options=[
                    {"option_text": opt.option_text, "points": opt.points}
                    for opt in question.answer_options
                ],
            )
        await question_repo.flush()
        return form.id
