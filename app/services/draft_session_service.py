import logging
from typing import Any, Callable, Optional, Union
from uuid import UUID

from app.core.exceptions import DraftItemNotFoundError, DraftNotFoundError
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.schemas.auth import OwnerContext
from app.schemas.draft import DraftSessionOut, DraftToken, FormDraft, PersistedId, parse_draft_id
from app.services.draft_editor import DraftEditor
from app.services.form_service import FormService
from app.services.form_sync_service import FormSyncService
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def parse_item_id(raw: str) -> Union[PersistedId, DraftToken]:
    """Path-parameter form of a question/option id (``<uuid>`` or ``draft:<token>``)."""
    try:
        return parse_draft_id(raw)
    except ValueError as exc:
        raise DraftItemNotFoundError(f"'{raw}' is not a draft item id") from exc


class DraftSessionService:
    """Server-side drafts: a :class:`DraftEditor` per owner session.

    Each request loads the draft from Redis, applies one edit and writes it
    back.  Only :meth:`save` reaches the relational store; discarding a
    draft or letting it expire leaves the stored form untouched.

    A draft belongs to the owner who opened it.  Anyone else gets
    :class:`DraftNotFoundError`, the same as for an expired draft.
    """

    def __init__(
        self,
        sessions: SessionStore,
        sync_service: FormSyncService,
        form_service: Optional[FormService] = None,
    ) -> None:
        self._sessions = sessions
        self._sync = sync_service
        self._forms = form_service or FormService(sync_service)

    async def open_draft(
        self,
        owner: OwnerContext,
        form_id: Optional[UUID],
        form_repo: FormRepository,
    ) -> DraftSessionOut:
        """Start a blank draft, or one over an owned stored form."""
        if form_id is None:
            editor = DraftEditor()
        else:
            editor = DraftEditor.from_form(
                await self._forms.get_form(form_id, owner.user_id, form_repo)
            )
        draft_id = await self._sessions.create(self._snapshot(owner, editor.draft))
        logger.info("Opened draft %s for owner %s (form %s)", draft_id, owner.user_id, form_id)
        return DraftSessionOut(draft_id=draft_id, draft=editor.draft)

    async def get_draft(self, draft_id: str, owner: OwnerContext) -> DraftSessionOut:
        editor = await self._load(draft_id, owner)
        return DraftSessionOut(draft_id=draft_id, draft=editor.draft)

    async def discard_draft(self, draft_id: str, owner: OwnerContext) -> None:
        await self._load(draft_id, owner)
        await self._sessions.delete(draft_id)
        logger.info("Discarded draft %s", draft_id)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    async def update_form(
        self, draft_id: str, owner: OwnerContext, field: str, value: Any
    ) -> DraftSessionOut:
        return await self._edit(draft_id, owner, lambda e: e.update_form(field, value))

    async def add_question(self, draft_id: str, owner: OwnerContext) -> DraftSessionOut:
        return await self._edit(draft_id, owner, lambda e: e.add_question())

    async def update_question(
        self,
        draft_id: str,
        owner: OwnerContext,
        question_id: str,
        field: str,
        value: Any,
    ) -> DraftSessionOut:
        qid = parse_item_id(question_id)
        return await self._edit(
            draft_id, owner, lambda e: e.update_question(qid, field, value)
        )

    async def delete_question(
        self, draft_id: str, owner: OwnerContext, question_id: str
    ) -> DraftSessionOut:
        qid = parse_item_id(question_id)
        return await self._edit(draft_id, owner, lambda e: e.delete_question(qid))

    async def add_option(
        self, draft_id: str, owner: OwnerContext, question_id: str
    ) -> DraftSessionOut:
        qid = parse_item_id(question_id)
        return await self._edit(draft_id, owner, lambda e: e.add_option(qid))

    async def update_option(
        self,
        draft_id: str,
        owner: OwnerContext,
        question_id: str,
        option_id: str,
        field: str,
        value: Any,
    ) -> DraftSessionOut:
        qid, oid = parse_item_id(question_id), parse_item_id(option_id)
        return await self._edit(
            draft_id, owner, lambda e: e.update_option(qid, oid, field, value)
        )

    async def delete_option(
        self, draft_id: str, owner: OwnerContext, question_id: str, option_id: str
    ) -> DraftSessionOut:
        qid, oid = parse_item_id(question_id), parse_item_id(option_id)
        return await self._edit(draft_id, owner, lambda e: e.delete_option(qid, oid))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save_draft(
        self,
        draft_id: str,
        owner: OwnerContext,
        form_repo: FormRepository,
        question_repo: QuestionRepository,
    ) -> DraftSessionOut:
        """Persist the draft; the session then holds the stored tree.

        On any failure the session keeps the draft exactly as it was.

        Raises:
            InvalidFormDataError: The draft does not validate.
            SubdomainConflictError: Another form already uses the subdomain.
            StoreFailureError: The write failed and was rolled back.
        """
        editor = await self._load(draft_id, owner)
        await editor.save(
            self._sync, owner.user_id, form_repo=form_repo, question_repo=question_repo
        )
        await self._sessions.save(draft_id, self._snapshot(owner, editor.draft))
        return DraftSessionOut(draft_id=draft_id, draft=editor.draft)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _edit(
        self,
        draft_id: str,
        owner: OwnerContext,
        apply: Callable[[DraftEditor], Any],
    ) -> DraftSessionOut:
        editor = await self._load(draft_id, owner)
        apply(editor)
        await self._sessions.save(draft_id, self._snapshot(owner, editor.draft))
        return DraftSessionOut(draft_id=draft_id, draft=editor.draft)

    async def _load(self, draft_id: str, owner: OwnerContext) -> DraftEditor:
        snapshot = await self._sessions.load(draft_id)
        if snapshot is None or snapshot.get("owner_id") != str(owner.user_id):
            raise DraftNotFoundError(f"Draft {draft_id} not found")
        return DraftEditor(FormDraft.model_validate(snapshot["draft"]))

    @staticmethod
    def _snapshot(owner: OwnerContext, draft: FormDraft) -> dict:
        return {"owner_id": str(owner.user_id), "draft": draft.model_dump(mode="json")}
