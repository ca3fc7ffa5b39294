import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from app.core.exceptions import (
    DraftItemNotFoundError,
    DraftNotFoundError,
    FormNotFoundError,
    InvalidFormDataError,
    StoreFailureError,
)
from app.schemas.auth import OwnerContext
from app.schemas.draft import DraftToken, PersistedId
from app.services.draft_session_service import DraftSessionService, parse_item_id
from app.services.session_store import SessionStore
from tests.factories import FORM_ID, OWNER_ID, Q1_ID, build_demo_form


@pytest.fixture
def owner() -> OwnerContext:
    return OwnerContext(user_id=OWNER_ID)


@pytest.fixture
def sync_service() -> AsyncMock:
    sync = AsyncMock()
    sync.save = AsyncMock(return_value=build_demo_form())
    return sync


@pytest.fixture
def service(mock_cache, sync_service) -> DraftSessionService:
    return DraftSessionService(
        sessions=SessionStore(mock_cache, namespace="draft", ttl=600),
        sync_service=sync_service,
    )


@pytest.fixture
def form_repo(demo_form) -> AsyncMock:
    repo = AsyncMock()
    repo.get_owned_with_questions = AsyncMock(return_value=demo_form)
    return repo


async def _fill_new_draft(service, owner, form_repo) -> str:
    opened = await service.open_draft(owner, None, form_repo)
    draft_id = opened.draft_id
    for field, value in (
        ("client_name", "Acme"),
        ("subdomain", "acme"),
        ("redirect_good_url", "https://example.com/yes"),
        ("redirect_bad_url", "https://example.com/no"),
    ):
        await service.update_form(draft_id, owner, field, value)
    out = await service.add_question(draft_id, owner)
    qid = str(out.draft.questions[0].id)
    await service.update_question(draft_id, owner, qid, "question_text", "Budget?")
    out = await service.add_option(draft_id, owner, qid)
    oid = str(out.draft.questions[0].answer_options[0].id)
    await service.update_option(draft_id, owner, qid, oid, "option_text", "High")
    return draft_id


class TestParseItemId:
    def test_token_and_uuid(self):
        assert parse_item_id("draft:x1") == DraftToken(value="x1")
        assert parse_item_id(str(Q1_ID)) == PersistedId(value=Q1_ID)

    def test_garbage(self):
        with pytest.raises(DraftItemNotFoundError):
            parse_item_id("??")


class TestOpenDraft:
    @pytest.mark.asyncio
    async def test_blank_draft(self, service, owner, form_repo):
        out = await service.open_draft(owner, None, form_repo)

        assert out.draft.form_id is None
        assert out.draft.questions == []
        form_repo.get_owned_with_questions.assert_not_called()

    @pytest.mark.asyncio
    async def test_draft_over_stored_form(self, service, owner, form_repo):
        out = await service.open_draft(owner, FORM_ID, form_repo)

        assert out.draft.form_id == FORM_ID
        assert out.draft.questions[0].id == PersistedId(value=Q1_ID)

    @pytest.mark.asyncio
    async def test_foreign_form(self, service, owner, form_repo):
        form_repo.get_owned_with_questions = AsyncMock(return_value=None)

        with pytest.raises(FormNotFoundError):
            await service.open_draft(owner, uuid4(), form_repo)


class TestEdits:
    @pytest.mark.asyncio
    async def test_edits_persist_between_requests(self, service, owner, form_repo):
        draft_id = await _fill_new_draft(service, owner, form_repo)

        out = await service.get_draft(draft_id, owner)

        assert out.draft.client_name == "Acme"
        question = out.draft.questions[0]
        assert isinstance(question.id, DraftToken)
        assert question.answer_options[0].option_text == "High"

    @pytest.mark.asyncio
    async def test_other_owner_cannot_see_draft(self, service, owner, form_repo):
        out = await service.open_draft(owner, None, form_repo)

        with pytest.raises(DraftNotFoundError):
            await service.get_draft(out.draft_id, OwnerContext(user_id=uuid4()))

    @pytest.mark.asyncio
    async def test_discard(self, service, owner, form_repo, sync_service):
        out = await service.open_draft(owner, FORM_ID, form_repo)

        await service.discard_draft(out.draft_id, owner)

        with pytest.raises(DraftNotFoundError):
            await service.get_draft(out.draft_id, owner)
        sync_service.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_question_by_persisted_id(self, service, owner, form_repo):
        out = await service.open_draft(owner, FORM_ID, form_repo)

        out = await service.delete_question(out.draft_id, owner, str(Q1_ID))

        assert len(out.draft.questions) == 1

    @pytest.mark.asyncio
    async def test_bad_edit_leaves_session_unchanged(self, service, owner, form_repo):
        out = await service.open_draft(owner, FORM_ID, form_repo)

        with pytest.raises(InvalidFormDataError):
            await service.update_form(out.draft_id, owner, "score_threshold", "high")

        again = await service.get_draft(out.draft_id, owner)
        assert again.draft.score_threshold == 60


class TestSave:
    @pytest.mark.asyncio
    async def test_save_stores_persisted_tree_in_session(
        self, service, owner, form_repo, sync_service
    ):
        draft_id = await _fill_new_draft(service, owner, form_repo)
        question_repo = AsyncMock()

        out = await service.save_draft(draft_id, owner, form_repo, question_repo)

        sent_draft, sent_owner = sync_service.save.await_args.args
        assert sent_owner == OWNER_ID
        assert sent_draft.client_name == "Acme"
        assert out.draft.form_id == FORM_ID
        reloaded = await service.get_draft(draft_id, owner)
        assert reloaded.draft.form_id == FORM_ID

    @pytest.mark.asyncio
    async def test_failed_save_keeps_session_draft(
        self, service, owner, form_repo, sync_service
    ):
        draft_id = await _fill_new_draft(service, owner, form_repo)
        sync_service.save = AsyncMock(side_effect=StoreFailureError())

        with pytest.raises(StoreFailureError):
            await service.save_draft(draft_id, owner, form_repo, AsyncMock())

        reloaded = await service.get_draft(draft_id, owner)
        assert reloaded.draft.form_id is None
        assert isinstance(reloaded.draft.questions[0].id, DraftToken)

    @pytest.mark.asyncio
    async def test_invalid_draft_is_not_saved(self, service, owner, form_repo, sync_service):
        out = await service.open_draft(owner, None, form_repo)

        with pytest.raises(InvalidFormDataError):
            await service.save_draft(out.draft_id, owner, form_repo, AsyncMock())
        sync_service.save.assert_not_called()
