import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from app.core.cache import CacheService
from app.core.exceptions import (
    AnswerRequiredError,
    FormNotFoundError,
    InvalidAnswerError,
    RunnerSessionNotFoundError,
    RunnerStateError,
    SessionStoreUnavailableError,
    StoreFailureError,
)
from app.schemas.common import Outcome, RunnerStatus
from app.schemas.runner import OneShotSubmission
from app.services.public_form_service import PublicFormService
from app.services.session_store import SessionStore
from tests.factories import (
    BAD_URL,
    FORM_ID,
    GOOD_URL,
    OPT_A,
    OPT_B,
    OPT_C,
    OPT_D,
    Q1_ID,
    Q2_ID,
    build_demo_form,
)


@pytest.fixture
def sessions(mock_cache) -> SessionStore:
    return SessionStore(mock_cache, namespace="runner", ttl=3600)


@pytest.fixture
def service(sessions) -> PublicFormService:
    return PublicFormService(sessions=sessions)


@pytest.fixture
def form_repo(demo_form) -> AsyncMock:
    repo = AsyncMock()
    repo.get_active_by_subdomain = AsyncMock(return_value=demo_form)
    return repo


@pytest.fixture
def submission_repo() -> AsyncMock:
    repo = AsyncMock()

    async def _create(**kwargs):
        return MagicMock(**kwargs)

    repo.create = AsyncMock(side_effect=_create)
    return repo


class TestStartSession:
    @pytest.mark.asyncio
    async def test_opens_session_and_captures_utm(self, service, sessions, form_repo):
        view = await service.start_session(
            "acme", "utm_source=google&utm_source=bing&x=1", form_repo
        )

        assert view.status == RunnerStatus.active
        assert view.session_id
        assert view.current_question.id == Q1_ID
        snapshot = await sessions.load(view.session_id)
        assert snapshot["utm_params"] == {"utm_source": "google"}

    @pytest.mark.asyncio
    async def test_unknown_subdomain_raises_not_found(self, service, form_repo):
        form_repo.get_active_by_subdomain = AsyncMock(return_value=None)

        with pytest.raises(FormNotFoundError):
            await service.start_session("nope", None, form_repo)

    @pytest.mark.asyncio
    async def test_empty_form_returns_view_without_session(self, service, form_repo, mock_redis):
        form_repo.get_active_by_subdomain = AsyncMock(
            return_value=build_demo_form(questions=[])
        )

        view = await service.start_session("acme", None, form_repo)

        assert view.status == RunnerStatus.empty
        assert view.session_id is None
        mock_redis.setex.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_error_is_store_failure(self, service, form_repo):
        form_repo.get_active_by_subdomain = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("down"))
        )

        with pytest.raises(StoreFailureError):
            await service.start_session("acme", None, form_repo)

    @pytest.mark.asyncio
    async def test_redis_down_is_session_store_unavailable(self, form_repo):
        service = PublicFormService(
            SessionStore(CacheService(redis_client=None), namespace="runner", ttl=60)
        )

        with pytest.raises(SessionStoreUnavailableError):
            await service.start_session("acme", None, form_repo)


class TestSessionFlow:
    @pytest.mark.asyncio
    async def test_full_walk_stores_submission_then_redirects(
        self, service, form_repo, submission_repo
    ):
        view = await service.start_session("acme", "utm_medium=cpc", form_repo)
        sid = view.session_id

        await service.select_option(sid, OPT_A)
        view, record = await service.advance(sid, submission_repo)
        assert view.current_question.id == Q2_ID
        assert record is None

        await service.select_option(sid, OPT_C)
        view, record = await service.advance(sid, submission_repo)

        assert view.status == RunnerStatus.completed
        assert view.outcome == Outcome.qualified
        assert view.redirect_url == GOOD_URL
        kwargs = submission_repo.create.await_args.kwargs
        assert kwargs["form_id"] == FORM_ID
        assert kwargs["calculated_score"] == 70
        assert kwargs["submitted_data"] == {"Budget?": "A", "Timeline?": "C"}
        assert kwargs["utm_params"] == {"utm_medium": "cpc"}
        submission_repo.commit.assert_awaited_once()
        assert record.calculated_score == 70

    @pytest.mark.asyncio
    async def test_advance_without_answer(self, service, form_repo, submission_repo):
        view = await service.start_session("acme", None, form_repo)

        with pytest.raises(AnswerRequiredError):
            await service.advance(view.session_id, submission_repo)

    @pytest.mark.asyncio
    async def test_foreign_option_rejected(self, service, form_repo):
        view = await service.start_session("acme", None, form_repo)

        with pytest.raises(InvalidAnswerError):
            await service.select_option(view.session_id, OPT_D)

    @pytest.mark.asyncio
    async def test_back_restores_previous_answer(self, service, form_repo, submission_repo):
        view = await service.start_session("acme", None, form_repo)
        sid = view.session_id
        await service.select_option(sid, OPT_B)
        await service.advance(sid, submission_repo)

        view = await service.back(sid)

        assert view.current_index == 0
        assert view.selected_option_id == OPT_B

    @pytest.mark.asyncio
    async def test_failed_write_leaves_runner_retryable(
        self, service, form_repo, submission_repo
    ):
        view = await service.start_session("acme", None, form_repo)
        sid = view.session_id
        await service.select_option(sid, OPT_B)
        await service.advance(sid, submission_repo)
        await service.select_option(sid, OPT_D)
        submission_repo.commit = AsyncMock(
            side_effect=[OperationalError("INSERT", {}, Exception("down")), None]
        )

        with pytest.raises(StoreFailureError):
            await service.advance(sid, submission_repo)

        retry_view = await service.get_session(sid)
        assert retry_view.status == RunnerStatus.active
        assert retry_view.redirect_url is None
        submission_repo.rollback.assert_awaited_once()

        view, record = await service.advance(sid, submission_repo)
        assert view.status == RunnerStatus.completed
        assert view.redirect_url == BAD_URL

    @pytest.mark.asyncio
    async def test_completed_session_rejects_more_actions(
        self, service, form_repo, submission_repo
    ):
        view = await service.start_session("acme", None, form_repo)
        sid = view.session_id
        for option_id in (OPT_A, OPT_C):
            await service.select_option(sid, option_id)
            await service.advance(sid, submission_repo)

        with pytest.raises(RunnerStateError):
            await service.advance(sid, submission_repo)
        assert submission_repo.create.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_final_advance_stores_one_submission(
        self, service, form_repo, submission_repo
    ):
        view = await service.start_session("acme", None, form_repo)
        sid = view.session_id
        await service.select_option(sid, OPT_A)
        await service.advance(sid, submission_repo)
        await service.select_option(sid, OPT_C)

        async def _slow_create(**kwargs):
            await asyncio.sleep(0.01)
            return MagicMock(**kwargs)

        submission_repo.create = AsyncMock(side_effect=_slow_create)

        results = await asyncio.gather(
            service.advance(sid, submission_repo),
            service.advance(sid, submission_repo),
            return_exceptions=True,
        )

        assert submission_repo.create.await_count == 1
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], RunnerStateError)
        final = await service.get_session(sid)
        assert final.status == RunnerStatus.completed
        assert final.redirect_url == GOOD_URL

    @pytest.mark.asyncio
    async def test_unknown_session(self, service):
        with pytest.raises(RunnerSessionNotFoundError):
            await service.get_session("missing")


class TestSubmitAnswers:
    @pytest.mark.asyncio
    async def test_one_shot_qualified(self, service, form_repo, submission_repo):
        payload = OneShotSubmission(
            answers={Q1_ID: OPT_A, Q2_ID: OPT_C}, utm_params={"utm_term": "x"}
        )

        result, record = await service.submit_answers(
            "acme", payload, "utm_source=ads", form_repo, submission_repo
        )

        assert result.status == RunnerStatus.completed
        assert result.outcome == Outcome.qualified
        assert result.redirect_url == GOOD_URL
        assert record.utm_params == {"utm_source": "ads", "utm_term": "x"}

    @pytest.mark.asyncio
    async def test_one_shot_missing_answer(self, service, form_repo, submission_repo):
        payload = OneShotSubmission(answers={Q1_ID: OPT_A})

        with pytest.raises(AnswerRequiredError):
            await service.submit_answers("acme", payload, None, form_repo, submission_repo)
        submission_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_one_shot_empty_form(self, service, form_repo, submission_repo):
        form_repo.get_active_by_subdomain = AsyncMock(
            return_value=build_demo_form(questions=[])
        )

        with pytest.raises(RunnerStateError):
            await service.submit_answers(
                "acme", OneShotSubmission(), None, form_repo, submission_repo
            )

    @pytest.mark.asyncio
    async def test_one_shot_unknown_subdomain(self, service, form_repo, submission_repo):
        form_repo.get_active_by_subdomain = AsyncMock(return_value=None)

        with pytest.raises(FormNotFoundError):
            await service.submit_answers(
                "nope", OneShotSubmission(answers={uuid4(): uuid4()}), None,
                form_repo, submission_repo,
            )
