import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    AnswerRequiredError,
    FormNotFoundError,
    RunnerSessionNotFoundError,
    RunnerStateError,
    StoreFailureError,
)
from app.repositories.form_repository import FormRepository
from app.repositories.submission_repository import SubmissionRepository
from app.schemas.common import RunnerStatus
from app.schemas.form import FormOut
from app.schemas.runner import OneShotSubmission, RunnerView, SubmissionResult
from app.schemas.submission import SubmissionRecord
from app.services.questionnaire_runner import QuestionnaireRunner, capture_utm_params
from app.services.scoring_engine import QualificationScoringEngine
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

# Claimed once per runner session so a double submit stores one row
_SUBMIT_STEP = "submitting"


class PublicFormService:
    """Anonymous respondent flow on top of :class:`QuestionnaireRunner`.

    Runner state between requests lives in a :class:`SessionStore`; the
    only durable write is the Submission row, committed while the runner
    is ``submitting`` and before any redirect URL is handed out.

    Dependencies are injected via the constructor so the class remains
    stateless and easily testable.
    """

    def __init__(
        self,
        sessions: SessionStore,
        scoring_engine: Optional[QualificationScoringEngine] = None,
    ) -> None:
        self._sessions = sessions
        self._engine = scoring_engine or QualificationScoringEngine()

    # ------------------------------------------------------------------
    # Session-based flow (one question per request)
    # ------------------------------------------------------------------

    async def start_session(
        self,
        subdomain: str,
        query_string: Optional[str],
        form_repo: FormRepository,
    ) -> RunnerView:
        """Load the form behind *subdomain* and open a respondent session.

        UTM parameters are captured here, once, from *query_string*.

        Raises:
            FormNotFoundError: No active form has this subdomain.
        """
        runner = QuestionnaireRunner(
            utm_params=capture_utm_params(query_string),
            scoring_engine=self._engine,
        )
        status = runner.load(await self._load_form(subdomain, form_repo))

        if status == RunnerStatus.not_found:
            raise FormNotFoundError(f"No active form at '{subdomain}'")
        if status == RunnerStatus.empty:
            logger.info("Form at '%s' has no answerable questions", subdomain)
            return runner.view()

        session_id = await self._sessions.create(runner.to_snapshot())
        return runner.view(session_id)

    async def get_session(self, session_id: str) -> RunnerView:
        runner = await self._load_runner(session_id)
        return runner.view(session_id)

    async def select_option(self, session_id: str, option_id: UUID) -> RunnerView:
        runner = await self._load_runner(session_id)
        runner.select_option(option_id)
        await self._sessions.save(session_id, runner.to_snapshot())
        return runner.view(session_id)

    async def back(self, session_id: str) -> RunnerView:
        runner = await self._load_runner(session_id)
        runner.back()
        await self._sessions.save(session_id, runner.to_snapshot())
        return runner.view(session_id)

    async def advance(
        self, session_id: str, submission_repo: SubmissionRepository
    ) -> Tuple[RunnerView, Optional[SubmissionRecord]]:
        """Advance one question, or score and store the submission.

        Returns the new view and, when a submission was stored, its
        record (for the forwarder).

        Raises:
            RunnerStateError: Another request is already submitting this session.
            StoreFailureError: The submission could not be written; retryable.
        """
        runner = await self._load_runner(session_id)
        record: Optional[SubmissionRecord] = None

        if runner.advance() is not None:
            if not await self._sessions.claim(session_id, _SUBMIT_STEP):
                raise RunnerStateError("These answers are already being submitted")
            try:
                record = await self._record_submission(runner, submission_repo)
            except StoreFailureError:
                # runner is back to active on the last question; keep it that way
                await self._sessions.save(session_id, runner.to_snapshot())
                await self._sessions.release(session_id, _SUBMIT_STEP)
                raise
            runner.complete()

        await self._sessions.save(session_id, runner.to_snapshot())
        return runner.view(session_id), record

    # ------------------------------------------------------------------
    # One-shot flow (whole answer set in one request)
    # ------------------------------------------------------------------

    async def submit_answers(
        self,
        subdomain: str,
        payload: OneShotSubmission,
        query_string: Optional[str],
        form_repo: FormRepository,
        submission_repo: SubmissionRepository,
    ) -> Tuple[SubmissionResult, SubmissionRecord]:
        """Walk a fresh runner through *payload* and store the submission.

        The same no-skipping rule applies: every answerable question needs
        an answer that belongs to it.

        Raises:
            FormNotFoundError: No active form has this subdomain.
            RunnerStateError: The form has no answerable questions.
            AnswerRequiredError: A question has no answer in *payload*.
            InvalidAnswerError: An answer is not one of its question's options.
            StoreFailureError: The submission could not be written.
        """
        utm_params = capture_utm_params(query_string)
        utm_params.update(payload.utm_params)

        runner = QuestionnaireRunner(utm_params=utm_params, scoring_engine=self._engine)
        status = runner.load(await self._load_form(subdomain, form_repo))
        if status == RunnerStatus.not_found:
            raise FormNotFoundError(f"No active form at '{subdomain}'")
        if status == RunnerStatus.empty:
            raise RunnerStateError("This form has no questions yet")

        while runner.status == RunnerStatus.active:
            question = runner.current_question
            option_id = payload.answers.get(question.id)
            if option_id is None:
                raise AnswerRequiredError(
                    f"Question '{question.question_text}' must be answered"
                )
            runner.select_option(option_id)
            runner.advance()

        record = await self._record_submission(runner, submission_repo)
        redirect_url = runner.complete()
        return (
            SubmissionResult(
                status=runner.status,
                outcome=runner.outcome,
                redirect_url=redirect_url,
            ),
            record,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load_form(
        self, subdomain: str, form_repo: FormRepository
    ) -> Optional[FormOut]:
        try:
            form = await form_repo.get_active_by_subdomain(subdomain)
        except SQLAlchemyError as exc:
            logger.error("Failed to load form '%s': %s", subdomain, exc)
            raise StoreFailureError("Could not load the form, please retry") from exc
        return FormOut.model_validate(form) if form is not None else None

    async def _load_runner(self, session_id: str) -> QuestionnaireRunner:
        snapshot = await self._sessions.load(session_id)
        if snapshot is None:
            raise RunnerSessionNotFoundError()
        return QuestionnaireRunner.from_snapshot(snapshot, scoring_engine=self._engine)

    async def _record_submission(
        self, runner: QuestionnaireRunner, submission_repo: SubmissionRepository
    ) -> SubmissionRecord:
        """Durably write the Submission for a runner in ``submitting``.

        On failure the write is rolled back and the runner returns to
        ``active`` so the respondent can retry without a duplicate row.
        """
        result = runner.result
        try:
            submission = await submission_repo.create(
                id=uuid4(),
                form_id=runner.form.id,
                calculated_score=result.total_score,
                submitted_data=result.submitted_data,
                utm_params=runner.utm_params,
                created_at=datetime.now(timezone.utc),
            )
            await submission_repo.commit()
        except SQLAlchemyError as exc:
            await submission_repo.rollback()
            runner.abort_submission()
            logger.error(
                "Failed to store submission for form %s: %s", runner.form.id, exc
            )
            raise StoreFailureError(
                "Your answers could not be saved, please try again"
            ) from exc

        logger.info(
            "Stored submission %s for form %s (score=%d, outcome=%s)",
            submission.id,
            runner.form.id,
            result.total_score,
            result.outcome.value,
        )
        return SubmissionRecord.model_validate(submission)
