import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl
from uuid import UUID

from app.core.constants import UTM_PARAM_PREFIX
from app.core.exceptions import (
    AnswerRequiredError,
    InvalidAnswerError,
    RunnerStateError,
)
from app.schemas.common import Outcome, RunnerStatus
from app.schemas.form import FormOut, PublicFormOut, QuestionOut
from app.schemas.runner import (
    OptionView,
    QuestionView,
    RunnerView,
    ScoreResult,
)
from app.services.scoring_engine import QualificationScoringEngine

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = frozenset(
    {RunnerStatus.completed, RunnerStatus.not_found, RunnerStatus.empty}
)

_STATUS_MESSAGES: Dict[RunnerStatus, str] = {
    RunnerStatus.not_found: "This form is unavailable.",
    RunnerStatus.empty: "This form has no questions yet.",
}


def capture_utm_params(query_string: Optional[str]) -> Dict[str, str]:
    """Extract ``utm_*`` parameters from a raw query string.

    The first value of a repeated key wins.  A malformed query string
    yields an empty mapping instead of failing the flow.
    """
    if not query_string:
        return {}
    try:
        pairs = parse_qsl(query_string, keep_blank_values=True, strict_parsing=True)
    except ValueError:
        logger.info("Ignoring malformed query string on form load")
        return {}

    utm_params: Dict[str, str] = {}
    for key, value in pairs:
        if key.startswith(UTM_PARAM_PREFIX) and key not in utm_params:
            utm_params[key] = value
    return utm_params


class QuestionnaireRunner:
    """Drive one respondent through a form, one question at a time.

    Status flow::

        loading ──load()──> active ──advance() on last──> submitting
           │                  ▲                               │
           │                  └──── abort_submission() ───────┤
           ├──> not_found                                     │
           └──> empty                        complete() ──> completed

    ``not_found``, ``empty`` and ``completed`` are terminal.  The runner
    never touches the store: whoever drives it writes the Submission
    while the runner is ``submitting`` and then calls :meth:`complete`
    (or :meth:`abort_submission` if the write failed).
    """

    def __init__(
        self,
        utm_params: Optional[Mapping[str, str]] = None,
        scoring_engine: Optional[QualificationScoringEngine] = None,
    ) -> None:
        self._engine = scoring_engine or QualificationScoringEngine()
        self.status: RunnerStatus = RunnerStatus.loading
        self.form: Optional[FormOut] = None
        self.questions: List[QuestionOut] = []
        self.current_index: int = 0
        self.answers: Dict[UUID, UUID] = {}
        self.utm_params: Dict[str, str] = dict(utm_params or {})
        self.result: Optional[ScoreResult] = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load(self, form: Optional[FormOut]) -> RunnerStatus:
        """Leave ``loading`` for ``active``, ``not_found`` or ``empty``."""
        self._require(RunnerStatus.loading)

        if form is None or not form.is_active:
            self.status = RunnerStatus.not_found
            return self.status

        self.form = form
        self.questions = self._arrange(form)
        self.status = RunnerStatus.active if self.questions else RunnerStatus.empty
        return self.status

    def select_option(self, option_id: UUID) -> None:
        """Record the respondent's choice for the current question."""
        self._require(RunnerStatus.active)
        question = self.current_question
        if not any(opt.id == option_id for opt in question.answer_options):
            raise InvalidAnswerError(
                f"Option {option_id} does not belong to question {question.id}"
            )
        self.answers[question.id] = option_id

    def advance(self) -> Optional[ScoreResult]:
        """Move to the next question, or start submission on the last one.

        Returns the :class:`ScoreResult` when submission starts, ``None``
        otherwise.
        """
        self._require(RunnerStatus.active)
        if not self.can_advance:
            raise AnswerRequiredError()

        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            return None

        self.status = RunnerStatus.submitting
        self.result = self._engine.score(self.form, self.answers)
        return self.result

    def back(self) -> None:
        """Return to the previous question; recorded answers are kept."""
        self._require(RunnerStatus.active)
        if self.current_index == 0:
            raise RunnerStateError("Already at the first question")
        self.current_index -= 1

    def complete(self) -> str:
        """Finish after the Submission was stored; returns the redirect URL."""
        self._require(RunnerStatus.submitting)
        self.status = RunnerStatus.completed
        return self.redirect_url

    def abort_submission(self) -> None:
        """Go back to ``active`` on the last question after a failed write."""
        self._require(RunnerStatus.submitting)
        self.status = RunnerStatus.active
        self.result = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL_STATUSES

    @property
    def current_question(self) -> Optional[QuestionOut]:
        if self.status != RunnerStatus.active:
            return None
        return self.questions[self.current_index]

    @property
    def can_advance(self) -> bool:
        question = self.current_question
        return question is not None and question.id in self.answers

    @property
    def outcome(self) -> Optional[Outcome]:
        if self.status != RunnerStatus.completed or self.result is None:
            return None
        return self.result.outcome

    @property
    def redirect_url(self) -> Optional[str]:
        if self.result is None or self.form is None:
            return None
        if self.status not in (RunnerStatus.submitting, RunnerStatus.completed):
            return None
        if self.result.outcome == Outcome.qualified:
            return self.form.redirect_good_url
        return self.form.redirect_bad_url

    def view(self, session_id: Optional[str] = None) -> RunnerView:
        """Respondent-facing snapshot; option points are never exposed."""
        question = self.current_question
        question_view = None
        if question is not None:
            question_view = QuestionView(
                id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                options=[
                    OptionView(id=opt.id, option_text=opt.option_text)
                    for opt in question.answer_options
                ],
            )

        completed = self.status == RunnerStatus.completed
        return RunnerView(
            session_id=session_id,
            status=self.status,
            form=PublicFormOut.model_validate(self.form) if self.form else None,
            current_index=self.current_index,
            total_questions=len(self.questions),
            current_question=question_view,
            selected_option_id=self.answers.get(question.id) if question else None,
            can_advance=self.can_advance,
            can_go_back=question is not None and self.current_index > 0,
            outcome=self.outcome,
            redirect_url=self.redirect_url if completed else None,
            message=_STATUS_MESSAGES.get(self.status),
        )

    # ------------------------------------------------------------------
    # Session persistence (ephemeral; see SessionStore)
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "form": self.form.model_dump(mode="json") if self.form else None,
            "current_index": self.current_index,
            "answers": {str(q): str(o) for q, o in self.answers.items()},
            "utm_params": self.utm_params,
            "result": self.result.model_dump(mode="json") if self.result else None,
        }

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Any],
        scoring_engine: Optional[QualificationScoringEngine] = None,
    ) -> "QuestionnaireRunner":
        runner = cls(utm_params=data.get("utm_params"), scoring_engine=scoring_engine)
        if data.get("form") is not None:
            runner.form = FormOut.model_validate(data["form"])
            runner.questions = cls._arrange(runner.form)
        runner.status = RunnerStatus(data["status"])
        runner.current_index = int(data.get("current_index", 0))
        runner.answers = {
            UUID(q): UUID(o) for q, o in (data.get("answers") or {}).items()
        }
        if data.get("result") is not None:
            runner.result = ScoreResult.model_validate(data["result"])
        return runner

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _arrange(form: FormOut) -> List[QuestionOut]:
        """Presentation order: by ``order_index``, ties in stored order.

        Questions without options can never be answered (no skipping), so
        they are left out of the walk.
        """
        answerable = [q for q in form.questions if q.answer_options]
        if len(answerable) != len(form.questions):
            logger.warning(
                "Form %s has %d question(s) without options; skipping them",
                form.id,
                len(form.questions) - len(answerable),
            )
        return sorted(answerable, key=lambda q: q.order_index)

    def _require(self, status: RunnerStatus) -> None:
        if self.status != status:
            raise RunnerStateError(
                f"Cannot do that while the questionnaire is {self.status.value}"
            )
