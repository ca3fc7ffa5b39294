import logging
from typing import Any, Dict, Mapping

from app.schemas.common import Outcome
from app.schemas.runner import ScoreResult

logger = logging.getLogger(__name__)


class QualificationScoringEngine:
    """Score a completed answer set and decide the qualification outcome.

    The engine is a pure function of ``(form, answers)``: no I/O and no
    state, so the runner can call it again after a failed write and get
    the same result.

    *form* is anything shaped like :class:`app.schemas.form.FormOut`
    (a schema instance or an ORM row): it needs ``score_threshold`` and
    ``questions``, each with ``id``, ``question_text`` and
    ``answer_options`` carrying ``id``, ``option_text`` and ``points``.

    *answers* maps question id to selected option id.  Ids are compared
    by their string form, so UUID objects and strings are interchangeable.

    Rules:
        - questions are visited in the form's stored order; that order
          only shapes ``submitted_data``, never the score
        - an unanswered question, or one whose answer is not among its
          own options, contributes 0 and is left out of ``submitted_data``
        - ``total_score`` is the plain sum of the matched options' points
        - the outcome is qualified iff ``total_score >= score_threshold``
    """

    def score(self, form: Any, answers: Mapping[Any, Any]) -> ScoreResult:
        selected = {str(q_id): str(o_id) for q_id, o_id in answers.items()}

        total_score = 0
        submitted_data: Dict[str, str] = {}

        for question in form.questions:
            option_id = selected.get(str(question.id))
            if option_id is None:
                continue

            option = next(
                (o for o in question.answer_options if str(o.id) == option_id),
                None,
            )
            if option is None:
                logger.debug(
                    "Ignoring unknown option %s for question %s",
                    option_id,
                    question.id,
                )
                continue

            total_score += option.points
            submitted_data[question.question_text] = option.option_text

        return ScoreResult(
            total_score=total_score,
            submitted_data=submitted_data,
            outcome=self.outcome_for(total_score, form.score_threshold),
        )

    @staticmethod
    def outcome_for(total_score: int, score_threshold: int) -> Outcome:
        """Boundary-inclusive threshold comparison."""
        if total_score >= score_threshold:
            return Outcome.qualified
        return Outcome.unqualified
