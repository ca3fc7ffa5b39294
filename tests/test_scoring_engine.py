from uuid import uuid4

import pytest

from app.schemas.common import Outcome
from app.services.scoring_engine import QualificationScoringEngine
from tests.factories import OPT_A, OPT_B, OPT_C, OPT_D, Q1_ID, Q2_ID, build_demo_form


@pytest.fixture
def engine() -> QualificationScoringEngine:
    return QualificationScoringEngine()


class TestScore:
    """Threshold-60 scenario and the partial-answer rules."""

    def test_high_answers_qualify(self, engine, demo_form):
        result = engine.score(demo_form, {Q1_ID: OPT_A, Q2_ID: OPT_C})

        assert result.total_score == 70
        assert result.outcome == Outcome.qualified
        assert result.submitted_data == {"Budget?": "A", "Timeline?": "C"}

    def test_low_answers_do_not_qualify(self, engine, demo_form):
        result = engine.score(demo_form, {Q1_ID: OPT_B, Q2_ID: OPT_D})

        assert result.total_score == 10
        assert result.outcome == Outcome.unqualified

    def test_unanswered_question_contributes_nothing(self, engine, demo_form):
        result = engine.score(demo_form, {Q1_ID: OPT_A})

        assert result.total_score == 30
        assert result.outcome == Outcome.unqualified
        assert result.submitted_data == {"Budget?": "A"}

    def test_option_from_another_question_is_ignored(self, engine, demo_form):
        result = engine.score(demo_form, {Q1_ID: OPT_C, Q2_ID: OPT_C})

        assert result.total_score == 40
        assert "Budget?" not in result.submitted_data

    def test_unknown_question_is_ignored(self, engine, demo_form):
        result = engine.score(demo_form, {uuid4(): OPT_A})

        assert result.total_score == 0
        assert result.submitted_data == {}

    def test_string_ids_match_uuid_ids(self, engine, demo_form):
        result = engine.score(demo_form, {str(Q1_ID): str(OPT_A), str(Q2_ID): str(OPT_C)})

        assert result.total_score == 70

    def test_score_does_not_depend_on_question_order(self, engine, demo_form):
        reversed_form = build_demo_form(questions=list(reversed(demo_form.questions)))
        answers = {Q1_ID: OPT_A, Q2_ID: OPT_D}

        assert (
            engine.score(reversed_form, answers).total_score
            == engine.score(demo_form, answers).total_score
            == 30
        )

    def test_no_questions_scores_zero(self, engine):
        form = build_demo_form(questions=[], score_threshold=0)

        result = engine.score(form, {})

        assert result.total_score == 0
        assert result.outcome == Outcome.qualified

    def test_negative_points_are_summed(self, engine, demo_form):
        demo_form.questions[1].answer_options[1].points = -15

        result = engine.score(demo_form, {Q1_ID: OPT_A, Q2_ID: OPT_D})

        assert result.total_score == 15

    def test_duplicate_question_text_keeps_later_answer(self, engine, demo_form):
        demo_form.questions[1].question_text = "Budget?"

        result = engine.score(demo_form, {Q1_ID: OPT_A, Q2_ID: OPT_C})

        assert result.submitted_data == {"Budget?": "C"}
        assert result.total_score == 70


class TestOutcomeFor:
    """The threshold comparison is inclusive."""

    @pytest.mark.parametrize(
        "total, threshold, expected",
        [
            (60, 60, Outcome.qualified),
            (59, 60, Outcome.unqualified),
            (0, 0, Outcome.qualified),
            (100, 100, Outcome.qualified),
            (-5, 0, Outcome.unqualified),
        ],
    )
    def test_boundary(self, total, threshold, expected):
        assert QualificationScoringEngine.outcome_for(total, threshold) == expected
