"""Shared ids and form builders for the test suite."""

from uuid import UUID

from app.schemas.form import AnswerOptionOut, FormOut, QuestionOut

OWNER_ID = UUID("11111111-1111-4111-8111-111111111111")
FORM_ID = UUID("22222222-2222-4222-8222-222222222222")
Q1_ID = UUID("33333333-3333-4333-8333-333333333331")
Q2_ID = UUID("33333333-3333-4333-8333-333333333332")
OPT_A = UUID("44444444-4444-4444-8444-44444444444a")
OPT_B = UUID("44444444-4444-4444-8444-44444444444b")
OPT_C = UUID("44444444-4444-4444-8444-44444444444c")
OPT_D = UUID("44444444-4444-4444-8444-44444444444d")

GOOD_URL = "https://example.com/welcome"
BAD_URL = "https://example.com/thanks"


def build_demo_form(**overrides) -> FormOut:
    """Threshold-60 form: Q1 (A=30, B=10), Q2 (C=40, D=0)."""
    data = {
        "id": FORM_ID,
        "owner_id": OWNER_ID,
        "client_name": "Acme",
        "subdomain": "acme",
        "score_threshold": 60,
        "redirect_good_url": GOOD_URL,
        "redirect_bad_url": BAD_URL,
        "is_active": True,
        "google_sheet_url": None,
        "questions": [
            QuestionOut(
                id=Q1_ID,
                form_id=FORM_ID,
                question_text="Budget?",
                question_type="radio",
                order_index=0,
                answer_options=[
                    AnswerOptionOut(id=OPT_A, question_id=Q1_ID, option_text="A", points=30, order_index=0),
                    AnswerOptionOut(id=OPT_B, question_id=Q1_ID, option_text="B", points=10, order_index=1),
                ],
            ),
            QuestionOut(
                id=Q2_ID,
                form_id=FORM_ID,
                question_text="Timeline?",
                question_type="select",
                order_index=1,
                answer_options=[
                    AnswerOptionOut(id=OPT_C, question_id=Q2_ID, option_text="C", points=40, order_index=0),
                    AnswerOptionOut(id=OPT_D, question_id=Q2_ID, option_text="D", points=0, order_index=1),
                ],
            ),
        ],
    }
    data.update(overrides)
    return FormOut(**data)
