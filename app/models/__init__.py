from app.models.base import Base
from app.models.form import Form
from app.models.question import Question
from app.models.answer_option import AnswerOption
from app.models.submission import Submission

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Form",
    "Question",
    "AnswerOption",
    "Submission",
]
