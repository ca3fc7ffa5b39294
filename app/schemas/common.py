from enum import Enum
from pydantic import BaseModel


class QuestionType(str, Enum):
    """Presentation of a single-choice question (wire values as stored)."""

    single_choice = "radio"
    dropdown = "select"


class Outcome(str, Enum):
    qualified = "qualified"
    unqualified = "unqualified"


class RunnerStatus(str, Enum):
    loading = "loading"
    active = "active"
    submitting = "submitting"
    completed = "completed"
    not_found = "not_found"
    empty = "empty"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
