"""Form-specific Pydantic schemas (stored form tree, full-tree requests)."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import QuestionType


# ---------------------------------------------------------------------------
# Stored form tree (read side)
# ---------------------------------------------------------------------------


class AnswerOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question_id: UUID
    option_text: str
    points: int
    order_index: int = 0


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_id: UUID
    question_text: str
    question_type: QuestionType
    order_index: int
    answer_options: List[AnswerOptionOut] = Field(default_factory=list)


class FormOut(BaseModel):
    """A form with its ordered questions and their ordered options.

    This is the shape the scoring engine, the runner and the draft editor
    all work from; it validates straight from ORM rows.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    client_name: str
    subdomain: str
    score_threshold: int
    redirect_good_url: str
    redirect_bad_url: str
    is_active: bool
    google_sheet_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    questions: List[QuestionOut] = Field(default_factory=list)


class PublicFormOut(BaseModel):
    """Respondent-facing form metadata (no thresholds, redirects or sheet)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_name: str
    subdomain: str


# ---------------------------------------------------------------------------
# Full-tree create / replace (request side)
# ---------------------------------------------------------------------------


class AnswerOptionIn(BaseModel):
    option_text: str = ""
    points: int = 0


class QuestionIn(BaseModel):
    question_text: str = ""
    question_type: QuestionType = QuestionType.single_choice
    order_index: Optional[int] = Field(
        None, description="Defaults to the question's position in the list"
    )
    answer_options: List[AnswerOptionIn] = Field(default_factory=list)


class FormTreeIn(BaseModel):
    """Request body for POST /forms and PUT /forms/{form_id}."""

    client_name: str = ""
    subdomain: str = ""
    score_threshold: int = 60
    redirect_good_url: str = ""
    redirect_bad_url: str = ""
    is_active: bool = True
    google_sheet_url: Optional[str] = None
    questions: List[QuestionIn] = Field(default_factory=list)
