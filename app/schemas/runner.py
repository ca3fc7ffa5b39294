"""Respondent-facing schemas for the questionnaire runner."""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import Outcome, QuestionType, RunnerStatus
from app.schemas.form import PublicFormOut


class ScoreResult(BaseModel):
    """Output of the scoring engine for one completed answer set."""

    total_score: int
    submitted_data: Dict[str, str] = Field(default_factory=dict)
    outcome: Outcome


class OptionView(BaseModel):
    id: UUID
    option_text: str


class QuestionView(BaseModel):
    """A question as shown to a respondent; points stay server-side."""

    id: UUID
    question_text: str
    question_type: QuestionType
    options: List[OptionView] = Field(default_factory=list)


class RunnerView(BaseModel):
    """Snapshot of a runner session returned after every respondent action."""

    session_id: Optional[str] = None
    status: RunnerStatus
    form: Optional[PublicFormOut] = None
    current_index: int = 0
    total_questions: int = 0
    current_question: Optional[QuestionView] = None
    selected_option_id: Optional[UUID] = None
    can_advance: bool = False
    can_go_back: bool = False
    outcome: Optional[Outcome] = None
    redirect_url: Optional[str] = None
    message: Optional[str] = None


class AnswerSelection(BaseModel):
    """Request body for PUT /public/sessions/{session_id}/answer."""

    option_id: UUID


class OneShotSubmission(BaseModel):
    """Request body for POST /public/forms/{subdomain}/submissions.

    ``answers`` maps question id to the selected option id.  UTM values
    may be sent explicitly; they are merged over any found in the query
    string.
    """

    answers: Dict[UUID, UUID] = Field(default_factory=dict)
    utm_params: Dict[str, str] = Field(default_factory=dict)


class SubmissionResult(BaseModel):
    status: RunnerStatus
    outcome: Outcome
    redirect_url: str
