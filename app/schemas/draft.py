"""Draft (editor-local) schemas.

A draft mirrors a form tree while it is being edited.  Questions and
options that have never been saved carry a client-side ``DraftToken``;
everything loaded from the store carries a ``PersistedId``.  Matching
during edits always goes through this tagged union, so a draft token is
never mistaken for a stored row.
"""

from typing import Any, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from app.core.constants import DEFAULT_SCORE_THRESHOLD, DRAFT_TOKEN_PREFIX
from app.schemas.common import QuestionType


class PersistedId(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["persisted"] = "persisted"
    value: UUID

    def __str__(self) -> str:
        return str(self.value)


class DraftToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["draft"] = "draft"
    value: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{DRAFT_TOKEN_PREFIX}{self.value}"


DraftId = Annotated[Union[PersistedId, DraftToken], Field(discriminator="kind")]


def parse_draft_id(raw: str) -> Union[PersistedId, DraftToken]:
    """Parse the wire form of a draft id.

    ``draft:<token>`` becomes a :class:`DraftToken`; anything else must be
    a UUID and becomes a :class:`PersistedId`.  Raises ``ValueError`` for
    input that is neither.
    """
    if raw.startswith(DRAFT_TOKEN_PREFIX):
        return DraftToken(value=raw[len(DRAFT_TOKEN_PREFIX):])
    return PersistedId(value=UUID(raw))


class OptionDraft(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: DraftId
    option_text: str = ""
    points: int = 0


class QuestionDraft(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: DraftId
    question_text: str = ""
    question_type: QuestionType = QuestionType.single_choice
    order_index: int = 0
    answer_options: List[OptionDraft] = Field(default_factory=list)


class FormDraft(BaseModel):
    """In-memory copy of a form tree; ``form_id`` is ``None`` until first save."""

    model_config = ConfigDict(validate_assignment=True)

    form_id: Optional[UUID] = None
    client_name: str = ""
    subdomain: str = ""
    score_threshold: int = DEFAULT_SCORE_THRESHOLD
    redirect_good_url: str = ""
    redirect_bad_url: str = ""
    is_active: bool = True
    google_sheet_url: Optional[str] = None
    questions: List[QuestionDraft] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Draft session API
# ---------------------------------------------------------------------------


class OpenDraftRequest(BaseModel):
    """Request body for POST /drafts; omit ``form_id`` to start a new form."""

    form_id: Optional[UUID] = None


class FieldUpdate(BaseModel):
    """Single-field edit applied to the form, a question or an option."""

    field: str = Field(..., min_length=1)
    value: Any = None


class DraftSessionOut(BaseModel):
    draft_id: str
    draft: FormDraft
