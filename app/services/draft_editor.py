import logging
from typing import Any, Callable, List, Optional, Union
from uuid import UUID, uuid4

from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.core.constants import (
    PG_INT_MAX,
    PG_INT_MIN,
    SCORE_THRESHOLD_MAX,
    SCORE_THRESHOLD_MIN,
    SPREADSHEET_ID_PATTERN,
    SUBDOMAIN_PATTERN,
)
from app.core.exceptions import DraftItemNotFoundError, InvalidFormDataError
from app.schemas.common import QuestionType
from app.schemas.draft import (
    DraftToken,
    FormDraft,
    OptionDraft,
    PersistedId,
    QuestionDraft,
)
from app.schemas.form import FormOut, FormTreeIn

logger = logging.getLogger(__name__)

AnyDraftId = Union[PersistedId, DraftToken]

_HTTP_URL = TypeAdapter(HttpUrl)

FORM_FIELDS = frozenset(
    {
        "client_name",
        "subdomain",
        "score_threshold",
        "redirect_good_url",
        "redirect_bad_url",
        "is_active",
        "google_sheet_url",
    }
)
QUESTION_FIELDS = frozenset({"question_text", "question_type", "order_index"})
OPTION_FIELDS = frozenset({"option_text", "points"})


def _new_token() -> DraftToken:
    return DraftToken(value=uuid4().hex[:12])


class DraftEditor:
    """Mutable, not-yet-persisted form tree used while authoring.

    Every structural edit is synchronous and only touches the in-memory
    draft.  :meth:`save` is the single operation with an external effect:
    it hands a copy of the draft to :class:`FormSyncService` and, only if
    that succeeds, swaps the draft for the persisted tree (server ids).
    On failure the draft is left exactly as it was so the owner can
    retry.
    """

    def __init__(
        self,
        draft: Optional[FormDraft] = None,
        token_factory: Optional[Callable[[], DraftToken]] = None,
    ) -> None:
        self._draft = draft if draft is not None else FormDraft()
        self._new_token = token_factory or _new_token

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_form(cls, form: FormOut) -> "DraftEditor":
        """Open a draft over a stored form; every id is ``PersistedId``."""
        return cls(draft_from_form(form))

    @classmethod
    def from_tree(
        cls, tree: FormTreeIn, form_id: Optional[UUID] = None
    ) -> "DraftEditor":
        """Build a draft from a full-tree request body.

        Questions without an explicit ``order_index`` take their list
        position.
        """
        editor = cls(FormDraft(form_id=form_id))
        for field in FORM_FIELDS:
            setattr(editor._draft, field, getattr(tree, field))
        for position, question_in in enumerate(tree.questions):
            question = editor.add_question()
            question.question_text = question_in.question_text
            question.question_type = question_in.question_type
            question.order_index = (
                position
                if question_in.order_index is None
                else question_in.order_index
            )
            for option_in in question_in.answer_options:
                option = editor.add_option(question.id)
                option.option_text = option_in.option_text
                option.points = option_in.points
        return editor

    @property
    def draft(self) -> FormDraft:
        return self._draft

    # ------------------------------------------------------------------
    # Form-level edits
    # ------------------------------------------------------------------

    def update_form(self, field: str, value: Any) -> FormDraft:
        self._check_field(field, FORM_FIELDS, "form")
        self._assign(self._draft, field, value)
        return self._draft

    # ------------------------------------------------------------------
    # Question edits
    # ------------------------------------------------------------------

    def add_question(self) -> QuestionDraft:
        """Append an empty single-choice question at ``order_index = len``."""
        question = QuestionDraft(
            id=self._new_token(),
            question_text="",
            question_type=QuestionType.single_choice,
            order_index=len(self._draft.questions),
            answer_options=[],
        )
        self._draft.questions.append(question)
        return question

    def update_question(
        self, question_id: AnyDraftId, field: str, value: Any
    ) -> QuestionDraft:
        self._check_field(field, QUESTION_FIELDS, "question")
        question = self._find_question(question_id)
        self._assign(question, field, value)
        return question

    def delete_question(self, question_id: AnyDraftId) -> None:
        """Remove a question and its options; siblings keep their order_index."""
        question = self._find_question(question_id)
        self._draft.questions.remove(question)

    # ------------------------------------------------------------------
    # Option edits
    # ------------------------------------------------------------------

    def add_option(self, question_id: AnyDraftId) -> OptionDraft:
        question = self._find_question(question_id)
        option = OptionDraft(id=self._new_token(), option_text="", points=0)
        question.answer_options.append(option)
        return option

    def update_option(
        self,
        question_id: AnyDraftId,
        option_id: AnyDraftId,
        field: str,
        value: Any,
    ) -> OptionDraft:
        self._check_field(field, OPTION_FIELDS, "option")
        option = self._find_option(self._find_question(question_id), option_id)
        self._assign(option, field, value)
        return option

    def delete_option(self, question_id: AnyDraftId, option_id: AnyDraftId) -> None:
        question = self._find_question(question_id)
        question.answer_options.remove(self._find_option(question, option_id))

    # ------------------------------------------------------------------
    # Validation + save
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Raise :class:`InvalidFormDataError` listing every problem found."""
        errors = collect_draft_errors(self._draft)
        if errors:
            raise InvalidFormDataError(
                f"Form has {len(errors)} validation error(s)", errors=errors
            )

    async def save(self, sync_service: Any, owner_id: UUID, **repos: Any) -> FormOut:
        """Validate, then replace the stored tree with this draft.

        *repos* are passed through to :meth:`FormSyncService.save`.  The
        sync service works on a deep copy, so nothing it does can leak
        into this draft if the save fails.
        """
        self.validate()
        persisted: FormOut = await sync_service.save(
            self._draft.model_copy(deep=True), owner_id, **repos
        )
        self._draft = draft_from_form(persisted)
        return persisted

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _find_question(self, question_id: AnyDraftId) -> QuestionDraft:
        for question in self._draft.questions:
            if question.id == question_id:
                return question
        raise DraftItemNotFoundError(f"Question {question_id} not found in draft")

    @staticmethod
    def _find_option(question: QuestionDraft, option_id: AnyDraftId) -> OptionDraft:
        for option in question.answer_options:
            if option.id == option_id:
                return option
        raise DraftItemNotFoundError(
            f"Option {option_id} not found on question {question.id}"
        )

    @staticmethod
    def _check_field(field: str, allowed: frozenset, kind: str) -> None:
        if field not in allowed:
            raise InvalidFormDataError(
                f"Unknown {kind} field '{field}'",
                errors=[f"'{field}' is not an editable {kind} field"],
            )

    @staticmethod
    def _assign(target: Any, field: str, value: Any) -> None:
        try:
            setattr(target, field, value)
        except ValidationError as exc:
            raise InvalidFormDataError(
                f"Invalid value for '{field}'",
                errors=[err["msg"] for err in exc.errors()],
            ) from exc


def draft_from_form(form: FormOut) -> FormDraft:
    """Mirror a stored form as a draft with persisted ids."""
    return FormDraft(
        form_id=form.id,
        client_name=form.client_name,
        subdomain=form.subdomain,
        score_threshold=form.score_threshold,
        redirect_good_url=form.redirect_good_url,
        redirect_bad_url=form.redirect_bad_url,
        is_active=form.is_active,
        google_sheet_url=form.google_sheet_url,
        questions=[
            QuestionDraft(
                id=PersistedId(value=q.id),
                question_text=q.question_text,
                question_type=q.question_type,
                order_index=q.order_index,
                answer_options=[
                    OptionDraft(
                        id=PersistedId(value=o.id),
                        option_text=o.option_text,
                        points=o.points,
                    )
                    for o in q.answer_options
                ],
            )
            for q in form.questions
        ],
    )


def collect_draft_errors(draft: FormDraft) -> List[str]:
    """Return human-readable problems that must block a save."""
    errors: List[str] = []

    if not draft.client_name.strip():
        errors.append("client_name must not be empty")
    if not SUBDOMAIN_PATTERN.match(draft.subdomain):
        errors.append(
            "subdomain must be 1-63 lowercase letters, digits or hyphens "
            "and may not start or end with a hyphen"
        )
    if not SCORE_THRESHOLD_MIN <= draft.score_threshold <= SCORE_THRESHOLD_MAX:
        errors.append(
            f"score_threshold must be between {SCORE_THRESHOLD_MIN} "
            f"and {SCORE_THRESHOLD_MAX}"
        )
    for field in ("redirect_good_url", "redirect_bad_url"):
        if not _is_http_url(getattr(draft, field)):
            errors.append(f"{field} must be an absolute http(s) URL")
    if draft.google_sheet_url and not (
        _is_http_url(draft.google_sheet_url)
        and SPREADSHEET_ID_PATTERN.search(draft.google_sheet_url)
    ):
        errors.append("google_sheet_url must be a Google Sheets URL (…/d/<id>/…)")

    for number, question in enumerate(draft.questions, start=1):
        if not question.question_text.strip():
            errors.append(f"question {number}: question_text must not be empty")
        if not question.answer_options:
            errors.append(f"question {number}: at least one answer option is required")
        for opt_number, option in enumerate(question.answer_options, start=1):
            if not option.option_text.strip():
                errors.append(
                    f"question {number}, option {opt_number}: "
                    "option_text must not be empty"
                )
            if not PG_INT_MIN <= option.points <= PG_INT_MAX:
                errors.append(
                    f"question {number}, option {opt_number}: "
                    f"points must be between {PG_INT_MIN} and {PG_INT_MAX}"
                )

    # every answer combination must still fit in calculated_score
    scored = [q.answer_options for q in draft.questions if q.answer_options]
    highest = sum(max(o.points for o in options) for options in scored)
    lowest = sum(min(o.points for o in options) for options in scored)
    if highest > PG_INT_MAX or lowest < PG_INT_MIN:
        errors.append(
            f"the total score must stay between {PG_INT_MIN} and {PG_INT_MAX} "
            "for every combination of answers"
        )
    return errors


def _is_http_url(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        return False
    return True
