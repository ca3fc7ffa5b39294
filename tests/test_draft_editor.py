import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from app.core.exceptions import (
    DraftItemNotFoundError,
    InvalidFormDataError,
    StoreFailureError,
)
from app.schemas.common import QuestionType
from app.schemas.draft import DraftToken, PersistedId, parse_draft_id
from app.schemas.form import AnswerOptionIn, FormTreeIn, QuestionIn
from app.services.draft_editor import DraftEditor, collect_draft_errors
from tests.factories import FORM_ID, OWNER_ID, Q1_ID, Q2_ID, build_demo_form


def _valid_editor() -> DraftEditor:
    editor = DraftEditor()
    editor.update_form("client_name", "Acme")
    editor.update_form("subdomain", "acme")
    editor.update_form("redirect_good_url", "https://example.com/yes")
    editor.update_form("redirect_bad_url", "https://example.com/no")
    question = editor.add_question()
    editor.update_question(question.id, "question_text", "Budget?")
    option = editor.add_option(question.id)
    editor.update_option(question.id, option.id, "option_text", "High")
    editor.update_option(question.id, option.id, "points", 50)
    return editor


class TestDraftIds:
    def test_parse_draft_token(self):
        assert parse_draft_id("draft:abc") == DraftToken(value="abc")

    def test_parse_persisted_id(self):
        assert parse_draft_id(str(Q1_ID)) == PersistedId(value=Q1_ID)

    def test_parse_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_draft_id("not-an-id")

    def test_token_and_persisted_never_equal(self):
        assert DraftToken(value=str(Q1_ID)) != PersistedId(value=Q1_ID)

    def test_wire_form(self):
        assert str(DraftToken(value="abc")) == "draft:abc"
        assert str(PersistedId(value=Q1_ID)) == str(Q1_ID)


class TestStructuralEdits:
    def test_add_question_appends_with_next_order_index(self):
        editor = DraftEditor()

        first = editor.add_question()
        second = editor.add_question()

        assert isinstance(first.id, DraftToken)
        assert (first.order_index, second.order_index) == (0, 1)
        assert second.question_type == QuestionType.single_choice
        assert second.answer_options == []

    def test_delete_question_does_not_renumber(self):
        editor = DraftEditor()
        first = editor.add_question()
        editor.add_question()
        editor.add_question()

        editor.delete_question(first.id)
        added = editor.add_question()

        assert [q.order_index for q in editor.draft.questions] == [1, 2, 2]
        assert added.order_index == 2

    def test_delete_question_removes_its_options(self):
        editor = DraftEditor.from_form(build_demo_form())

        editor.delete_question(PersistedId(value=Q1_ID))

        assert [q.id for q in editor.draft.questions] == [PersistedId(value=Q2_ID)]

    def test_add_and_delete_option(self):
        editor = DraftEditor()
        question = editor.add_question()
        keep = editor.add_option(question.id)
        drop = editor.add_option(question.id)

        editor.delete_option(question.id, drop.id)

        assert [o.id for o in question.answer_options] == [keep.id]
        assert keep.points == 0

    def test_unknown_question_raises(self):
        editor = DraftEditor()

        with pytest.raises(DraftItemNotFoundError):
            editor.add_option(DraftToken(value="missing"))

    def test_unknown_option_raises(self):
        editor = DraftEditor()
        question = editor.add_question()

        with pytest.raises(DraftItemNotFoundError):
            editor.update_option(question.id, PersistedId(value=uuid4()), "points", 1)

    def test_persisted_id_does_not_match_token_with_same_text(self):
        editor = DraftEditor.from_form(build_demo_form())

        with pytest.raises(DraftItemNotFoundError):
            editor.delete_question(DraftToken(value=str(Q1_ID)))


class TestFieldUpdates:
    def test_update_form_field(self):
        editor = DraftEditor()

        editor.update_form("score_threshold", 75)

        assert editor.draft.score_threshold == 75

    def test_unknown_field_is_rejected(self):
        editor = DraftEditor()

        with pytest.raises(InvalidFormDataError):
            editor.update_form("owner_id", str(uuid4()))

    def test_invalid_value_is_rejected_and_draft_unchanged(self):
        editor = DraftEditor()

        with pytest.raises(InvalidFormDataError):
            editor.update_form("score_threshold", "lots")
        assert editor.draft.score_threshold == 60

    def test_question_type_accepts_wire_value(self):
        editor = DraftEditor()
        question = editor.add_question()

        editor.update_question(question.id, "question_type", "select")

        assert question.question_type == QuestionType.dropdown

    def test_order_index_is_editable_and_duplicates_allowed(self):
        editor = DraftEditor()
        first = editor.add_question()
        second = editor.add_question()

        editor.update_question(second.id, "order_index", first.order_index)

        assert second.order_index == first.order_index


class TestValidation:
    def test_valid_draft_passes(self):
        _valid_editor().validate()

    def test_blank_draft_lists_every_problem(self):
        errors = collect_draft_errors(DraftEditor().draft)

        assert any("client_name" in e for e in errors)
        assert any("subdomain" in e for e in errors)
        assert any("redirect_good_url" in e for e in errors)
        assert any("redirect_bad_url" in e for e in errors)

    @pytest.mark.parametrize("subdomain", ["Acme", "-acme", "acme-", "ac me", "", "a" * 64])
    def test_bad_subdomains(self, subdomain):
        editor = _valid_editor()
        editor.update_form("subdomain", subdomain)

        with pytest.raises(InvalidFormDataError) as exc_info:
            editor.validate()
        assert any("subdomain" in e for e in exc_info.value.errors)

    @pytest.mark.parametrize("threshold", [-1, 101])
    def test_threshold_out_of_range(self, threshold):
        editor = _valid_editor()
        editor.update_form("score_threshold", threshold)

        with pytest.raises(InvalidFormDataError):
            editor.validate()

    def test_redirect_must_be_http(self):
        editor = _valid_editor()
        editor.update_form("redirect_good_url", "javascript:alert(1)")

        with pytest.raises(InvalidFormDataError):
            editor.validate()

    def test_sheet_url_needs_spreadsheet_id(self):
        editor = _valid_editor()
        editor.update_form("google_sheet_url", "https://docs.google.com/spreadsheets/")

        with pytest.raises(InvalidFormDataError):
            editor.validate()

        editor.update_form(
            "google_sheet_url", "https://docs.google.com/spreadsheets/d/abc_123-X/edit"
        )
        editor.validate()

    def test_question_without_options_blocks_save(self):
        editor = _valid_editor()
        editor.add_question()

        errors = collect_draft_errors(editor.draft)

        assert "question 2: at least one answer option is required" in errors
        assert "question 2: question_text must not be empty" in errors

    @pytest.mark.parametrize("points", [3_000_000_000, -3_000_000_000])
    def test_points_must_fit_integer_column(self, points):
        tree = FormTreeIn(
            client_name="Acme",
            subdomain="acme",
            redirect_good_url="https://example.com/yes",
            redirect_bad_url="https://example.com/no",
            questions=[
                QuestionIn(
                    question_text="Budget?",
                    answer_options=[AnswerOptionIn(option_text="Huge", points=points)],
                )
            ],
        )

        errors = collect_draft_errors(DraftEditor.from_tree(tree).draft)

        assert any("question 1, option 1: points must be between" in e for e in errors)

    def test_reachable_total_must_fit_integer_column(self):
        editor = _valid_editor()
        for text in ("Team size?", "Timeline?"):
            question = editor.add_question()
            editor.update_question(question.id, "question_text", text)
            option = editor.add_option(question.id)
            editor.update_option(question.id, option.id, "option_text", "Max")
            editor.update_option(question.id, option.id, "points", 2_000_000_000)

        errors = collect_draft_errors(editor.draft)

        assert not any("points must be between" in e for e in errors)
        assert any("total score must stay between" in e for e in errors)
        with pytest.raises(InvalidFormDataError):
            editor.validate()

    def test_negative_points_within_range_pass(self):
        editor = _valid_editor()
        question = editor.draft.questions[0]
        option = editor.add_option(question.id)
        editor.update_option(question.id, option.id, "option_text", "Low")
        editor.update_option(question.id, option.id, "points", -40)

        assert collect_draft_errors(editor.draft) == []


class TestFromTree:
    def test_positions_fill_missing_order_index(self):
        tree = FormTreeIn(
            client_name="Acme",
            subdomain="acme",
            redirect_good_url="https://example.com/yes",
            redirect_bad_url="https://example.com/no",
            questions=[
                QuestionIn(question_text="One", answer_options=[AnswerOptionIn(option_text="x")]),
                QuestionIn(
                    question_text="Two",
                    order_index=7,
                    answer_options=[AnswerOptionIn(option_text="y", points=3)],
                ),
            ],
        )

        draft = DraftEditor.from_tree(tree, form_id=FORM_ID).draft

        assert draft.form_id == FORM_ID
        assert [q.order_index for q in draft.questions] == [0, 7]
        assert draft.questions[1].answer_options[0].points == 3


class TestSave:
    def test_edits_never_reach_the_store(self):
        sync = AsyncMock()

        _valid_editor()

        sync.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_replaces_draft_with_persisted_tree(self):
        editor = _valid_editor()
        persisted = build_demo_form()
        sync = AsyncMock()
        sync.save = AsyncMock(return_value=persisted)

        result = await editor.save(sync, OWNER_ID, form_repo="f", question_repo="q")

        assert result is persisted
        sent_draft = sync.save.await_args.args[0]
        assert sent_draft is not editor.draft
        assert sync.save.await_args.kwargs == {"form_repo": "f", "question_repo": "q"}
        assert editor.draft.form_id == FORM_ID
        assert all(isinstance(q.id, PersistedId) for q in editor.draft.questions)

    @pytest.mark.asyncio
    async def test_invalid_draft_is_not_sent(self):
        editor = DraftEditor()
        sync = AsyncMock()

        with pytest.raises(InvalidFormDataError):
            await editor.save(sync, OWNER_ID)
        sync.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_save_keeps_draft(self):
        editor = _valid_editor()
        before = editor.draft.model_dump()
        sync = AsyncMock()
        sync.save = AsyncMock(side_effect=StoreFailureError())

        with pytest.raises(StoreFailureError):
            await editor.save(sync, OWNER_ID)

        assert editor.draft.model_dump() == before
        assert editor.draft.form_id is None
