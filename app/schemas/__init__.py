"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    QuestionType as QuestionType,
    Outcome as Outcome,
    RunnerStatus as RunnerStatus,
    SuccessResponse as SuccessResponse,
)

# Form schemas
from app.schemas.form import (
    AnswerOptionOut as AnswerOptionOut,
    QuestionOut as QuestionOut,
    FormOut as FormOut,
    PublicFormOut as PublicFormOut,
    AnswerOptionIn as AnswerOptionIn,
    QuestionIn as QuestionIn,
    FormTreeIn as FormTreeIn,
)

# Draft schemas
from app.schemas.draft import (
    PersistedId as PersistedId,
    DraftToken as DraftToken,
    OptionDraft as OptionDraft,
    QuestionDraft as QuestionDraft,
    FormDraft as FormDraft,
    FieldUpdate as FieldUpdate,
    OpenDraftRequest as OpenDraftRequest,
    DraftSessionOut as DraftSessionOut,
)

# Runner schemas
from app.schemas.runner import (
    ScoreResult as ScoreResult,
    RunnerView as RunnerView,
    AnswerSelection as AnswerSelection,
    OneShotSubmission as OneShotSubmission,
    SubmissionResult as SubmissionResult,
)

# Submission schemas
from app.schemas.submission import (
    SubmissionRecord as SubmissionRecord,
    SubmissionWebhookPayload as SubmissionWebhookPayload,
    ForwardResult as ForwardResult,
)

# Dashboard schemas
from app.schemas.dashboard import (
    KpiOut as KpiOut,
    FormSummary as FormSummary,
    DashboardResponse as DashboardResponse,
)

# Auth schemas
from app.schemas.auth import (
    OwnerContext as OwnerContext,
    SessionOut as SessionOut,
)
