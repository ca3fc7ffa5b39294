from typing import List, Optional


class LeadScorerError(Exception):
    """Base class for all LeadScorer domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except LeadScorerError`` clause can catch any domain
    error raised by a user action.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


class FormNotFoundError(LeadScorerError):
    """Raised when no form matches an id (owner scope) or an active subdomain."""

    def __init__(self, detail: str = "Form not found or inactive"):
        super().__init__(detail)


class DraftNotFoundError(LeadScorerError):
    """Raised when a server-side draft session has expired or never existed."""

    def __init__(self, detail: str = "Draft not found"):
        super().__init__(detail)


class DraftItemNotFoundError(LeadScorerError):
    """Raised when a question or option id is not present in the draft."""

    def __init__(self, detail: str = "Draft item not found"):
        super().__init__(detail)


class RunnerSessionNotFoundError(LeadScorerError):
    """Raised when a respondent session has expired or never existed."""

    def __init__(self, detail: str = "Questionnaire session not found"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# ValidationFailure
# ---------------------------------------------------------------------------


class InvalidFormDataError(LeadScorerError):
    """Raised when a draft fails validation and must not be saved.

    ``errors`` lists every individual problem so the editor can show all
    of them at once instead of one per save attempt.
    """

    def __init__(
        self,
        detail: str = "Invalid form data",
        errors: Optional[List[str]] = None,
    ):
        self.errors = errors or []
        super().__init__(detail)


class InvalidAnswerError(LeadScorerError):
    """Raised when a respondent selects an option that is not on the current question."""

    def __init__(self, detail: str = "Option does not belong to the current question"):
        super().__init__(detail)


class AnswerRequiredError(LeadScorerError):
    """Raised when advancing past a question that has no recorded answer."""

    def __init__(self, detail: str = "The current question must be answered first"):
        super().__init__(detail)


class InvalidSheetUrlError(LeadScorerError):
    """Raised when a Google Sheet URL carries no spreadsheet id."""

    def __init__(self, detail: str = "Invalid Google Sheet URL"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class SubdomainConflictError(LeadScorerError):
    """Raised when a save would give two forms the same subdomain."""

    def __init__(self, detail: str = "Subdomain is already in use"):
        super().__init__(detail)


class RunnerStateError(LeadScorerError):
    """Raised when a runner action is not allowed in the session's current status."""

    def __init__(self, detail: str = "Action not allowed in the current state"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# StoreFailure
# ---------------------------------------------------------------------------


class StoreFailureError(LeadScorerError):
    """Raised when a read or write against the relational store fails.

    Writes are rolled back before this is raised, so callers may retry
    the same action unchanged.
    """

    def __init__(self, detail: str = "The data store is unavailable, please retry"):
        super().__init__(detail)


class SessionStoreUnavailableError(LeadScorerError):
    """Raised when Redis is needed for session state but is unreachable."""

    def __init__(self, detail: str = "Session store unavailable"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# AuthFailure
# ---------------------------------------------------------------------------


class AuthenticationError(LeadScorerError):
    """Raised when an owner-only action has no valid session.

    ``login_url`` points at the login route with the originally requested
    path preserved for post-login return.
    """

    def __init__(
        self,
        detail: str = "Authentication required",
        login_url: Optional[str] = None,
    ):
        self.login_url = login_url
        super().__init__(detail)


class WebhookAuthError(LeadScorerError):
    """Raised when a webhook call carries a missing or wrong shared secret."""

    def __init__(self, detail: str = "Invalid webhook secret"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------


class SheetForwardingError(LeadScorerError):
    """Raised when appending a submission row to Google Sheets fails."""

    def __init__(self, detail: str = "Failed to forward submission to the spreadsheet"):
        super().__init__(detail)
