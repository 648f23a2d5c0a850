from __future__ import annotations

from rest_framework import status


class PartialResponseError(Exception):
    """Base class for save & continue failures; carries the client-facing message."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "partial_response_error"
    default_detail = "Unable to process saved progress."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(PartialResponseError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Resume link not found or expired"


class FeatureDisabled(PartialResponseError):
    code = "feature_disabled"
    default_detail = "Save & Continue not enabled for this survey"


class EmailRequired(PartialResponseError):
    code = "email_required"
    default_detail = "Email is required to save progress"


class SessionTerminal(PartialResponseError):
    """The session has left IN_PROGRESS; subclasses name the terminal state."""

    status_code = status.HTTP_409_CONFLICT
    code = "session_terminal"


class SessionExpired(SessionTerminal):
    status_code = status.HTTP_410_GONE
    code = "expired"
    default_detail = "This save has expired. Please start a new survey."


class AlreadyCompleted(SessionTerminal):
    status_code = status.HTTP_409_CONFLICT
    code = "already_completed"
    default_detail = "This survey has already been completed."


class InvalidAnswer(PartialResponseError):
    code = "invalid_answer"
    default_detail = "Invalid answer payload"


class GenerationExhausted(PartialResponseError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "generation_exhausted"
    default_detail = "Could not allocate a resume code. Please try again."


class CommitFailure(PartialResponseError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "commit_failure"
    default_detail = "Could not complete the survey. Please try again."
