"""Expected, user-facing failures raised by the identity services."""

from enum import Enum


class FailureReason(str, Enum):
    """Why an operation failed; drives the HTTP status chosen at the API boundary."""

    CLIENT_ERROR = "client_error"
    ITEM_NOT_FOUND = "item_not_found"
    INTERNAL_ERROR = "internal_error"


class ServiceError(Exception):
    """Base failure: a reason, a short title and a list of human-readable messages."""

    reason: FailureReason = FailureReason.CLIENT_ERROR
    default_title = "Request failed"

    def __init__(self, title: str | None = None, *messages: str) -> None:
        self.title = title or self.default_title
        self.messages = list(messages) if messages else [self.title]
        super().__init__(self.title)


class ValidationError(ServiceError):
    """Malformed, duplicate or policy-violating input; one message per problem."""

    default_title = "Validation failed"


class AuthenticationError(ServiceError):
    """Bad credentials or tokens. Messages are deliberately generic."""

    default_title = "Authentication failed"


class NotFoundError(ServiceError):
    reason = FailureReason.ITEM_NOT_FOUND
    default_title = "Not found"


class InternalError(ServiceError):
    """Unexpected store, storage or codec failure; callers only see the generic title."""

    reason = FailureReason.INTERNAL_ERROR
    default_title = "An unexpected error occurred"
