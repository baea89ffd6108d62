"""
Standardized service errors, messages and builders.

Core operations never touch transport concerns. They raise ``ServiceError``
carrying a machine-readable ``kind`` and an HTTP-status-like severity hint;
the exception handler registered in ``quizhub.main`` turns it into a JSON
response.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Never include store internals in user-facing messages

Usage:
    from quizhub.core.error_responses import ErrorMessages, raise_not_found

    if result is None:
        raise_not_found(ErrorMessages.TEST_RESULT_NOT_FOUND)
"""

import enum
from typing import NoReturn

from fastapi import HTTPException, status


class ErrorKind(str, enum.Enum):
    """Machine-readable error kinds returned in the ``type`` field."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ID = "INVALID_ID"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ServiceError(Exception):
    """Typed error raised by services and core domain logic.

    Attributes:
        message: User-facing error message
        kind: Machine-readable error kind
        status_code: HTTP-status-like severity hint for the request handler
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value}, {self.status_code}, {self.message!r})"


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    INVALID_TOKEN = "Invalid authentication token."
    INVALID_TOKEN_TYPE = "Invalid token type."
    INVALID_TOKEN_PAYLOAD = "Invalid token payload."
    USER_NOT_FOUND_AUTH = "User not found."

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    RESULT_ACCESS_DENIED = "Not authorized to access this test result."
    RESULT_MODIFY_DENIED = "Not authorized to modify this test result."
    ADMIN_ONLY = "Access denied: Admin only."
    RESTORE_ADMIN_ONLY = "Only an administrator can restore a deleted test result."

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_RESULT_NOT_FOUND = "Test result not found."
    TEST_NOT_FOUND = "Test not found."

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    ANSWERS_REQUIRED = "answers must be non-empty"
    INVALID_STATUS = "Status must be one of: draft, active, deleted."
    INVALID_CREATION_STATUS = "A test result cannot be created as deleted."
    EVENT_TYPE_REQUIRED = "event_type must be a non-empty string."
    USER_AGENT_REQUIRED = "user_agent must be a string."
    INVALID_PERIOD = "start_date must be earlier than end_date."
    PERIOD_TOO_LONG = "The requested period cannot exceed one year."
    SESSION_DURATION_INVALID = "duration_ms must be a non-negative integer."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_ERROR = "Internal server error."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def invalid_id(field: str) -> str:
        """Message for a malformed identifier."""
        return f"Invalid {field}."

    @staticmethod
    def invalid_answer(index: int, reason: str) -> str:
        """Message for the first invalid answer record in a submission."""
        return f"answers[{index}]: {reason}"

    @staticmethod
    def invalid_transition(current: str, requested: str) -> str:
        """Message when a status change is not part of the lifecycle."""
        return f"Cannot change status from '{current}' to '{requested}'."

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for store failures."""
        return f"Failed to {operation}. Please try again later."


# ==============================================================================
# ServiceError Builder Functions
# ==============================================================================


def raise_validation_error(detail: str) -> NoReturn:
    """Raise a VALIDATION_ERROR (400) for malformed input."""
    raise ServiceError(
        detail, ErrorKind.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST
    )


def raise_invalid_id(detail: str) -> NoReturn:
    """Raise an INVALID_ID (400) for malformed identifiers."""
    raise ServiceError(detail, ErrorKind.INVALID_ID, status.HTTP_400_BAD_REQUEST)


def raise_not_found(detail: str) -> NoReturn:
    """Raise a NOT_FOUND (404) when a referenced entity doesn't exist."""
    raise ServiceError(detail, ErrorKind.NOT_FOUND, status.HTTP_404_NOT_FOUND)


def raise_forbidden(detail: str) -> NoReturn:
    """Raise an ACCESS_DENIED (403) for authenticated but unauthorized callers."""
    raise ServiceError(detail, ErrorKind.ACCESS_DENIED, status.HTTP_403_FORBIDDEN)


def raise_invalid_transition(detail: str) -> NoReturn:
    """Raise an INVALID_STATUS_TRANSITION (400) for disallowed status changes."""
    raise ServiceError(
        detail, ErrorKind.INVALID_STATUS_TRANSITION, status.HTTP_400_BAD_REQUEST
    )


def raise_server_error(detail: str) -> NoReturn:
    """Raise an INTERNAL_ERROR (500).

    Always use user-friendly messages; log technical details separately.
    """
    raise ServiceError(
        detail, ErrorKind.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def raise_unauthorized(detail: str) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Authentication happens in the transport layer, so this one stays an
    HTTPException with the Bearer challenge header.
    """
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
