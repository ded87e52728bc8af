"""
Maps failed HTTP outcomes to the client error taxonomy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from shared.errors import GatewayException


class ErrorKind(str, Enum):
    """Classified error kinds."""
    NETWORK_UNREACHABLE = "network_unreachable"
    VALIDATION_FAILED = "validation_failed"
    SESSION_EXPIRING = "session_expiring"
    SESSION_INVALID = "session_invalid"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNKNOWN_ERROR = "unknown_error"


NETWORK_MESSAGE = "Unable to connect to server. Please check your network connection"
SESSION_EXPIRED_MESSAGE = "Session expired. Please sign in again."
GENERIC_MESSAGE = "An error occurred. Please try again"

FALLBACK_MESSAGES = {
    ErrorKind.FORBIDDEN: "You do not have permission to access this resource",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.SERVER_ERROR: "Internal server error. Please try again later",
    ErrorKind.SERVICE_UNAVAILABLE: "Service temporarily unavailable. Please try again later",
    ErrorKind.UNKNOWN_ERROR: "An error occurred",
}

STATUS_KINDS = {
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    500: ErrorKind.SERVER_ERROR,
    503: ErrorKind.SERVICE_UNAVAILABLE,
}


class ClassifiedError(GatewayException):
    """A failed request, classified for the caller and the UI."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.kind = kind
        self.http_status = http_status
        super().__init__(kind.value.upper(), message, details)

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r}, http_status={self.http_status!r})"


@dataclass
class FailedOutcome:
    """A failed transport outcome. ``status_code`` is None when no response arrived."""
    status_code: Optional[int] = None
    body: Any = None


@dataclass
class Classification:
    """Classifier verdict and routing decision."""
    error: ClassifiedError
    should_attempt_renewal: bool = False
    requires_teardown: bool = False


def _body_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    # class-validator style bodies sometimes carry a list of messages
    if isinstance(message, list):
        message = message[0] if message else None
    if message is None or message == "":
        return None
    return str(message)


def extract_validation_message(body: Any) -> Optional[str]:
    """First constraint message of the first field-validation detail."""
    if not isinstance(body, dict):
        return None
    details = body.get("details")
    if not isinstance(details, list) or not details:
        return None
    first = details[0]
    constraints = first.get("constraints") if isinstance(first, dict) else None
    if isinstance(constraints, dict):
        for message in constraints.values():
            if message:
                return str(message)
    return None


def classify_failure(
    outcome: FailedOutcome,
    *,
    is_auth_endpoint: bool = False,
    was_retried: bool = False
) -> Classification:
    """Classify a failed request outcome.

    Rules are applied in priority order: transport failure, 401 routing,
    400 validation, then the remaining status codes.
    """
    status = outcome.status_code
    body = outcome.body
    body_message = _body_message(body)

    if status is None:
        return Classification(ClassifiedError(ErrorKind.NETWORK_UNREACHABLE, NETWORK_MESSAGE))

    if status == 401:
        if not is_auth_endpoint and not was_retried:
            return Classification(
                ClassifiedError(ErrorKind.SESSION_EXPIRING, body_message or SESSION_EXPIRED_MESSAGE, 401),
                should_attempt_renewal=True
            )
        return Classification(
            ClassifiedError(ErrorKind.SESSION_INVALID, body_message or SESSION_EXPIRED_MESSAGE, 401),
            requires_teardown=True
        )

    if status == 400:
        details = body.get("details") if isinstance(body, dict) else None
        if isinstance(details, list):
            message = extract_validation_message(body) or body_message or "Validation failed"
            return Classification(
                ClassifiedError(ErrorKind.VALIDATION_FAILED, message, 400, {"details": details})
            )
        return Classification(
            ClassifiedError(ErrorKind.VALIDATION_FAILED, body_message or "Invalid request data", 400)
        )

    kind = STATUS_KINDS.get(status, ErrorKind.UNKNOWN_ERROR)
    return Classification(ClassifiedError(kind, body_message or FALLBACK_MESSAGES[kind], status))
