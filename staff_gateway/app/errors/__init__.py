"""
Error taxonomy and failure classification.
"""

from .classifier import (
    ErrorKind,
    ClassifiedError,
    FailedOutcome,
    Classification,
    classify_failure,
    extract_validation_message,
    NETWORK_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    GENERIC_MESSAGE,
)

__all__ = [
    "ErrorKind",
    "ClassifiedError",
    "FailedOutcome",
    "Classification",
    "classify_failure",
    "extract_validation_message",
    "NETWORK_MESSAGE",
    "SESSION_EXPIRED_MESSAGE",
    "GENERIC_MESSAGE",
]
