"""
Credential renewal and session lifecycle.
"""

from .refresh import (
    RefreshCoordinator,
    RefreshState,
    extract_token_pair,
    get_refresh_coordinator,
)
from .session import SessionManager

__all__ = [
    "RefreshCoordinator",
    "RefreshState",
    "extract_token_pair",
    "get_refresh_coordinator",
    "SessionManager",
]
