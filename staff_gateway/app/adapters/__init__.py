"""
Adapters package for backend resources.

Resource wrappers build URLs and payload shapes and delegate transport,
credential handling and error surfacing to the GatewayClient. Only the auth
endpoints live here; feature resources own their wrappers.
"""

from .auth_service import AuthService
from .models import StaffUser, StaffRole, LoginResponse, TokenPairResponse, OperationResult

__all__ = [
    "AuthService",
    "StaffUser",
    "StaffRole",
    "LoginResponse",
    "TokenPairResponse",
    "OperationResult",
]
