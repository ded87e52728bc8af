"""
Auth endpoints of the staff backend.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger
from ..auth.session import SessionManager
from ..client import GatewayClient
from ..credentials.store import CredentialPair
from ..errors.classifier import ClassifiedError, ErrorKind
from .models import LoginResponse, OperationResult, StaffUser, TokenPairResponse


LOGIN_PARSE_MESSAGE = "Login successful but unable to parse response. Please try again."


class AuthService:
    """Sign-in, profile and password operations over the gateway client."""

    def __init__(self, client: GatewayClient, session: SessionManager):
        self.client = client
        self.session = session
        self.logger = get_logger("staff_gateway.adapters.auth")

    async def login(self, email: str, password: str) -> LoginResponse:
        """Authenticate and establish the session."""
        payload = await self.client.post(
            self.client.login_path,
            json={"email": email.strip().lower(), "password": password}
        )
        try:
            result = LoginResponse.model_validate(payload)
        except PydanticValidationError as e:
            self.logger.error("Unexpected login response", error=str(e))
            self.client.notifier.error(LOGIN_PARSE_MESSAGE)
            raise ClassifiedError(ErrorKind.UNKNOWN_ERROR, LOGIN_PARSE_MESSAGE) from e

        self.session.establish(
            CredentialPair(access_token=result.access_token, refresh_token=result.refresh_token),
            user=result.user.model_dump(mode="json", by_alias=True)
        )
        self.client.notifier.success(f"Welcome back, {result.user.full_name}!")
        return result

    def logout(self) -> None:
        """Forget the session locally."""
        self.session.sign_out()

    async def refresh_token(self, refresh_token: str) -> TokenPairResponse:
        """Explicitly exchange a refresh token; does not touch the stored pair."""
        payload = await self.client.post(self.client.refresh_path, json={"refresh_token": refresh_token})
        return TokenPairResponse.model_validate(payload)

    async def get_profile(self) -> StaffUser:
        """Fetch the signed-in user's profile and refresh the cached record."""
        payload = await self.client.get("/auth/profile")
        user = StaffUser.model_validate(payload)
        self.client.store.set_user(user.model_dump(mode="json", by_alias=True))
        return user

    async def change_password(self, current_password: str, new_password: str) -> OperationResult:
        return await self._acknowledge(
            "/auth/change-password",
            {"currentPassword": current_password, "newPassword": new_password}
        )

    async def verify_password(self, password: str) -> OperationResult:
        return await self._acknowledge("/auth/verify-password", {"password": password})

    async def request_password_reset(self, email: str) -> OperationResult:
        return await self._acknowledge("/auth/password-reset/request", {"email": email.strip().lower()})

    async def verify_reset_code(self, email: str, code: str) -> OperationResult:
        return await self._acknowledge("/auth/password-reset/verify-code", {"email": email, "code": code})

    async def confirm_password_reset(self, email: str, code: str, new_password: str) -> OperationResult:
        return await self._acknowledge(
            "/auth/password-reset/confirm",
            {"email": email, "code": code, "newPassword": new_password}
        )

    async def _acknowledge(self, path: str, body: Any) -> OperationResult:
        payload = await self.client.post(path, json=body)
        if isinstance(payload, dict):
            return OperationResult.model_validate(payload)
        return OperationResult()
