"""
Unit tests for the auth endpoint adapter.
"""

import json
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from staff_gateway.app.adapters import AuthService, OperationResult, StaffRole
from staff_gateway.app.adapters.auth_service import LOGIN_PARSE_MESSAGE
from staff_gateway.app.auth.refresh import RefreshCoordinator
from staff_gateway.app.auth.session import SessionManager, SIGNED_OUT_MESSAGE
from staff_gateway.app.client import GatewayClient
from staff_gateway.app.credentials.store import CredentialPair, CredentialStore, MemoryBackend
from staff_gateway.app.errors.classifier import ClassifiedError, ErrorKind
from shared.test_helpers import (
    BackendStub,
    MockStaff,
    MockTokenGenerator,
    RecordingNotifier,
    make_envelope,
)


class TestAuthService:
    """Test cases for AuthService."""

    @pytest.fixture
    def staff(self):
        return MockStaff()

    @pytest.fixture
    def tokens(self, staff):
        return MockTokenGenerator().generate_token_pair(staff)

    @pytest.fixture
    def stub(self, tokens):
        return BackendStub(valid_tokens={tokens[0]})

    @pytest.fixture
    def store(self):
        return CredentialStore(MemoryBackend())

    @pytest.fixture
    def notifier(self):
        return RecordingNotifier()

    @pytest.fixture
    def redirect(self):
        return MagicMock()

    @pytest_asyncio.fixture
    async def auth(self, stub, store, notifier, redirect):
        session = SessionManager(store, notifier, on_signed_out=redirect)
        client = GatewayClient(
            "http://backend.test/api",
            store=store,
            coordinator=RefreshCoordinator(),
            session=session,
            notifier=notifier,
            transport=stub.transport()
        )
        yield AuthService(client, session)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_login_establishes_session(self, auth, stub, store, notifier, staff, tokens):
        """Login stores the pair and the user record, then greets the user."""
        access_token, refresh_token = tokens
        stub.route("POST", "/auth/login", lambda request: (200, make_envelope({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user": staff.to_record()
        })))

        result = await auth.login("  Jane.Doe@MedicaLink.click ", "secret")

        assert result.user.role == StaffRole.ADMIN
        assert json.loads(stub.requests[0].content) == {"email": "jane.doe@medicalink.click", "password": "secret"}
        assert stub.bearer_tokens() == [None]
        assert store.get() == CredentialPair(access_token, refresh_token)
        assert store.get_user() == staff.to_record()
        assert notifier.messages == [("success", "Welcome back, Jane Doe!")]

    @pytest.mark.asyncio
    async def test_unparseable_login_response(self, auth, stub, store, notifier):
        """A 2xx login without tokens is reported and nothing is stored."""
        stub.route("POST", "/auth/login", lambda request: (200, make_envelope({"token": "x"})))

        with pytest.raises(ClassifiedError) as exc_info:
            await auth.login("jane.doe@medicalink.click", "secret")

        assert exc_info.value.kind == ErrorKind.UNKNOWN_ERROR
        assert notifier.errors == [LOGIN_PARSE_MESSAGE]
        assert store.get().is_empty

    @pytest.mark.asyncio
    async def test_rejected_login_never_renews(self, auth, stub, notifier):
        """Bad credentials fail without a renewal attempt."""
        stub.route("POST", "/auth/login", lambda request: (401, {"message": "Invalid credentials"}))

        with pytest.raises(ClassifiedError) as exc_info:
            await auth.login("jane.doe@medicalink.click", "wrong")

        assert exc_info.value.kind == ErrorKind.SESSION_INVALID
        assert stub.refresh_calls == []

    @pytest.mark.asyncio
    async def test_get_profile_caches_user(self, auth, stub, store, staff, tokens):
        """The profile refreshes the cached user record."""
        store.set(CredentialPair(*tokens))
        stub.route("GET", "/auth/profile", lambda request: (200, make_envelope(staff.to_record())))

        user = await auth.get_profile()

        assert user.full_name == "Jane Doe"
        assert stub.bearer_tokens("/auth/profile") == [tokens[0]]
        assert store.get_user()["fullName"] == "Jane Doe"

    @pytest.mark.asyncio
    async def test_explicit_refresh_returns_pair(self, auth, stub):
        """refresh_token exchanges a refresh token through the pipeline."""
        result = await auth.refresh_token("R1")

        assert (result.access_token, result.refresh_token) == ("T2", "R2")
        assert stub.refresh_calls == [{"refresh_token": "R1"}]

    @pytest.mark.asyncio
    async def test_logout(self, auth, store, notifier, redirect, tokens):
        """Logout is local and redirects to sign-in."""
        store.set(CredentialPair(*tokens))

        auth.logout()

        assert store.get().is_empty
        assert notifier.messages == [("success", SIGNED_OUT_MESSAGE)]
        redirect.assert_called_once_with("/sign-in")

    @pytest.mark.asyncio
    async def test_change_password(self, auth, stub, store, tokens):
        """Password changes return the backend acknowledgement."""
        store.set(CredentialPair(*tokens))
        stub.route("POST", "/auth/change-password", lambda request: (200, {
            "success": True,
            "message": "Password changed successfully"
        }))

        result = await auth.change_password("old-secret", "new-secret")

        assert result == OperationResult(success=True, message="Password changed successfully")
        assert json.loads(stub.requests[0].content) == {
            "currentPassword": "old-secret",
            "newPassword": "new-secret"
        }

    @pytest.mark.asyncio
    async def test_password_reset_flow(self, auth, stub):
        """The reset steps post to their endpoints without credentials."""
        stub.public_paths |= {"/auth/password-reset/verify-code", "/auth/password-reset/confirm"}

        await auth.request_password_reset(" Jane.Doe@medicalink.click")
        await auth.verify_reset_code("jane.doe@medicalink.click", "123456")
        result = await auth.confirm_password_reset("jane.doe@medicalink.click", "123456", "new-secret")

        assert result.success
        assert stub.completed == [
            "/auth/password-reset/request",
            "/auth/password-reset/verify-code",
            "/auth/password-reset/confirm"
        ]
        assert json.loads(stub.requests[0].content) == {"email": "jane.doe@medicalink.click"}

    @pytest.mark.asyncio
    async def test_verify_password_failure(self, auth, stub, store, notifier, tokens):
        """A wrong password surfaces the server message."""
        store.set(CredentialPair(*tokens))
        stub.route("POST", "/auth/verify-password", lambda request: (403, {"message": "Password is incorrect"}))

        with pytest.raises(ClassifiedError) as exc_info:
            await auth.verify_password("nope")

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert notifier.errors == ["Password is incorrect"]
