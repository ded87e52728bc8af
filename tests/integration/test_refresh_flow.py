"""
Integration tests for the credential renewal flow.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from staff_gateway.app.credentials.store import CredentialPair
from staff_gateway.app.errors.classifier import ClassifiedError, ErrorKind, SESSION_EXPIRED_MESSAGE
from staff_gateway.app.main import StaffGateway
from shared.config import GatewayConfig
from shared.test_helpers import BackendStub, MockStaff, RecordingNotifier, make_envelope, wait_until


class TestRefreshFlow:
    """Integration tests for renewal through a fully wired gateway."""

    @pytest.fixture
    def stub(self):
        staff = MockStaff()
        stub = BackendStub(refresh_gate=asyncio.Event())
        stub.route("POST", "/auth/login", lambda request: (200, make_envelope({
            "access_token": "T1",
            "refresh_token": "R1",
            "user": staff.to_record()
        })))
        return stub

    @pytest.fixture
    def notifier(self):
        return RecordingNotifier()

    @pytest.fixture
    def redirect(self):
        return MagicMock()

    @pytest.fixture
    def registry(self):
        return CollectorRegistry()

    @pytest_asyncio.fixture
    async def gateway(self, stub, notifier, redirect, registry):
        config = GatewayConfig(api_base_url_dev="http://backend.test", refresh_wait_timeout=5)
        gateway = StaffGateway(
            config,
            notifier=notifier,
            on_signed_out=redirect,
            registry=registry,
            transport=stub.transport(),
            configure_logs=False
        )
        await gateway.auth.login("jane.doe@medicalink.click", "secret")
        notifier.messages.clear()
        yield gateway
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_request_arriving_during_renewal_is_queued(self, gateway, stub, registry):
        """A fires and starts renewal, B 401s meanwhile, both replay with T2."""
        request_a = asyncio.ensure_future(gateway.client.get("/appointments"))
        await wait_until(lambda: len(stub.refresh_calls) == 1)

        request_b = asyncio.ensure_future(gateway.client.get("/patients"))
        await wait_until(lambda: gateway.coordinator.queue_depth == 1)
        assert gateway.coordinator.is_refreshing

        stub.refresh_gate.set()
        result_a, result_b = await asyncio.gather(request_a, request_b)

        assert result_a == {"path": "/appointments"}
        assert result_b == {"path": "/patients"}
        assert stub.refresh_calls == [{"refresh_token": "R1"}]
        assert stub.bearer_tokens("/appointments") == ["T1", "T2"]
        assert stub.bearer_tokens("/patients") == ["T1", "T2"]
        assert gateway.store.get() == CredentialPair("T2", "R2")
        assert registry.get_sample_value("gateway_refresh_total", {"outcome": "success"}) == 1

    @pytest.mark.asyncio
    async def test_renewed_credentials_are_reused(self, gateway, stub):
        """Requests after a renewal go straight through with the new token."""
        stub.refresh_gate.set()
        await gateway.client.get("/appointments")

        await gateway.client.get("/doctors")

        assert stub.bearer_tokens("/doctors") == ["T2"]
        assert len(stub.refresh_calls) == 1

    @pytest.mark.asyncio
    async def test_rejected_renewal_ends_session(self, gateway, stub, notifier, redirect):
        """Both requests fail, the user is told once and sent to sign-in."""
        stub.refresh_status = 401

        request_a = asyncio.ensure_future(gateway.client.get("/appointments"))
        await wait_until(lambda: len(stub.refresh_calls) == 1)
        request_b = asyncio.ensure_future(gateway.client.get("/patients"))
        await wait_until(lambda: gateway.coordinator.queue_depth == 1)

        stub.refresh_gate.set()
        results = await asyncio.gather(request_a, request_b, return_exceptions=True)

        assert [result.kind for result in results] == [ErrorKind.SESSION_INVALID] * 2
        assert all(isinstance(result, ClassifiedError) for result in results)
        assert gateway.store.get().is_empty
        assert gateway.store.get_user() is None
        assert notifier.errors == [SESSION_EXPIRED_MESSAGE]
        redirect.assert_called_once_with("/sign-in")
        assert not gateway.session.is_authenticated

    @pytest.mark.asyncio
    async def test_sign_in_again_after_teardown(self, gateway, stub, notifier):
        """A fresh login after teardown restores normal operation."""
        stub.refresh_status = 401
        stub.refresh_gate.set()
        with pytest.raises(ClassifiedError):
            await gateway.client.get("/appointments")

        stub.valid_tokens.add("T1")
        await gateway.auth.login("jane.doe@medicalink.click", "secret")

        assert await gateway.client.get("/appointments") == {"path": "/appointments"}
        assert gateway.store.get() == CredentialPair("T1", "R1")
