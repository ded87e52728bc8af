"""
HTTP gateway client shared by every backend resource wrapper.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from shared.logging import get_logger, new_request_id
from shared.metrics import MetricsCollector
from .auth.refresh import RefreshCoordinator, extract_token_pair, get_refresh_coordinator
from .auth.session import SessionManager
from .credentials.store import CredentialPair, CredentialStore, get_credential_store
from .envelope.normalizer import is_paginated, normalize_envelope
from .errors.classifier import (
    ClassifiedError,
    ErrorKind,
    FailedOutcome,
    GENERIC_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    classify_failure,
)
from .notifications.notifier import Notifier, LogNotifier


DEFAULT_HEADERS = {"Content-Type": "application/json"}


@dataclass
class RequestDescriptor:
    """One logical outbound call, replayable after a credential renewal."""
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    was_retried: bool = False
    access_token: Optional[str] = None
    request_id: str = field(default_factory=new_request_id)


class GatewayClient:
    """Attaches credentials, unwraps envelopes, classifies errors and renews sessions."""

    def __init__(
        self,
        base_url: str,
        *,
        store: Optional[CredentialStore] = None,
        coordinator: Optional[RefreshCoordinator] = None,
        session: Optional[SessionManager] = None,
        notifier: Optional[Notifier] = None,
        metrics: Optional[MetricsCollector] = None,
        timeout: float = 30.0,
        login_path: str = "/auth/login",
        refresh_path: str = "/auth/refresh",
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.logger = get_logger("staff_gateway.client")
        self.store = store or get_credential_store()
        self.coordinator = coordinator or get_refresh_coordinator()
        self.notifier = notifier or LogNotifier()
        self.session = session or SessionManager(self.store, self.notifier, metrics=metrics)
        self.metrics = metrics
        self.login_path = login_path
        self.refresh_path = refresh_path
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=DEFAULT_HEADERS,
            transport=transport
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None,
                   headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("POST", path, params=params, json=json, headers=headers)

    async def put(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("PUT", path, params=params, json=json, headers=headers)

    async def patch(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None,
                    headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("PATCH", path, params=params, json=json, headers=headers)

    async def delete(self, path: str, params: Optional[Dict[str, Any]] = None, json: Any = None,
                     headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("DELETE", path, params=params, json=json, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """Send a request and return its normalized payload.

        Raises:
            ClassifiedError: for every failure that is not recovered by a
                credential renewal.
        """
        descriptor = RequestDescriptor(
            method=method.upper(),
            path=path,
            params=params,
            json=json,
            headers=dict(headers or {})
        )
        return await self._execute(descriptor)

    def is_auth_endpoint(self, path: str) -> bool:
        return self.login_path in path or self.refresh_path in path

    async def _execute(self, descriptor: RequestDescriptor) -> Any:
        logger = self.logger.bind(
            request_id=descriptor.request_id,
            method=descriptor.method,
            path=descriptor.path,
            retried=descriptor.was_retried
        )

        try:
            response = await self._send(descriptor)
        except httpx.RequestError as e:
            logger.warning("No response from backend", error=str(e))
            outcome = FailedOutcome(status_code=None)
        except httpx.InvalidURL as e:
            logger.error("Request could not be built", error=str(e))
            error = ClassifiedError(ErrorKind.UNKNOWN_ERROR, GENERIC_MESSAGE, details={"error": str(e)})
            self._surface(error)
            raise error from e
        else:
            body = self._decode(response)
            if response.is_success:
                logger.debug("Request succeeded", status_code=response.status_code, paginated=is_paginated(body))
                return normalize_envelope(body)
            logger.info("Request failed", status_code=response.status_code)
            outcome = FailedOutcome(status_code=response.status_code, body=body)

        classification = classify_failure(
            outcome,
            is_auth_endpoint=self.is_auth_endpoint(descriptor.path),
            was_retried=descriptor.was_retried
        )

        if classification.should_attempt_renewal:
            try:
                descriptor.access_token = await self._recover_session(descriptor)
            except ClassifiedError as e:
                # session_invalid was already announced by the teardown
                if e.kind != ErrorKind.SESSION_INVALID:
                    self._surface(e)
                raise
            logger.info("Replaying request with renewed credentials")
            return await self._execute(descriptor)

        if classification.requires_teardown:
            if self.session.teardown("unauthorized") or not self.is_auth_endpoint(descriptor.path):
                self._record_error(classification.error)
            else:
                self._surface(classification.error)
            raise classification.error

        self._surface(classification.error)
        raise classification.error

    async def _send(self, descriptor: RequestDescriptor) -> httpx.Response:
        headers = dict(descriptor.headers)
        access_token = descriptor.access_token or self.store.get().access_token
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        return await self._timed_request(
            descriptor.method,
            descriptor.path,
            params=descriptor.params,
            json=descriptor.json,
            headers=headers
        )

    async def _timed_request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self.metrics is None:
            return await self._http.request(method, path, **kwargs)

        with self.metrics.time_request(method) as timing:
            response = await self._http.request(method, path, **kwargs)
            timing["status_code"] = response.status_code
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _surface(self, error: ClassifiedError) -> None:
        self._record_error(error)
        self.notifier.error(error.message)

    def _record_error(self, error: ClassifiedError) -> None:
        self.logger.info("Classified request error", kind=error.kind.value, http_status=error.http_status)
        if self.metrics:
            self.metrics.record_error(error.kind.value)

    async def _recover_session(self, descriptor: RequestDescriptor) -> str:
        """Obtain a renewed access token for a renewal-eligible request."""
        refresh_token = self.store.get().refresh_token
        if not refresh_token:
            error = ClassifiedError(ErrorKind.SESSION_INVALID, SESSION_EXPIRED_MESSAGE, 401)
            self._record_error(error)
            self.session.teardown("missing_refresh_token")
            raise error

        descriptor.was_retried = True

        async def renew() -> str:
            return await self._renew_credentials(refresh_token)

        return await self.coordinator.refresh(renew)

    async def _renew_credentials(self, refresh_token: str) -> str:
        """Call the renewal endpoint once; tears the session down on any failure."""
        try:
            pair = await self._request_new_pair(refresh_token)
        except ClassifiedError as e:
            self.logger.warning("Credential renewal failed", http_status=e.http_status, reason=e.details.get("reason"))
            self._record_error(e)
            self.session.teardown("renewal_failed")
            raise

        self.store.set(pair)
        self.logger.info("Credentials renewed")
        return pair.access_token

    async def _request_new_pair(self, refresh_token: str) -> CredentialPair:
        try:
            response = await self._timed_request("POST", self.refresh_path, json={"refresh_token": refresh_token})
        except httpx.RequestError as e:
            raise ClassifiedError(
                ErrorKind.SESSION_INVALID,
                SESSION_EXPIRED_MESSAGE,
                details={"reason": "network", "error": str(e)}
            ) from e

        if not response.is_success:
            raise ClassifiedError(
                ErrorKind.SESSION_INVALID,
                SESSION_EXPIRED_MESSAGE,
                response.status_code,
                details={"reason": "rejected"}
            )

        pair = extract_token_pair(self._decode(response))
        if pair is None:
            raise ClassifiedError(
                ErrorKind.SESSION_INVALID,
                SESSION_EXPIRED_MESSAGE,
                response.status_code,
                details={"reason": "invalid_response"}
            )
        return pair
