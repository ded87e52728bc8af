"""
Single-flight credential renewal.

Many requests can find an expired access token at the same time. Only the
first one starts a renewal; the rest wait in a FIFO queue and are released
together when the renewal settles.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from ..credentials.store import CredentialPair
from ..errors.classifier import ClassifiedError, ErrorKind

if TYPE_CHECKING:
    from shared.metrics import MetricsCollector


RENEWAL_TIMEOUT_MESSAGE = "Timed out waiting for the session to be renewed. Please try again"
RENEWAL_INTERRUPTED_MESSAGE = "Session renewal was interrupted. Please try again"


class RefreshState(str, Enum):
    """Coordinator states."""
    IDLE = "idle"
    REFRESHING = "refreshing"


def extract_token_pair(body: Any) -> Optional[CredentialPair]:
    """Read a renewed credential pair from ``{data: {...}}`` or a flat body.

    Returns None unless both tokens are present.
    """
    if not isinstance(body, dict):
        return None
    payload = body.get("data") if isinstance(body.get("data"), dict) else body
    access_token = payload.get("access_token")
    refresh_token = payload.get("refresh_token")
    if not access_token or not refresh_token:
        return None
    return CredentialPair(access_token=access_token, refresh_token=refresh_token)


class RefreshCoordinator:
    """Owns the single-flight guard and the renewal wait queue."""

    def __init__(
        self,
        wait_timeout: Optional[float] = None,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.wait_timeout = wait_timeout
        self.metrics = metrics
        self.logger = get_logger("staff_gateway.auth.refresh")
        self._state = RefreshState.IDLE
        self._queue: List["asyncio.Future[str]"] = []
        self._task: Optional["asyncio.Task[str]"] = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state == RefreshState.REFRESHING

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    def try_begin_refresh(self) -> bool:
        """Claim the renewal slot. Must not await between check and set."""
        if self._state == RefreshState.REFRESHING:
            return False
        self._state = RefreshState.REFRESHING
        self.logger.info("Credential renewal started")
        return True

    def enqueue(self) -> "asyncio.Future[str]":
        """Append a continuation to the wait queue."""
        waiter: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        self._publish_depth()
        return waiter

    def _discard(self, waiter: "asyncio.Future[str]") -> None:
        if waiter in self._queue:
            self._queue.remove(waiter)
            self._publish_depth()

    async def _await_with_deadline(self, awaitable: Awaitable[str]) -> str:
        if self.wait_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, self.wait_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Timed out waiting for credential renewal", timeout=self.wait_timeout)
            raise ClassifiedError(
                ErrorKind.SERVICE_UNAVAILABLE,
                RENEWAL_TIMEOUT_MESSAGE,
                details={"timeout": self.wait_timeout}
            )

    async def wait_for_refresh(self) -> str:
        """Wait in the queue for the in-flight renewal; returns the new access token.

        A waiter that times out or is cancelled leaves the queue without
        affecting the others.
        """
        waiter = self.enqueue()
        self.logger.debug("Request queued behind credential renewal", queue_depth=self.queue_depth)
        try:
            return await self._await_with_deadline(waiter)
        finally:
            self._discard(waiter)

    def settle(self, access_token: Optional[str] = None, error: Optional[BaseException] = None) -> int:
        """Release every queued waiter in FIFO order and return to IDLE."""
        if self._state != RefreshState.REFRESHING:
            self.logger.warning("Settle called with no renewal in flight")
            return 0
        if error is None and access_token is None:
            raise ValueError("settle() needs an access token or an error")

        waiters, self._queue = self._queue, []
        self._state = RefreshState.IDLE
        self._task = None
        self._publish_depth()

        settled = 0
        for waiter in waiters:
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(access_token)
            settled += 1

        self.logger.info(
            "Credential renewal settled",
            outcome="failure" if error is not None else "success",
            released=settled
        )
        return settled

    async def _run(self, renew: Callable[[], Awaitable[str]]) -> str:
        try:
            access_token = await renew()
        except asyncio.CancelledError:
            self.logger.warning("Credential renewal cancelled")
            self.settle(error=ClassifiedError(ErrorKind.SERVICE_UNAVAILABLE, RENEWAL_INTERRUPTED_MESSAGE))
            raise
        except Exception as e:
            if self.metrics:
                self.metrics.record_refresh("failure")
            self.settle(error=e)
            raise
        if self.metrics:
            self.metrics.record_refresh("success")
        self.settle(access_token=access_token)
        return access_token

    async def refresh(self, renew: Callable[[], Awaitable[str]]) -> str:
        """Start a renewal or join the one in flight; returns the new access token.

        ``renew`` performs the renewal call and returns the new access token.
        It runs as its own task, so cancelling the request that started it
        does not strand the queue. If the renewal task itself is cancelled,
        waiters are rejected with service_unavailable and the stored
        credentials are left alone, so the next 401 can renew again.
        """
        if not self.try_begin_refresh():
            return await self.wait_for_refresh()

        task = asyncio.ensure_future(self._run(renew))
        task.add_done_callback(_consume_result)
        self._task = task
        return await self._await_with_deadline(asyncio.shield(task))

    def _publish_depth(self) -> None:
        if self.metrics:
            self.metrics.set_queue_depth(len(self._queue))


def _consume_result(task: "asyncio.Task[str]") -> None:
    # the trigger may have stopped waiting; its waiters already got the outcome
    if not task.cancelled():
        task.exception()


refresh_coordinator = RefreshCoordinator()


def get_refresh_coordinator() -> RefreshCoordinator:
    """Get the process-wide refresh coordinator."""
    return refresh_coordinator
