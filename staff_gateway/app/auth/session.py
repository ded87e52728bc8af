"""
Session lifecycle: establishing credentials and tearing the session down.
"""

import threading
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger
from ..credentials.store import CredentialPair, CredentialStore
from ..errors.classifier import SESSION_EXPIRED_MESSAGE
from ..notifications.notifier import Notifier, LogNotifier

if TYPE_CHECKING:
    from shared.metrics import MetricsCollector


SIGNED_OUT_MESSAGE = "You have been signed out"


class SessionManager:
    """Writes credentials on sign-in and clears them on teardown.

    ``teardown`` may be called any number of times, from any number of
    concurrent requests. The store is cleared every time but the user is
    notified and redirected only once per established session.
    """

    def __init__(
        self,
        store: CredentialStore,
        notifier: Optional[Notifier] = None,
        on_signed_out: Optional[Callable[[str], Any]] = None,
        sign_in_path: str = "/sign-in",
        metrics: Optional["MetricsCollector"] = None
    ):
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.on_signed_out = on_signed_out
        self.sign_in_path = sign_in_path
        self.metrics = metrics
        self.logger = get_logger("staff_gateway.auth.session")
        self._lock = threading.Lock()
        self._torn_down = False

    @property
    def is_authenticated(self) -> bool:
        return self.store.get().access_token is not None

    def establish(self, pair: CredentialPair, user: Optional[Dict[str, Any]] = None) -> None:
        """Store a freshly issued credential pair and arm teardown."""
        with self._lock:
            self.store.set(pair)
            if user is not None:
                self.store.set_user(user)
            self._torn_down = False
        self.logger.info("Session established", user_id=(user or {}).get("id"))

    def teardown(self, reason: str = "session_expired") -> bool:
        """Clear credentials; notify and redirect on the first call only."""
        with self._lock:
            self.store.clear()
            if self._torn_down:
                return False
            self._torn_down = True

        self.logger.warning("Session torn down", reason=reason)
        if self.metrics:
            self.metrics.record_teardown(reason)
        self.notifier.error(SESSION_EXPIRED_MESSAGE)
        self._redirect()
        return True

    def sign_out(self) -> None:
        """User-initiated logout."""
        with self._lock:
            self.store.clear()
            self._torn_down = True
        self.logger.info("Signed out")
        self.notifier.success(SIGNED_OUT_MESSAGE)
        self._redirect()

    def _redirect(self) -> None:
        if self.on_signed_out is not None:
            self.on_signed_out(self.sign_in_path)
