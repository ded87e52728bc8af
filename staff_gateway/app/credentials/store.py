"""
Process-wide credential store for the gateway client.
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from shared.logging import get_logger


ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"

STORAGE_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


@dataclass(frozen=True)
class CredentialPair:
    """Access and refresh credentials; either may be missing."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.access_token is None and self.refresh_token is None


class CredentialBackend(ABC):
    """Key-value storage behind the credential store."""

    @abstractmethod
    def read(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def write(self, values: Dict[str, Any]) -> None:
        ...


class MemoryBackend(CredentialBackend):
    """Keeps credentials for the lifetime of the process."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def read(self) -> Dict[str, Any]:
        return dict(self._values)

    def write(self, values: Dict[str, Any]) -> None:
        self._values = dict(values)


class JsonFileBackend(CredentialBackend):
    """Persists credentials to a JSON file so they survive restarts."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = get_logger("staff_gateway.credentials.file")

    def read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            values = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.warning("Unreadable credentials file, treating as empty", path=str(self.path), error=str(e))
            return {}
        if not isinstance(values, dict):
            return {}
        return {key: values[key] for key in STORAGE_KEYS if key in values}

    def write(self, values: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(values), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            self.logger.error("Failed to persist credentials", path=str(self.path), error=str(e))


class CredentialStore:
    """Holds the current credential pair and the cached user record.

    All operations are synchronous and never raise. Every request in the
    process sees the same pair.
    """

    def __init__(self, backend: Optional[CredentialBackend] = None):
        self.backend = backend or MemoryBackend()
        self.logger = get_logger("staff_gateway.credentials.store")
        self._lock = threading.Lock()
        self._values = self.backend.read()

    def get(self) -> CredentialPair:
        """Get the current credential pair."""
        with self._lock:
            return CredentialPair(
                access_token=self._values.get(ACCESS_TOKEN_KEY),
                refresh_token=self._values.get(REFRESH_TOKEN_KEY)
            )

    def set(self, pair: CredentialPair) -> None:
        """Overwrite both credentials."""
        with self._lock:
            self._values[ACCESS_TOKEN_KEY] = pair.access_token
            self._values[REFRESH_TOKEN_KEY] = pair.refresh_token
            self.backend.write(self._values)
        self.logger.debug("Credentials updated", has_refresh_token=pair.refresh_token is not None)

    def get_user(self) -> Optional[Dict[str, Any]]:
        """Get the cached user record, if any."""
        with self._lock:
            user = self._values.get(USER_KEY)
            return dict(user) if isinstance(user, dict) else None

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        """Cache the signed-in user record."""
        with self._lock:
            self._values[USER_KEY] = user
            self.backend.write(self._values)

    def clear(self) -> None:
        """Remove credentials and the cached user record. Idempotent."""
        with self._lock:
            if not self._values:
                return
            self._values = {}
            self.backend.write(self._values)
        self.logger.info("Credentials cleared")


_default_store: Optional[CredentialStore] = None
_default_store_lock = threading.Lock()


def get_credential_store(backend: Optional[CredentialBackend] = None) -> CredentialStore:
    """Get the process-wide credential store, creating it on first use."""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = CredentialStore(backend)
        return _default_store
