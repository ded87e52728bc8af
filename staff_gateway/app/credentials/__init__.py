"""
Credential storage for the gateway client.
"""

from .store import (
    CredentialPair,
    CredentialStore,
    CredentialBackend,
    MemoryBackend,
    JsonFileBackend,
    get_credential_store,
)

__all__ = [
    "CredentialPair",
    "CredentialStore",
    "CredentialBackend",
    "MemoryBackend",
    "JsonFileBackend",
    "get_credential_store",
]
