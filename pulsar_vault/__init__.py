"""Pulsar Vault.

Encrypted storage of user-supplied LLM API keys for PulsarTeam.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    EncryptionFailure,
    VaultDisabled,
    UserNotFound,
)
from .vault import CredentialVault, CredentialStore, VaultConfig

__all__ = [
    "__version__",
    "VaultError",
    "EncryptionFailure",
    "VaultDisabled",
    "UserNotFound",
    "CredentialVault",
    "CredentialStore",
    "VaultConfig",
]
