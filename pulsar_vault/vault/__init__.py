"""Credential Vault — API keys encrypted at rest.

Security Note (Threat Model):
    The master key is held in process memory for the life of the process.
    Records carry no key id, so replacing the master key makes every stored
    record unreadable; clear the stored keys instead (``clear_api_keys``).
"""

from .codec import CredentialVault
from .config import VaultConfig, load_master_key, generate_master_key
from .crypto import (
    DecodeResult,
    DecodeStatus,
    encode,
    decode,
    decode_result,
    is_encoded,
)
from .store import CredentialStore
from .migration import encrypt_legacy_keys, clear_api_keys

__all__ = [
    "CredentialVault",
    "CredentialStore",
    "VaultConfig",
    "load_master_key",
    "generate_master_key",
    "DecodeResult",
    "DecodeStatus",
    "encode",
    "decode",
    "decode_result",
    "is_encoded",
    "encrypt_legacy_keys",
    "clear_api_keys",
]
