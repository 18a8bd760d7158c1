"""
CredentialVault — the encode/decode pair bound to one VaultConfig.

Built once at startup and shared by the request handlers. It holds no
state besides the immutable config, so concurrent use needs no locking.
"""
from typing import Optional

from . import crypto
from .config import VaultConfig
from .crypto import DecodeResult


class CredentialVault:
    """Encrypts and decrypts stored API keys with the configured master key.

    With no usable master key every operation is a pass-through.
    """

    def __init__(self, config: VaultConfig):
        self._config = config
        self._master_key: Optional[str] = config.raw_key()

    def __repr__(self) -> str:
        return f"<CredentialVault enabled={self.enabled}>"

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._master_key is not None

    @classmethod
    def from_env(cls) -> "CredentialVault":
        """Build a vault from the ENCRYPTION_KEY environment variable."""
        return cls(VaultConfig.from_env())

    def encode(self, plaintext: str) -> str:
        """Encrypt plaintext for storage.

        Raises:
            EncryptionFailure: If encryption fails with a usable key.
        """
        return crypto.encode(plaintext, self._master_key)

    def decode(self, stored_value: str) -> str:
        """Decrypt a stored value, or return it unchanged if unreadable."""
        return crypto.decode(stored_value, self._master_key)

    def decode_result(self, stored_value: str) -> DecodeResult:
        return crypto.decode_result(stored_value, self._master_key)

    @staticmethod
    def is_encoded(value: str) -> bool:
        return crypto.is_encoded(value)
