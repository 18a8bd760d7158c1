"""
Vault Configuration — Master key loading and validated settings.

Reads the master key from the environment:
    ENCRYPTION_KEY = <64 hex characters (32 bytes)>

A missing or malformed key is not an error: the vault then runs in
disabled mode and stores values as given.

Security Note:
    Never log key material. Only log whether a key is present and its length.
"""
import os
import re
import secrets
import logging
from typing import Optional

from pydantic import BaseModel, SecretStr

logger = logging.getLogger("pulsar.vault")

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
MASTER_KEY_HEX_LENGTH = 64

_HEX_KEY_PATTERN = re.compile(r"[0-9a-fA-F]{64}")


def is_valid_master_key(master_key: Optional[str]) -> bool:
    """Return True if master_key is exactly 64 hexadecimal characters."""
    if not master_key:
        return False
    return _HEX_KEY_PATTERN.fullmatch(master_key) is not None


def load_master_key() -> Optional[str]:
    """Read the raw master key from the ENCRYPTION_KEY environment variable.

    Returns:
        The env value, or None if unset or empty.
    """
    value = os.environ.get(ENCRYPTION_KEY_ENV)
    if not value:
        return None
    return value


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return it as 64 hex chars.

    This is a utility for operators to generate new keys.

    Returns:
        Lowercase hex-encoded 32-byte key string.
    """
    return secrets.token_bytes(32).hex()


class VaultConfig(BaseModel):
    """Validated vault configuration.

    ``master_key`` is kept as a SecretStr so it never shows up in reprs or logs.
    """

    master_key: Optional[SecretStr] = None

    model_config = {"frozen": True}

    @property
    def enabled(self) -> bool:
        """True when the master key is usable for encryption."""
        if self.master_key is None:
            return False
        return is_valid_master_key(self.master_key.get_secret_value())

    def raw_key(self) -> Optional[str]:
        """Return the master key hex string, or None when disabled."""
        if not self.enabled:
            return None
        return self.master_key.get_secret_value()

    def key_bytes(self) -> Optional[bytes]:
        """Return the 32 raw key bytes, or None when disabled."""
        raw = self.raw_key()
        if raw is None:
            return None
        return bytes.fromhex(raw)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading the master key from environment.

        Returns:
            Populated VaultConfig instance, disabled if the key is unusable.
        """
        raw = load_master_key()
        config = cls(master_key=raw)
        if raw is None:
            logger.warning(
                "%s is not set; API keys will be stored without encryption",
                ENCRYPTION_KEY_ENV,
            )
        elif not config.enabled:
            logger.warning(
                "%s must be %d hex characters (got %d); "
                "API keys will be stored without encryption",
                ENCRYPTION_KEY_ENV, MASTER_KEY_HEX_LENGTH, len(raw),
            )
        else:
            logger.debug("Vault master key loaded")
        return config
