"""
CredentialStore — Persists a user's personal Gemini API key.

The key lives in ``users.gemini_api_key`` (plain text column) and is written
exactly as returned by :meth:`CredentialVault.encode`.

Security Note:
    Never log plaintext or ciphertext values. Only log user IDs and
    decode statuses.
"""
import logging
from typing import Any, Optional

from ..exceptions import UserNotFound
from .codec import CredentialVault
from .crypto import DecodeResult

logger = logging.getLogger("pulsar.vault")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_UPDATE_API_KEY = """
UPDATE users
SET gemini_api_key = $1, updated_at = NOW()
WHERE id = $2
RETURNING id
"""

_CLEAR_API_KEY = """
UPDATE users
SET gemini_api_key = NULL, updated_at = NOW()
WHERE id = $1
RETURNING id
"""

_SELECT_API_KEY = """
SELECT gemini_api_key
FROM users
WHERE id = $1
"""


class CredentialStore:
    """Reads and writes encrypted API keys through an asyncpg-compatible pool."""

    def __init__(self, db_pool: Any, vault: CredentialVault):
        self._db = db_pool
        self._vault = vault

    @property
    def vault(self) -> CredentialVault:
        return self._vault

    async def _fetch_stored(self, user_id: Any) -> Optional[str]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_API_KEY, user_id)
        if row is None:
            raise UserNotFound(user_id)
        return row["gemini_api_key"]

    async def save_api_key(self, user_id: Any, api_key: str) -> None:
        """Encrypt and persist a user's API key.

        Args:
            user_id: Owner of the key.
            api_key: Plain API key as submitted by the user.

        Raises:
            ValueError: If api_key is empty or only whitespace.
            EncryptionFailure: If encryption fails; nothing is stored.
            UserNotFound: If the user does not exist.
        """
        if not api_key or not api_key.strip():
            raise ValueError("API key is required")
        stored_value = self._vault.encode(api_key)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_UPDATE_API_KEY, stored_value, user_id)
        if row is None:
            raise UserNotFound(user_id)
        logger.debug(
            "API key saved: user=%s encrypted=%s",
            user_id, self._vault.enabled,
        )

    async def load_api_key(self, user_id: Any) -> Optional[DecodeResult]:
        """Load and decrypt a user's API key.

        Returns:
            DecodeResult, or None if the user has no stored key.

        Raises:
            UserNotFound: If the user does not exist.
        """
        stored_value = await self._fetch_stored(user_id)
        if stored_value is None:
            return None
        result = self._vault.decode_result(stored_value)
        if result.is_fallback:
            logger.warning(
                "API key for user=%s not decrypted (status=%s)",
                user_id, result.status.value,
            )
        return result

    async def get_api_key(self, user_id: Any) -> Optional[str]:
        """Return the usable API key for a user, or None if none is stored."""
        result = await self.load_api_key(user_id)
        if result is None:
            return None
        return result.value

    async def has_api_key(self, user_id: Any) -> bool:
        stored_value = await self._fetch_stored(user_id)
        return bool(stored_value)

    async def clear_api_key(self, user_id: Any) -> None:
        """Remove a user's stored API key.

        Raises:
            UserNotFound: If the user does not exist.
        """
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_CLEAR_API_KEY, user_id)
        if row is None:
            raise UserNotFound(user_id)
        logger.debug("API key cleared: user=%s", user_id)
