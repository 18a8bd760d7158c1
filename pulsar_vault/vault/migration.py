"""
Vault Maintenance — Batch jobs over every stored API key.

- ``encrypt_legacy_keys``: encrypts values written before encryption was
  enabled (or while the vault ran without a master key). Each batch runs in
  its own transaction and each row in its own savepoint; rows already in the
  encrypted format are skipped, so the job can be re-run safely.
- ``clear_api_keys``: drops every stored key. This is the only supported way
  to change the master key; users re-enter their keys afterwards.

Security Note:
    Plaintext exists in memory only while a row is being re-encrypted.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Any

from ..exceptions import VaultDisabled
from .codec import CredentialVault

logger = logging.getLogger("pulsar.vault")

# SQL statements
_SELECT_FIRST_BATCH = """
SELECT id, gemini_api_key
FROM users
WHERE gemini_api_key IS NOT NULL
ORDER BY id
LIMIT $1
"""

_SELECT_NEXT_BATCH = """
SELECT id, gemini_api_key
FROM users
WHERE gemini_api_key IS NOT NULL AND id > $1
ORDER BY id
LIMIT $2
"""

_UPDATE_API_KEY = """
UPDATE users
SET gemini_api_key = $1, updated_at = NOW()
WHERE id = $2
"""

_CLEAR_ALL_API_KEYS = """
UPDATE users
SET gemini_api_key = NULL, updated_at = NOW()
WHERE gemini_api_key IS NOT NULL
"""


async def encrypt_legacy_keys(
    db_pool: Any,
    vault: CredentialVault,
    batch_size: int = 100,
    start_after: Any = None,
) -> dict:
    """Encrypt all stored API keys that are still plain text.

    Args:
        db_pool: asyncpg-compatible connection pool.
        vault: Vault with a usable master key.
        batch_size: Number of rows to process per batch/transaction.
        start_after: Only rows with an id greater than this are visited;
            None starts from the first row.

    Returns:
        Stats dict with keys: total, encrypted, skipped, errors.

    Raises:
        VaultDisabled: If the vault has no usable master key.
    """
    if not vault.enabled:
        raise VaultDisabled(
            "Cannot encrypt stored API keys without a valid ENCRYPTION_KEY"
        )
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    stats = {"total": 0, "encrypted": 0, "skipped": 0, "errors": 0}
    last_id = start_after
    batch_num = 0

    logger.info(
        "Starting legacy API key encryption (batch_size=%d)", batch_size,
    )

    while True:
        async with db_pool.acquire() as conn:
            if last_id is None:
                rows = await conn.fetch(_SELECT_FIRST_BATCH, batch_size)
            else:
                rows = await conn.fetch(_SELECT_NEXT_BATCH, last_id, batch_size)

        if not rows:
            break

        batch_num += 1
        logger.info(
            "Processing batch %d (%d rows)", batch_num, len(rows),
        )

        async with db_pool.acquire() as conn:
            tx = conn.transaction()
            await tx.start()
            try:
                for row in rows:
                    stats["total"] += 1
                    user_id = row["id"]
                    stored_value = row["gemini_api_key"]

                    if vault.is_encoded(stored_value):
                        stats["skipped"] += 1
                        continue
                    try:
                        # Nested transaction is a savepoint; a failed row
                        # leaves the batch transaction usable.
                        async with conn.transaction():
                            await conn.execute(
                                _UPDATE_API_KEY,
                                vault.encode(stored_value),
                                user_id,
                            )
                        stats["encrypted"] += 1
                    except Exception as err:
                        logger.error(
                            "Error encrypting API key for user=%s: %s",
                            user_id, type(err).__name__,
                        )
                        stats["errors"] += 1

                await tx.commit()
            except Exception:
                await tx.rollback()
                raise

        last_id = rows[-1]["id"]

    logger.info(
        "Legacy API key encryption complete: %s", stats,
    )
    return stats


async def clear_api_keys(db_pool: Any) -> int:
    """Remove every stored API key.

    Args:
        db_pool: asyncpg-compatible connection pool.

    Returns:
        Number of users whose key was cleared.
    """
    async with db_pool.acquire() as conn:
        status = await conn.execute(_CLEAR_ALL_API_KEYS)
    # asyncpg returns the command tag, e.g. "UPDATE 12"
    count = int(status.split()[-1])
    logger.info("Cleared %d users' API keys", count)
    return count
