"""
Vault Crypto Core — Field-level encryption of stored API keys.

Stored format (one text column, all lowercase hex):
    <iv 16B>:<GCM tag 16B>:<ciphertext>

- encode: AES-256-GCM with a fresh random 128-bit IV per call.
- decode: verifies the tag; anything that is not a readable record comes
  back unchanged (legacy plaintext, disabled mode, corrupted data).

Security Note:
    Never log plaintext or ciphertext values.
    The record carries no key id; changing the master key makes every
    existing record unreadable.
"""
import os
import logging
from enum import Enum
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, Field

from ..exceptions import EncryptionFailure
from .config import is_valid_master_key

logger = logging.getLogger("pulsar.vault")

IV_SIZE = 16  # 128-bit IV
TAG_SIZE = 16  # GCM tag
SEPARATOR = ":"
FIELD_COUNT = 3


class DecodeStatus(str, Enum):
    """Outcome of a decode call."""

    OK = "ok"
    DISABLED = "disabled"
    LEGACY = "legacy"
    CORRUPTED = "corrupted"


class DecodeResult(BaseModel):
    """Tagged decode result.

    ``value`` is the recovered secret when ``status`` is OK; for every other
    status it is the stored value, unchanged.
    """

    status: DecodeStatus
    value: str = Field(repr=False)

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.OK

    @property
    def is_fallback(self) -> bool:
        return self.status is not DecodeStatus.OK


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

def is_encoded(value: str) -> bool:
    """Return True if value has the three-field record layout.

    Only the layout is checked; no decryption is attempted, so a plaintext
    that happens to contain exactly two colons also matches.
    """
    return len(value.split(SEPARATOR)) == FIELD_COUNT


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encode(plaintext: str, master_key: Optional[str]) -> str:
    """Encrypt plaintext into a stored record.

    Args:
        plaintext: Secret to store. The empty string is encrypted as well.
        master_key: 64-char hex master key, or None.

    Returns:
        ``iv:tag:ciphertext`` in lowercase hex, or plaintext unchanged when
        the master key is missing or malformed.

    Raises:
        EncryptionFailure: If the cipher fails with a usable master key.
    """
    if not is_valid_master_key(master_key):
        logger.warning("Encryption key not available, storing value as plain text")
        return plaintext
    try:
        cipher = AESGCM(bytes.fromhex(master_key))
        iv = os.urandom(IV_SIZE)
        sealed = cipher.encrypt(iv, plaintext.encode("utf-8"), None)
    except Exception as err:
        logger.error("Encryption error: %s", type(err).__name__)
        raise EncryptionFailure("Failed to encrypt data") from err
    # AESGCM appends the tag to the ciphertext.
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))


def decode_result(stored_value: str, master_key: Optional[str]) -> DecodeResult:
    """Decrypt a stored record, reporting how the value was obtained.

    Never raises for bad input: unreadable records are returned unchanged
    with a DISABLED, LEGACY or CORRUPTED status.

    Args:
        stored_value: Value read from the store.
        master_key: 64-char hex master key, or None.

    Returns:
        DecodeResult with the plaintext (OK) or the stored value.
    """
    if not is_valid_master_key(master_key):
        logger.warning("Encryption key not available, returning stored value as-is")
        return DecodeResult(status=DecodeStatus.DISABLED, value=stored_value)

    parts = stored_value.split(SEPARATOR)
    if len(parts) != FIELD_COUNT:
        logger.warning("Stored value is not in encrypted format, returning as-is")
        return DecodeResult(status=DecodeStatus.LEGACY, value=stored_value)

    iv_hex, tag_hex, ciphertext_hex = parts
    try:
        iv = bytes.fromhex(iv_hex)
        tag = bytes.fromhex(tag_hex)
        ciphertext = bytes.fromhex(ciphertext_hex)
        if len(iv) != IV_SIZE or len(tag) != TAG_SIZE:
            raise ValueError(
                f"expected {IV_SIZE}-byte iv and {TAG_SIZE}-byte tag, "
                f"got {len(iv)} and {len(tag)}"
            )
        cipher = AESGCM(bytes.fromhex(master_key))
        plaintext = cipher.decrypt(iv, ciphertext + tag, None).decode("utf-8")
    except (InvalidTag, ValueError) as err:
        logger.warning(
            "Decryption error (%s), returning stored value as-is",
            type(err).__name__,
        )
        return DecodeResult(status=DecodeStatus.CORRUPTED, value=stored_value)
    return DecodeResult(status=DecodeStatus.OK, value=plaintext)


def decode(stored_value: str, master_key: Optional[str]) -> str:
    """Decrypt a stored record, falling back to the stored value.

    See :func:`decode_result` for the tagged variant.
    """
    return decode_result(stored_value, master_key).value
