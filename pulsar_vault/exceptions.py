"""Exceptions raised by the credential vault."""


class VaultError(Exception):
    """Base class for vault errors."""


class EncryptionFailure(VaultError):
    """An encryption was attempted with a usable master key and failed.

    Raised instead of falling back to plaintext, so a broken setup never
    looks like a successful save.
    """


class VaultDisabled(VaultError):
    """Operation needs a master key but the vault runs in disabled mode."""


class UserNotFound(VaultError):
    """No user row matches the given id."""

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")
