"""Shared fixtures: an in-memory stand-in for an asyncpg pool."""
from contextlib import asynccontextmanager
from typing import Optional

import pytest

from pulsar_vault.vault import CredentialVault, VaultConfig, generate_master_key


def _normalize(query: str) -> str:
    return " ".join(query.split())


class FakeTransaction:
    """Snapshot/restore transaction over FakePool.users.

    A transaction opened while another is active on the same connection is
    a savepoint.
    """

    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._pool = conn.pool
        self._snapshot: Optional[dict] = None
        self.savepoint = bool(conn.open_transactions)

    async def start(self):
        self._snapshot = dict(self._pool.users)
        if self.savepoint:
            self._pool.savepoints += 1
        else:
            self._pool.transactions += 1
        self._conn.open_transactions.append(self)

    def _close(self):
        if self in self._conn.open_transactions:
            self._conn.open_transactions.remove(self)

    def _restore(self):
        if self._snapshot is not None:
            self._pool.users.clear()
            self._pool.users.update(self._snapshot)
        self._conn.aborted = False

    async def commit(self):
        self._close()
        # Postgres turns COMMIT of an aborted transaction into ROLLBACK.
        if self._conn.aborted and not self.savepoint:
            self._restore()
        self._snapshot = None

    async def rollback(self):
        self._close()
        self._restore()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
        return False


class FakeConnection:
    """Understands the handful of statements the vault issues."""

    def __init__(self, pool: "FakePool"):
        self.pool = pool
        self.open_transactions: list = []
        self.aborted = False

    @property
    def users(self) -> dict:
        return self.pool.users

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def fetchrow(self, query: str, *args):
        q = _normalize(query)
        if q.startswith("SELECT gemini_api_key FROM users"):
            (user_id,) = args
            if user_id not in self.users:
                return None
            return {"gemini_api_key": self.users[user_id]}
        if q.startswith("UPDATE users SET gemini_api_key = $1"):
            value, user_id = args
            if user_id not in self.users:
                return None
            self.users[user_id] = value
            return {"id": user_id}
        if q.startswith("UPDATE users SET gemini_api_key = NULL"):
            (user_id,) = args
            if user_id not in self.users:
                return None
            self.users[user_id] = None
            return {"id": user_id}
        raise AssertionError(f"unexpected fetchrow: {q}")

    async def fetch(self, query: str, *args):
        q = _normalize(query)
        assert q.startswith("SELECT id, gemini_api_key FROM users"), q
        if "id > $1" in q:
            last_id, limit = args
        else:
            last_id = None
            (limit,) = args
        rows = [
            {"id": user_id, "gemini_api_key": value}
            for user_id, value in sorted(self.users.items())
            if value is not None and (last_id is None or user_id > last_id)
        ]
        return rows[:limit]

    async def execute(self, query: str, *args):
        if self.aborted:
            raise RuntimeError("current transaction is aborted")
        q = _normalize(query)
        if q.startswith("UPDATE users SET gemini_api_key = $1"):
            value, user_id = args
            if user_id in self.pool.fail_on_update:
                if self.open_transactions:
                    self.aborted = True
                raise RuntimeError(f"update failed for {user_id}")
            self.users[user_id] = value
            return "UPDATE 1"
        if q.startswith("UPDATE users SET gemini_api_key = NULL"):
            cleared = [k for k, v in self.users.items() if v is not None]
            for user_id in cleared:
                self.users[user_id] = None
            return f"UPDATE {len(cleared)}"
        raise AssertionError(f"unexpected execute: {q}")


class FakePool:
    """asyncpg-like pool over a ``{user_id: gemini_api_key}`` dict."""

    def __init__(self, users: Optional[dict] = None):
        self.users: dict = dict(users or {})
        self.fail_on_update: set = set()
        self.transactions = 0
        self.savepoints = 0

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)


@pytest.fixture
def master_key():
    """A fresh random 64-hex-char master key."""
    return generate_master_key()


@pytest.fixture
def vault(master_key):
    """Vault with encryption enabled."""
    return CredentialVault(VaultConfig(master_key=master_key))


@pytest.fixture
def disabled_vault():
    """Vault without a master key (pass-through)."""
    return CredentialVault(VaultConfig())


@pytest.fixture
def pool():
    """Pool with three users; only user 3 has a (legacy) key."""
    return FakePool({1: None, 2: None, 3: "legacy-plain-key"})


@pytest.fixture
def make_pool():
    """Factory for FakePool instances."""
    return FakePool
