"""
Per-user record storage for Agor.

Stores one row per user with a JSON data payload. The payload may carry
encrypted per-user API keys under "api_keys":

    {"api_keys": {"ANTHROPIC_API_KEY": "<fernet token>"}}

The key resolver only needs get_user(); anything implementing the UserStore
protocol can stand in for SqliteUserStore.

Thread Safety:
    Uses a connection-per-operation pattern, so a single instance can be
    shared across threads (the async resolver calls it from worker threads).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class UserNotFoundError(StorageError):
    """Raised when a requested user does not exist."""

    pass


CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    email TEXT,
    data_json TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
"""


@dataclass
class UserRecord:
    """
    A single user row.

    Attributes:
        user_id: Unique user identifier (UUID string).
        email: Optional account email.
        data: Structured payload; may contain an "api_keys" mapping of
            key name to encrypted token.
    """

    user_id: str
    email: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def api_keys(self) -> dict[str, str]:
        """Encrypted API keys by key name (empty if none are stored)."""
        keys = self.data.get("api_keys")
        return keys if isinstance(keys, dict) else {}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> UserRecord:
        return cls(
            user_id=row["user_id"],
            email=row["email"],
            data=json.loads(row["data_json"] or "{}"),
        )


class UserStore(Protocol):
    """Storage handle used by the per-user key resolution tier."""

    def get_user(self, user_id: str) -> UserRecord | None:
        """Return the user's record, or None if there is no such user."""
        ...


class SqliteUserStore:
    """
    SQLite-backed user record store.

    Example:
        store = SqliteUserStore(Path("~/.agor/agor.db").expanduser())
        store.create_user("0193...", email="max@example.com")
        store.set_user_api_key("0193...", "ANTHROPIC_API_KEY", cipher.encrypt(key))
        record = store.get_user("0193...")

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(CREATE_TABLES_SQL)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            isolation_level=None,  # Autocommit mode
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def create_user(
        self,
        user_id: str,
        email: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> UserRecord:
        """
        Create a new user row.

        Raises:
            StorageError: If a user with this ID already exists.
        """
        now = datetime.now(UTC).isoformat()
        record = UserRecord(user_id=user_id, email=email, data=data or {})

        with self._get_connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (user_id, email, data_json, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, email, json.dumps(record.data), now, now),
                )
            except sqlite3.IntegrityError as e:
                raise StorageError(f"User already exists: {user_id}") from e

        logger.debug("Created user %s", user_id[:8])
        return record

    def get_user(self, user_id: str) -> UserRecord | None:
        """Get a user by ID, or None if not found."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE user_id = ?", (user_id,)
            )
            row = cursor.fetchone()

        if row is None:
            return None
        return UserRecord.from_row(row)

    def set_user_api_key(self, user_id: str, key_name: str, encrypted_key: str) -> None:
        """
        Store an encrypted API key on a user's record.

        Args:
            user_id: User identifier.
            key_name: API key name (e.g., "OPENAI_API_KEY").
            encrypted_key: Token produced by ApiKeyCipher.encrypt. Plaintext
                keys must never be passed here.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        record = self._require_user(user_id)
        api_keys = dict(record.api_keys)
        api_keys[key_name] = encrypted_key
        record.data["api_keys"] = api_keys
        self._update_data(record)

    def delete_user_api_key(self, user_id: str, key_name: str) -> bool:
        """
        Remove an API key from a user's record.

        Returns:
            True if a key was removed.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        record = self._require_user(user_id)
        api_keys = dict(record.api_keys)

        if key_name not in api_keys:
            return False

        del api_keys[key_name]
        record.data["api_keys"] = api_keys
        self._update_data(record)
        return True

    def delete_user(self, user_id: str) -> bool:
        """Delete a user. Returns True if a row was deleted."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
            return cursor.rowcount > 0

    def _require_user(self, user_id: str) -> UserRecord:
        record = self.get_user(user_id)
        if record is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return record

    def _update_data(self, record: UserRecord) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE users SET data_json = ?, updated_at = ? WHERE user_id = ?",
                (
                    json.dumps(record.data),
                    datetime.now(UTC).isoformat(),
                    record.user_id,
                ),
            )
