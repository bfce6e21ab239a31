"""
Storage layer for Agor.

Provides per-user records, including encrypted per-user API keys.
"""

from agor.storage.user_store import (
    SqliteUserStore,
    StorageError,
    UserNotFoundError,
    UserRecord,
    UserStore,
)

__all__ = [
    "SqliteUserStore",
    "StorageError",
    "UserNotFoundError",
    "UserRecord",
    "UserStore",
]
