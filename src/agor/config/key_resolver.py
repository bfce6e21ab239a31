"""
API key resolution across the three credential sources.

Precedence for live lookups:
    1. Per-user key (user authenticated and key stored in the user database)
    2. Environment variable named exactly like the key
    3. Global config.yaml credentials section

The per-user tier degrades gracefully: a failed lookup or decryption is
logged and skipped, never raised. Nothing is cached - every call re-reads
its sources so rotated keys are picked up immediately.

Log records name the key and the winning source. They never contain the
key value.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from agor.config.keys import ApiKeyName, get_api_key_name
from agor.config.settings import load_config, load_config_async
from agor.storage.user_store import UserStore

logger = logging.getLogger(__name__)

# Characters of the user ID shown in log messages
USER_ID_LOG_LENGTH = 8


class KeySource(str, Enum):
    """Where a resolved API key came from."""

    USER = "user"
    ENVIRONMENT = "environment"
    CONFIG = "config"


@dataclass(frozen=True)
class KeyResolutionContext:
    """
    Optional per-call context enabling the per-user tier.

    Attributes:
        user_id: Authenticated user ID.
        storage: Store used to look up the user's record.
        decrypt: Turns a stored token into the plaintext key. May raise.
    """

    user_id: str | None = None
    storage: UserStore | None = None
    decrypt: Callable[[str], str] | None = None


@dataclass(frozen=True)
class ResolvedApiKey:
    """A resolved API key and the source it came from."""

    key_name: ApiKeyName
    value: str = field(repr=False)
    source: KeySource


def _lookup_env(key_name: ApiKeyName, environ: Mapping[str, str]) -> ResolvedApiKey | None:
    value = environ.get(key_name.value)
    if value:
        logger.info("Using environment variable for %s", key_name.value)
        return ResolvedApiKey(key_name, value, KeySource.ENVIRONMENT)
    return None


def _lookup_config(key_name: ApiKeyName, credentials: Mapping[str, str]) -> ResolvedApiKey | None:
    value = credentials.get(key_name.value)
    if value:
        logger.info("Using global API key for %s (from config.yaml)", key_name.value)
        return ResolvedApiKey(key_name, value, KeySource.CONFIG)
    return None


async def _lookup_user(
    key_name: ApiKeyName,
    context: KeyResolutionContext,
) -> ResolvedApiKey | None:
    """Try the per-user tier. Any failure is logged and treated as absent."""
    assert context.user_id is not None and context.storage is not None

    user_fragment = context.user_id[:USER_ID_LOG_LENGTH]
    try:
        record = await asyncio.to_thread(context.storage.get_user, context.user_id)
        if record is None:
            return None

        encrypted = record.api_keys.get(key_name.value)
        if not encrypted:
            return None

        if context.decrypt is None:
            raise RuntimeError("no decrypt function supplied")

        value = context.decrypt(encrypted)
    except Exception as e:
        logger.error(
            "Failed to resolve per-user key for %s (user: %s): %s",
            key_name.value,
            user_fragment,
            type(e).__name__,
        )
        return None

    if not value:
        return None

    logger.info("Using per-user API key for %s (user: %s)", key_name.value, user_fragment)
    return ResolvedApiKey(key_name, value, KeySource.USER)


async def lookup_api_key(
    key_name: ApiKeyName | str,
    context: KeyResolutionContext | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> ResolvedApiKey | None:
    """
    Resolve an API key through all three tiers, reporting the source.

    Args:
        key_name: API key to resolve.
        context: Per-user context; the user tier is skipped unless both
            user_id and storage are set.
        environ: Environment mapping. Defaults to os.environ.
        config_path: Config file to read for the global tier.

    Returns:
        The resolved key, or None if no tier has one.

    Raises:
        UnknownApiKeyError: If key_name is not a supported API key.
        ConfigLoadError: If the config file exists but is corrupt.
    """
    name = get_api_key_name(key_name)
    env = os.environ if environ is None else environ

    if context is not None and context.user_id and context.storage is not None:
        resolved = await _lookup_user(name, context)
        if resolved is not None:
            return resolved

    resolved = _lookup_env(name, env)
    if resolved is not None:
        return resolved

    config = await load_config_async(config_path)
    resolved = _lookup_config(name, config.credentials)
    if resolved is not None:
        return resolved

    logger.warning("No %s found in user, environment or config sources", name.value)
    return None


def lookup_api_key_sync(
    key_name: ApiKeyName | str,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> ResolvedApiKey | None:
    """
    Resolve an API key from the environment and global config only.

    Use this where the user database is not available or the caller
    cannot await.
    """
    name = get_api_key_name(key_name)
    env = os.environ if environ is None else environ

    resolved = _lookup_env(name, env)
    if resolved is not None:
        return resolved

    config = load_config(config_path)
    resolved = _lookup_config(name, config.credentials)
    if resolved is not None:
        return resolved

    logger.warning("No %s found in environment or config sources", name.value)
    return None


async def resolve_api_key(
    key_name: ApiKeyName | str,
    context: KeyResolutionContext | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> str | None:
    """
    Resolve an API key value.

    Precedence: per-user key, environment variable, global config.yaml.

    Returns:
        The key value, or None if not found.
    """
    resolved = await lookup_api_key(
        key_name, context, environ=environ, config_path=config_path
    )
    return resolved.value if resolved is not None else None


def resolve_api_key_sync(
    key_name: ApiKeyName | str,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> str | None:
    """
    Resolve an API key value without the per-user tier.

    Precedence: environment variable, global config.yaml.
    """
    resolved = lookup_api_key_sync(key_name, environ=environ, config_path=config_path)
    return resolved.value if resolved is not None else None
