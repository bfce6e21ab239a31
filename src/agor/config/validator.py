"""
API key validation, sanitization and startup initialization.

A key is valid when it is a string with at least one non-whitespace
character. Strings such as "0", "false" or "null" are valid keys and must
not be reinterpreted.

Startup precedence differs from live lookups on purpose:
    - initialize_valid_api_key: config.yaml value wins over the environment
    - resolve_api_key:          environment wins over config.yaml
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping, Sequence
from enum import Enum
from pathlib import Path

from agor.config.key_resolver import (
    KeyResolutionContext,
    resolve_api_key,
    resolve_api_key_sync,
)
from agor.config.keys import ApiKeyConfig, ApiKeyName, get_api_key_name
from agor.config.settings import load_config

logger = logging.getLogger(__name__)

SANITIZED_NONE = "none"
SANITIZED_SUFFIX = "..."
SHORT_KEY_LENGTH = 12


class ValidationFailure(str, Enum):
    """Why an API key failed strict validation."""

    MISSING = "missing"
    EMPTY = "empty"
    WHITESPACE = "whitespace"


_FAILURE_MESSAGES = {
    ValidationFailure.MISSING: "{name} is not provided",
    ValidationFailure.EMPTY: "{name} is empty",
    ValidationFailure.WHITESPACE: "{name} contains only whitespace",
}


class ApiKeyValidationError(Exception):
    """
    Raised by require_valid_api_key when a key is missing or blank.

    The message names the key but never includes the rejected value.

    Attributes:
        key_name: Name of the API key that failed validation.
        reason: Which check failed.
    """

    def __init__(
        self,
        key_name: str,
        reason: ValidationFailure,
        context: str | None = None,
    ) -> None:
        message = _FAILURE_MESSAGES[reason].format(name=key_name)
        if context:
            message = f"{message} ({context})"
        super().__init__(message)
        self.key_name = key_name
        self.reason = reason


def is_valid_api_key(api_key: object) -> bool:
    """Return True if api_key is a string that is not empty or whitespace-only."""
    return isinstance(api_key, str) and len(api_key.strip()) > 0


def sanitize_api_key_for_logging(api_key: object) -> str:
    """
    Return a truncated form of an API key that is safe to log.

    Short keys (12 characters or fewer) keep their first 4 characters,
    longer keys their first 8. Invalid keys become "none".
    """
    if not is_valid_api_key(api_key):
        return SANITIZED_NONE
    assert isinstance(api_key, str)
    if len(api_key) <= SHORT_KEY_LENGTH:
        return api_key[:4] + SANITIZED_SUFFIX
    return api_key[:8] + SANITIZED_SUFFIX


def require_valid_api_key(
    key_name: ApiKeyName | str,
    api_key: str | None,
    context: str | None = None,
) -> str:
    """
    Return api_key if it is valid, raising otherwise.

    Use this when a key is absolutely required.

    Args:
        key_name: Name of the key, used in the error message.
        api_key: Value to check.
        context: Optional label for where the key was needed.

    Raises:
        ApiKeyValidationError: If the key is None, empty or whitespace-only.
    """
    name = key_name.value if isinstance(key_name, ApiKeyName) else str(key_name)

    if not isinstance(api_key, str):
        raise ApiKeyValidationError(name, ValidationFailure.MISSING, context)

    if api_key.strip() == "":
        reason = ValidationFailure.EMPTY if api_key == "" else ValidationFailure.WHITESPACE
        raise ApiKeyValidationError(name, reason, context)

    return api_key


async def resolve_valid_api_key(
    key_name: ApiKeyName | str,
    context: KeyResolutionContext | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> str | None:
    """Resolve an API key through all tiers, rejecting blank values."""
    api_key = await resolve_api_key(
        key_name, context, environ=environ, config_path=config_path
    )
    return api_key if is_valid_api_key(api_key) else None


def resolve_valid_api_key_sync(
    key_name: ApiKeyName | str,
    *,
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> str | None:
    """Resolve an API key from environment and config, rejecting blank values."""
    api_key = resolve_api_key_sync(key_name, environ=environ, config_path=config_path)
    return api_key if is_valid_api_key(api_key) else None


def initialize_valid_api_key(
    key_name: ApiKeyName | str,
    config_key: str | None,
    env_key: str | None,
    *,
    set_env_from_config: bool = False,
    service_name: str | None = None,
    show_oauth_warnings: bool = False,
    oauth_instructions: Sequence[str] | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> str | None:
    """
    Pick the API key to use at startup and log how it was chosen.

    Priority: config.yaml value, then environment value. A missing key is
    never fatal here; guidance is logged instead so callers can fall back
    to OAuth or degrade.

    Args:
        key_name: Name of the API key.
        config_key: Value from the config.yaml credentials section.
        env_key: Value from the environment.
        set_env_from_config: Copy a valid config value into the environment
            when no environment value exists. Existing values are never
            overwritten.
        service_name: Service name for log messages (e.g., "Codex").
        show_oauth_warnings: Log OAuth fallback guidance when no key is found.
        oauth_instructions: Extra guidance lines for the OAuth case.
        environ: Environment mapping to update. Defaults to os.environ.

    Returns:
        The valid key, or None.
    """
    name = get_api_key_name(key_name).value
    env = os.environ if environ is None else environ
    config_valid = is_valid_api_key(config_key)

    if config_valid and set_env_from_config and not env_key and not env.get(name):
        assert config_key is not None
        env[name] = config_key
        logger.info("Set %s from config for %s", name, service_name or name)

    if config_valid:
        resolved_key, source = config_key, "config.yaml"
    elif is_valid_api_key(env_key):
        resolved_key, source = env_key, "environment"
    else:
        resolved_key, source = None, None

    if resolved_key is not None:
        suffix = f" for {service_name}" if service_name else ""
        logger.info("Using %s from %s%s", name, source, suffix)
        return resolved_key

    if show_oauth_warnings:
        logger.warning("No %s found - will use OAuth authentication", name)
    else:
        logger.warning("No %s found - %s sessions may fail", name, service_name or "service")
    logger.warning("   To use an API key: agor config set credentials.%s <your-key>", name)
    logger.warning("   Or set the %s environment variable", name)

    if show_oauth_warnings and oauth_instructions:
        for instruction in oauth_instructions:
            logger.warning("   %s", instruction)

    return None


def initialize_api_key(
    key_config: ApiKeyConfig,
    *,
    set_env_from_config: bool = True,
    show_oauth_warnings: bool = False,
    oauth_instructions: Sequence[str] | None = None,
    environ: MutableMapping[str, str] | None = None,
    config_path: Path | None = None,
) -> str | None:
    """
    Initialize an API key from its registry record.

    Loads the config file synchronously and delegates to
    initialize_valid_api_key, seeding the environment by default.

    Example:
        api_key = initialize_api_key(API_KEYS[ApiKeyName.GEMINI_API_KEY],
                                     show_oauth_warnings=True)
    """
    env = os.environ if environ is None else environ
    name = key_config.key_name.value
    config = load_config(config_path)

    return initialize_valid_api_key(
        key_config.key_name,
        config.credentials.get(name),
        env.get(name),
        set_env_from_config=set_env_from_config,
        service_name=key_config.service_name,
        show_oauth_warnings=show_oauth_warnings,
        oauth_instructions=oauth_instructions,
        environ=env,
    )
