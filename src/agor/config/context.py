"""
Context value resolution for the Agor CLI.

Resolves non-secret context values (active board, session, repo, agent)
using a fixed priority order:

    1. Explicit flag value passed on the command line
    2. Active context value from the config file
    3. Global default value from the config file
    4. None - the caller should prompt or fail

Empty and whitespace-only values are treated as unset at every level, so a
blank context entry never shadows a real default.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from agor.config.settings import (
    AgorConfig,
    ContextKey,
    load_config,
    load_config_async,
    to_context_key,
)


def _is_set(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def resolve_value(
    key: ContextKey | str,
    flag_value: str | None = None,
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> str | None:
    """
    Resolve a single context value.

    Args:
        key: Context key to resolve.
        flag_value: Value from a CLI flag, if one was given.
        config: Loaded configuration. Loaded from disk when omitted.
        config_path: Path used when the configuration must be loaded.

    Returns:
        The resolved value, or None if no level provides one.

    Example:
        resolve_value("board", "experiments")  # -> "experiments"
        resolve_value("board")                 # -> "main" (context or defaults)
    """
    context_key = to_context_key(key)

    if _is_set(flag_value):
        return flag_value

    cfg = config if config is not None else load_config(config_path)

    context_value = getattr(cfg.context, context_key.value)
    if _is_set(context_value):
        return context_value

    # Only board and agent have defaults
    default_value = getattr(cfg.defaults, context_key.value, None)
    if _is_set(default_value):
        return default_value

    return None


def resolve_values(
    keys: Iterable[ContextKey | str],
    flag_values: Mapping[str, str | None] | None = None,
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, str]:
    """
    Resolve several context values at once.

    The configuration is loaded once and shared by every key. Keys that do
    not resolve are omitted from the result.

    Example:
        resolve_values(["board", "agent"], {"board": "experiments"})
        # -> {"board": "experiments", "agent": "claude-code"}
    """
    cfg = config if config is not None else load_config(config_path)
    flags = flag_values or {}
    resolved: dict[str, str] = {}

    for key in keys:
        context_key = to_context_key(key)
        value = resolve_value(context_key, flags.get(context_key.value), cfg)
        if value is not None:
            resolved[context_key.value] = value

    return resolved


def get_effective_config(
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, str | None]:
    """
    Get a flattened view of all effective configuration values.

    Context keys are resolved through the normal priority order. Display
    settings have no overrides and are reported as stored.
    """
    cfg = config if config is not None else load_config(config_path)
    display = cfg.display

    effective: dict[str, str | None] = {
        key.value: resolve_value(key, None, cfg) for key in ContextKey
    }
    effective["tableStyle"] = display.table_style
    effective["colorOutput"] = (
        None if display.color_output is None else str(display.color_output).lower()
    )
    effective["shortIdLength"] = (
        None if display.short_id_length is None else str(display.short_id_length)
    )
    return effective


async def resolve_value_async(
    key: ContextKey | str,
    flag_value: str | None = None,
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> str | None:
    """Async variant of resolve_value."""
    if config is None and not _is_set(flag_value):
        config = await load_config_async(config_path)
    return resolve_value(key, flag_value, config, config_path)


async def resolve_values_async(
    keys: Iterable[ContextKey | str],
    flag_values: Mapping[str, str | None] | None = None,
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, str]:
    """Async variant of resolve_values."""
    if config is None:
        config = await load_config_async(config_path)
    return resolve_values(keys, flag_values, config)


async def get_effective_config_async(
    config: AgorConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, str | None]:
    """Async variant of get_effective_config."""
    if config is None:
        config = await load_config_async(config_path)
    return get_effective_config(config)
