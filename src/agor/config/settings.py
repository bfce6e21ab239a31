"""
Configuration document management for Agor.

This module handles loading and saving the global YAML configuration file
and the small set of stateful CLI context values stored inside it.

Configuration is loaded from ~/.agor/config.yaml by default. The directory
can be moved with the AGOR_HOME environment variable and the file itself
with AGOR_CONFIG.

Document Structure:
    context:        Active CLI context (board, session, repo, agent)
    defaults:       Static fallbacks for context values (board, agent)
    display:        Output settings (tableStyle, colorOutput, shortIdLength)
    credentials:    Global API keys, one entry per known key name

Unknown top-level sections, and unknown keys inside the known sections,
are kept on the document and written back unchanged so that newer releases
can add settings without older ones dropping them.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_AGOR_HOME = Path.home() / ".agor"
DEFAULT_CONFIG_FILE = DEFAULT_AGOR_HOME / "config.yaml"

DEFAULT_BOARD = "main"
DEFAULT_AGENT = "claude-code"

# YAML serialization parameters
YAML_INDENT = 2
YAML_LINE_WIDTH = 120


class ContextKey(str, Enum):
    """Keys that can be set and read through context operations."""

    BOARD = "board"
    SESSION = "session"
    REPO = "repo"
    AGENT = "agent"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be written."""

    pass


class ConfigLoadError(ConfigurationError):
    """
    Raised when an existing configuration file cannot be read or parsed.

    A missing file is never an error; this is reserved for files that exist
    but are unreadable or corrupt, so the underlying cause is kept for repair.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


@dataclass
class ContextValues:
    """Active CLI context (stateful, changes frequently)."""

    board: str | None = None
    session: str | None = None
    repo: str | None = None
    agent: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class DefaultValues:
    """Global default values used when no context value is set."""

    board: str | None = None
    agent: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class DisplaySettings:
    """Display settings. Stored in YAML using camelCase keys."""

    table_style: str | None = None
    color_output: bool | None = None
    short_id_length: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# Python attribute name -> YAML key
_DISPLAY_KEYS = {
    "table_style": "tableStyle",
    "color_output": "colorOutput",
    "short_id_length": "shortIdLength",
}


@dataclass
class AgorConfig:
    """
    Complete Agor configuration document.

    Attributes:
        context: Active CLI context values.
        defaults: Static defaults for context values.
        display: Output settings.
        credentials: Global API keys keyed by environment variable name.
        extra: Unknown top-level sections, preserved on save.
    """

    context: ContextValues = field(default_factory=ContextValues)
    defaults: DefaultValues = field(default_factory=DefaultValues)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    credentials: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)


def default_config() -> AgorConfig:
    """Return the configuration used when no file exists on disk."""
    return AgorConfig(
        context=ContextValues(),
        defaults=DefaultValues(board=DEFAULT_BOARD, agent=DEFAULT_AGENT),
        display=DisplaySettings(
            table_style="unicode",
            color_output=True,
            short_id_length=8,
        ),
    )


def get_agor_home() -> Path:
    """
    Get the Agor home directory.

    Returns the path from the AGOR_HOME environment variable if set,
    otherwise ~/.agor.
    """
    env_home = os.environ.get("AGOR_HOME")
    if env_home:
        return Path(env_home)
    return DEFAULT_AGOR_HOME


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from the AGOR_CONFIG environment variable if set,
    otherwise config.yaml inside the Agor home directory.
    """
    env_path = os.environ.get("AGOR_CONFIG")
    if env_path:
        return Path(env_path)
    return get_agor_home() / "config.yaml"


def to_context_key(key: ContextKey | str) -> ContextKey:
    """
    Coerce a string to a ContextKey.

    Raises:
        ValueError: If the key is not a valid context key.
    """
    if isinstance(key, ContextKey):
        return key
    try:
        return ContextKey(key)
    except ValueError:
        valid = ", ".join(k.value for k in ContextKey)
        raise ValueError(
            f"Invalid context key: {key}. Must be one of: {valid}"
        ) from None


def load_config(config_path: Path | None = None) -> AgorConfig:
    """
    Load configuration from the YAML file.

    This is the synchronous loader, safe to call from code that cannot
    await (for example eager credential initialization at startup).

    Args:
        config_path: Optional path to the configuration file. If not provided,
                    uses AGOR_CONFIG or the default path.

    Returns:
        The loaded configuration, or default_config() if the file is absent.

    Raises:
        ConfigLoadError: If the file exists but cannot be read or parsed.
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug("No config file at %s, using defaults", config_path)
        return default_config()
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in config file: {e}", e) from e
    except UnicodeDecodeError as e:
        raise ConfigLoadError(f"Cannot decode config file: {e}", e) from e
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config file: {e}", e) from e

    if data is None:
        return AgorConfig()

    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Config file {config_path} must contain a mapping, "
            f"got {type(data).__name__}"
        )

    try:
        return _config_from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigLoadError(f"Invalid config file {config_path}: {e}", e) from e


async def load_config_async(config_path: Path | None = None) -> AgorConfig:
    """Load configuration without blocking the event loop."""
    return await asyncio.to_thread(load_config, config_path)


def save_config(config: AgorConfig, config_path: Path | None = None) -> None:
    """
    Save configuration to the YAML file.

    The parent directory is created if needed. Data is written to a
    temporary file first and renamed over the target so a failed write
    never corrupts a previously valid file.

    Args:
        config: Configuration to save.
        config_path: Optional path to the configuration file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_data = _config_to_dict(config)
    content = yaml.safe_dump(
        config_data,
        default_flow_style=False,
        sort_keys=False,
        indent=YAML_INDENT,
        width=YAML_LINE_WIDTH,
        allow_unicode=True,
    )

    temp_path = config_path.with_suffix(".tmp")
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # The file may hold credentials, so it is owner-only from creation
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

        # A stale temp file keeps its old mode through O_CREAT
        try:
            os.chmod(temp_path, 0o600)
        except OSError:
            pass

        temp_path.replace(config_path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise ConfigurationError(f"Cannot write config file: {e}") from e


async def save_config_async(config: AgorConfig, config_path: Path | None = None) -> None:
    """Save configuration without blocking the event loop."""
    await asyncio.to_thread(save_config, config, config_path)


def init_config(config_path: Path | None = None) -> bool:
    """
    Write the default configuration if no file exists yet.

    Returns:
        True if a new file was written, False if one already existed.
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        return False

    save_config(default_config(), config_path)
    logger.info("Created config file at %s", config_path)
    return True


def get_context(key: ContextKey | str, config_path: Path | None = None) -> str | None:
    """Get a single context value, or None if it is not set."""
    context_key = to_context_key(key)
    config = load_config(config_path)
    return getattr(config.context, context_key.value)


def set_context(
    key: ContextKey | str,
    value: str,
    config_path: Path | None = None,
) -> None:
    """Set a context value and save the configuration."""
    context_key = to_context_key(key)
    config = load_config(config_path)
    setattr(config.context, context_key.value, value)
    save_config(config, config_path)


def unset_context(key: ContextKey | str, config_path: Path | None = None) -> bool:
    """
    Clear a context value.

    Returns:
        True if the value was set and has been removed.
    """
    context_key = to_context_key(key)
    config = load_config(config_path)

    if getattr(config.context, context_key.value) is None:
        return False

    setattr(config.context, context_key.value, None)
    save_config(config, config_path)
    return True


def clear_context(config_path: Path | None = None) -> None:
    """Clear all context values."""
    config = load_config(config_path)
    config.context = ContextValues()
    save_config(config, config_path)


def get_all_context(config_path: Path | None = None) -> dict[str, str]:
    """Get all context values that are currently set."""
    config = load_config(config_path)
    return _section_to_dict(config.context, include_extra=False)


def set_credential(name: str, value: str, config_path: Path | None = None) -> None:
    """
    Store a global API key in the credentials section.

    Raises:
        UnknownApiKeyError: If the name is not a known API key.
        ApiKeyValidationError: If the value is empty or whitespace.
    """
    # validator imports this module through key_resolver
    from agor.config.keys import get_api_key_name
    from agor.config.validator import require_valid_api_key

    key_name = get_api_key_name(name)
    require_valid_api_key(key_name, value, context="config credentials")

    config = load_config(config_path)
    config.credentials[key_name.value] = value
    save_config(config, config_path)


def unset_credential(name: str, config_path: Path | None = None) -> bool:
    """
    Remove a global API key from the credentials section.

    Returns:
        True if a value was removed.
    """
    from agor.config.keys import get_api_key_name

    key_name = get_api_key_name(name)
    config = load_config(config_path)

    if key_name.value not in config.credentials:
        return False

    del config.credentials[key_name.value]
    save_config(config, config_path)
    return True


def get_config_value(key: str, config: AgorConfig | None = None) -> Any:
    """
    Get a configuration value by key.

    Accepts bare context keys (board, session, repo, agent) and dotted keys
    such as defaults.board, display.tableStyle or credentials.OPENAI_API_KEY.

    Returns:
        The stored value, or None if it is not set.
    """
    if config is None:
        config = load_config()

    if "." not in key:
        if key in {k.value for k in ContextKey}:
            return getattr(config.context, key)
        return config.extra.get(key)

    section, _, name = key.partition(".")
    data = _config_to_dict(config).get(section)

    while isinstance(data, dict) and name:
        head, _, name = name.partition(".")
        data = data.get(head)
        if not name:
            return data

    return None


def _str_or_none(value: Any) -> str | None:
    """Normalize a scalar YAML value to a string."""
    if value is None:
        return None
    return str(value)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Get a section mapping from parsed YAML, treating absence as empty."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"section '{name}' must be a mapping")
    return section


def _bool_or_none(value: Any) -> bool | None:
    """Read a YAML boolean, accepting quoted "true" and "false"."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"expected a boolean, got {value!r}")


def _unknown_keys(section: dict[str, Any], known: Any) -> dict[str, Any]:
    """Collect keys a section carries that this release does not model."""
    return {k: v for k, v in section.items() if k not in known}


def _config_from_dict(data: dict[str, Any]) -> AgorConfig:
    """Build an AgorConfig from parsed YAML data."""
    config = AgorConfig()

    context = _section(data, "context")
    for key in ContextKey:
        setattr(config.context, key.value, _str_or_none(context.get(key.value)))
    config.context.extra = _unknown_keys(context, {k.value for k in ContextKey})

    defaults = _section(data, "defaults")
    config.defaults.board = _str_or_none(defaults.get("board"))
    config.defaults.agent = _str_or_none(defaults.get("agent"))
    config.defaults.extra = _unknown_keys(defaults, {"board", "agent"})

    display = _section(data, "display")
    config.display.table_style = _str_or_none(display.get("tableStyle"))
    config.display.color_output = _bool_or_none(display.get("colorOutput"))
    if display.get("shortIdLength") is not None:
        config.display.short_id_length = int(display["shortIdLength"])
    config.display.extra = _unknown_keys(display, _DISPLAY_KEYS.values())

    credentials = _section(data, "credentials")
    config.credentials = {
        str(name): str(value)
        for name, value in credentials.items()
        if value is not None
    }

    known = {"context", "defaults", "display", "credentials"}
    config.extra = {k: v for k, v in data.items() if k not in known}

    return config


def _section_to_dict(
    section: Any,
    key_map: dict[str, str] | None = None,
    include_extra: bool = True,
) -> dict[str, Any]:
    """Convert a section dataclass to a dict, omitting unset fields."""
    result: dict[str, Any] = {}
    for f in fields(section):
        if f.name == "extra":
            continue
        value = getattr(section, f.name)
        if value is not None:
            name = key_map.get(f.name, f.name) if key_map else f.name
            result[name] = value
    if include_extra:
        for name, value in section.extra.items():
            result.setdefault(name, value)
    return result


def _config_to_dict(config: AgorConfig) -> dict[str, Any]:
    """Convert an AgorConfig to a dictionary for YAML serialization."""
    data: dict[str, Any] = {
        "context": _section_to_dict(config.context),
        "defaults": _section_to_dict(config.defaults),
        "display": _section_to_dict(config.display, _DISPLAY_KEYS),
    }
    if config.credentials:
        data["credentials"] = dict(config.credentials)
    data.update(config.extra)
    return data
