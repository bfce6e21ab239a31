"""
Configuration management for Agor.

This module handles the global YAML configuration file, CLI context
resolution, and resolution and validation of agent provider API keys
across per-user, environment and global config sources.
"""

from agor.config.context import (
    get_effective_config,
    get_effective_config_async,
    resolve_value,
    resolve_value_async,
    resolve_values,
    resolve_values_async,
)
from agor.config.crypto import ApiKeyCipher, KeyDecryptionError
from agor.config.key_resolver import (
    KeyResolutionContext,
    KeySource,
    ResolvedApiKey,
    lookup_api_key,
    lookup_api_key_sync,
    resolve_api_key,
    resolve_api_key_sync,
)
from agor.config.keys import (
    API_KEYS,
    ApiKeyConfig,
    ApiKeyName,
    UnknownApiKeyError,
    get_api_key_config,
    get_api_key_name,
)
from agor.config.settings import (
    AgorConfig,
    ConfigLoadError,
    ConfigurationError,
    ContextKey,
    clear_context,
    default_config,
    get_all_context,
    get_config_path,
    get_config_value,
    get_context,
    init_config,
    load_config,
    load_config_async,
    save_config,
    save_config_async,
    set_context,
    set_credential,
    unset_context,
    unset_credential,
)
from agor.config.validator import (
    ApiKeyValidationError,
    ValidationFailure,
    initialize_api_key,
    initialize_valid_api_key,
    is_valid_api_key,
    require_valid_api_key,
    resolve_valid_api_key,
    resolve_valid_api_key_sync,
    sanitize_api_key_for_logging,
)

__all__ = [
    # Config store
    "AgorConfig",
    "ContextKey",
    "ConfigurationError",
    "ConfigLoadError",
    "default_config",
    "get_config_path",
    "load_config",
    "load_config_async",
    "save_config",
    "save_config_async",
    "init_config",
    "get_context",
    "set_context",
    "unset_context",
    "clear_context",
    "get_all_context",
    "get_config_value",
    "set_credential",
    "unset_credential",
    # Context resolution
    "resolve_value",
    "resolve_values",
    "get_effective_config",
    "resolve_value_async",
    "resolve_values_async",
    "get_effective_config_async",
    # Key registry
    "API_KEYS",
    "ApiKeyConfig",
    "ApiKeyName",
    "UnknownApiKeyError",
    "get_api_key_config",
    "get_api_key_name",
    # Key resolution
    "KeyResolutionContext",
    "KeySource",
    "ResolvedApiKey",
    "lookup_api_key",
    "lookup_api_key_sync",
    "resolve_api_key",
    "resolve_api_key_sync",
    # Validation
    "ApiKeyValidationError",
    "ValidationFailure",
    "is_valid_api_key",
    "sanitize_api_key_for_logging",
    "require_valid_api_key",
    "resolve_valid_api_key",
    "resolve_valid_api_key_sync",
    "initialize_valid_api_key",
    "initialize_api_key",
    # Encryption
    "ApiKeyCipher",
    "KeyDecryptionError",
]
