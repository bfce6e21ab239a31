"""
API key registry for supported agent providers.

Each supported credential has one immutable metadata record used for log
messages and by presentation layers (labels, placeholders, docs links).
The registry never holds secret values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class ApiKeyName(str, Enum):
    """Supported API keys. Values are also the environment variable names."""

    ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"
    OPENAI_API_KEY = "OPENAI_API_KEY"
    GEMINI_API_KEY = "GEMINI_API_KEY"


class UnknownApiKeyError(ValueError):
    """Raised when a key name is not in the registry."""

    pass


@dataclass(frozen=True)
class ApiKeyConfig:
    """
    Metadata describing an API key.

    Attributes:
        key_name: Registry key, also the environment variable name.
        service_name: Human-readable service name (e.g., "Claude Code").
        label: UI display label (e.g., "Anthropic API Key").
        description: UI subtitle (e.g., "(Claude Code / Agent SDK)").
        placeholder: UI input placeholder showing the key format.
        doc_url: Where to obtain a key.
    """

    key_name: ApiKeyName
    service_name: str
    label: str
    description: str
    placeholder: str
    doc_url: str


API_KEYS: MappingProxyType[ApiKeyName, ApiKeyConfig] = MappingProxyType({
    ApiKeyName.ANTHROPIC_API_KEY: ApiKeyConfig(
        key_name=ApiKeyName.ANTHROPIC_API_KEY,
        service_name="Claude Code",
        label="Anthropic API Key",
        description="(Claude Code / Agent SDK)",
        placeholder="sk-ant-api03-...",
        doc_url="https://console.anthropic.com",
    ),
    ApiKeyName.OPENAI_API_KEY: ApiKeyConfig(
        key_name=ApiKeyName.OPENAI_API_KEY,
        service_name="Codex",
        label="OpenAI API Key",
        description="(Codex)",
        placeholder="sk-proj-...",
        doc_url="https://platform.openai.com/api-keys",
    ),
    ApiKeyName.GEMINI_API_KEY: ApiKeyConfig(
        key_name=ApiKeyName.GEMINI_API_KEY,
        service_name="Gemini",
        label="Gemini API Key",
        description="",
        placeholder="AIza...",
        doc_url="https://aistudio.google.com/app/apikey",
    ),
})


def get_api_key_name(name: ApiKeyName | str) -> ApiKeyName:
    """
    Coerce a string to an ApiKeyName.

    Raises:
        UnknownApiKeyError: If the name is not a supported API key.
    """
    if isinstance(name, ApiKeyName):
        return name
    try:
        return ApiKeyName(name)
    except ValueError:
        valid = ", ".join(k.value for k in ApiKeyName)
        raise UnknownApiKeyError(
            f"Unknown API key: {name}. Must be one of: {valid}"
        ) from None


def get_api_key_config(name: ApiKeyName | str) -> ApiKeyConfig:
    """Get the registry record for an API key."""
    return API_KEYS[get_api_key_name(name)]
