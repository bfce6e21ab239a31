"""
Agor - credential and context configuration for agent sessions.

Resolves which API key each agent provider (Claude Code, Codex, Gemini)
should use, and which board, session, repo and agent the CLI is working
with, without ever logging a secret.

Key Features:
    - Three-tier API key resolution: per-user database, environment, config file
    - Graceful degradation when the user database is unavailable
    - Context resolution: flag, active context, defaults
    - Strict and lenient API key validation with safe log sanitization
"""

__version__ = "0.1.0"

from agor.config.settings import AgorConfig, load_config

__all__ = [
    "__version__",
    "AgorConfig",
    "load_config",
]
