"""
Command-line interface for Agor.

Provides the `config` commands for managing CLI context and global
credentials, and `keys status` for checking which source each agent
provider's API key resolves from.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from agor import __version__
from agor.config.context import get_effective_config
from agor.config.key_resolver import lookup_api_key_sync
from agor.config.keys import API_KEYS, UnknownApiKeyError
from agor.config.settings import (
    ConfigurationError,
    ContextKey,
    clear_context,
    get_config_path,
    get_config_value,
    init_config,
    load_config,
    set_context,
    set_credential,
    unset_context,
    unset_credential,
)
from agor.config.validator import ApiKeyValidationError, sanitize_api_key_for_logging

# Set up logging
logger = logging.getLogger(__name__)

CONTEXT_KEYS = [k.value for k in ContextKey]
CREDENTIALS_PREFIX = "credentials."

# Global verbosity setting (set during main() based on args)
_quiet_mode = False


def set_output_mode(quiet: bool = False) -> None:
    """Set the output mode for the CLI."""
    global _quiet_mode
    _quiet_mode = quiet


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for values and JSON).
    """
    if force or not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config) if args.config else None


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the Agor CLI."""
    parser = argparse.ArgumentParser(
        prog="agor",
        description="Manage Agor CLI context and agent API keys",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"agor {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.agor/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # config command group
    config_parser = subparsers.add_parser(
        "config",
        help="Get and set configuration values",
        description="Manage active context (board, session, repo, agent) and credentials.",
    )
    config_sub = config_parser.add_subparsers(
        title="config commands",
        dest="config_command",
        metavar="<action>",
    )

    get_parser = config_sub.add_parser(
        "get",
        help="Get a configuration value (exit code 1 if unset)",
    )
    get_parser.add_argument(
        "key",
        help="Key such as board, defaults.agent, display.tableStyle, "
        "credentials.ANTHROPIC_API_KEY",
    )
    get_parser.set_defaults(func=cmd_config_get)

    set_parser = config_sub.add_parser(
        "set",
        help="Set a context value or global credential",
    )
    set_parser.add_argument(
        "key",
        help=f"One of {', '.join(CONTEXT_KEYS)} or credentials.<KEY_NAME>",
    )
    set_parser.add_argument("value", help="Value to set")
    set_parser.set_defaults(func=cmd_config_set)

    unset_parser = config_sub.add_parser(
        "unset",
        help="Clear a context value or global credential",
    )
    unset_parser.add_argument(
        "key",
        help=f"One of {', '.join(CONTEXT_KEYS)} or credentials.<KEY_NAME>",
    )
    unset_parser.set_defaults(func=cmd_config_unset)

    clear_parser = config_sub.add_parser(
        "clear",
        help="Clear all active context values",
    )
    clear_parser.set_defaults(func=cmd_config_clear)

    list_parser = config_sub.add_parser(
        "list",
        help="Show effective configuration",
    )
    list_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    list_parser.set_defaults(func=cmd_config_list)

    init_parser = config_sub.add_parser(
        "init",
        help="Create the config file with defaults if it does not exist",
    )
    init_parser.set_defaults(func=cmd_config_init)

    # keys command group
    keys_parser = subparsers.add_parser(
        "keys",
        help="Inspect agent provider API keys",
    )
    keys_sub = keys_parser.add_subparsers(
        title="keys commands",
        dest="keys_command",
        metavar="<action>",
    )

    status_parser = keys_sub.add_parser(
        "status",
        help="Show which source each API key resolves from",
    )
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    status_parser.set_defaults(func=cmd_keys_status)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def cmd_config_get(args: argparse.Namespace) -> int:
    """Print a single configuration value."""
    config = load_config(_config_path(args))
    value = get_config_value(args.key, config)

    if value is None:
        return 1

    if args.key.startswith(CREDENTIALS_PREFIX):
        value = sanitize_api_key_for_logging(value)
    elif isinstance(value, bool):
        value = str(value).lower()
    elif isinstance(value, dict | list):
        value = json.dumps(value)

    output(str(value), force=True)
    return 0


def cmd_config_set(args: argparse.Namespace) -> int:
    """Set a context value or a global credential."""
    config_path = _config_path(args)
    key: str = args.key

    if key.startswith(CREDENTIALS_PREFIX):
        name = key[len(CREDENTIALS_PREFIX):]
        try:
            set_credential(name, args.value, config_path)
        except (UnknownApiKeyError, ApiKeyValidationError) as e:
            output_error(f"Error: {e}")
            return 1
        output(f"Set {key} = {sanitize_api_key_for_logging(args.value)}")
        return 0

    if key not in CONTEXT_KEYS:
        output_error(
            f"Error: Cannot set '{key}'. "
            f"Valid keys: {', '.join(CONTEXT_KEYS)}, credentials.<KEY_NAME>"
        )
        return 1

    set_context(key, args.value, config_path)
    output(f"Set {key} = {args.value}")
    return 0


def cmd_config_unset(args: argparse.Namespace) -> int:
    """Clear a context value or a global credential."""
    config_path = _config_path(args)
    key: str = args.key

    if key.startswith(CREDENTIALS_PREFIX):
        try:
            removed = unset_credential(key[len(CREDENTIALS_PREFIX):], config_path)
        except UnknownApiKeyError as e:
            output_error(f"Error: {e}")
            return 1
    elif key in CONTEXT_KEYS:
        removed = unset_context(key, config_path)
    else:
        output_error(
            f"Error: Cannot unset '{key}'. "
            f"Valid keys: {', '.join(CONTEXT_KEYS)}, credentials.<KEY_NAME>"
        )
        return 1

    if removed:
        output(f"Unset {key}")
    else:
        output(f"{key} was not set")
    return 0


def cmd_config_clear(args: argparse.Namespace) -> int:
    """Clear all active context values."""
    clear_context(_config_path(args))
    output("Cleared active context")
    return 0


def cmd_config_list(args: argparse.Namespace) -> int:
    """Show effective configuration values."""
    config_path = _config_path(args)
    effective = get_effective_config(config_path=config_path)

    if args.json:
        output(json.dumps(effective, indent=2), force=True)
        return 0

    output(f"Config file: {config_path or get_config_path()}")
    output()
    for key, value in effective.items():
        output(f"  {key:<14} {value if value is not None else '(not set)'}", force=True)
    return 0


def cmd_config_init(args: argparse.Namespace) -> int:
    """Create the config file with defaults."""
    config_path = _config_path(args) or get_config_path()

    if init_config(config_path):
        output(f"Created {config_path}")
    else:
        output(f"Config file already exists: {config_path}")
    return 0


def cmd_keys_status(args: argparse.Namespace) -> int:
    """Show which source each API key resolves from (environment or config)."""
    config_path = _config_path(args)
    rows: list[dict[str, Any]] = []

    for key_name, key_config in API_KEYS.items():
        resolved = lookup_api_key_sync(key_name, config_path=config_path)
        rows.append({
            "key": key_name.value,
            "label": key_config.label,
            "service": key_config.service_name,
            "source": resolved.source.value if resolved else None,
            "value": sanitize_api_key_for_logging(resolved.value if resolved else None),
            "doc_url": key_config.doc_url,
        })

    if args.json:
        output(json.dumps(rows, indent=2), force=True)
        return 0

    output("API Keys")
    output("=" * 60)
    for row in rows:
        source = row["source"] or "not configured"
        output(f"  {row['label']:<20} {source:<16} {row['value']}", force=True)
        if row["source"] is None:
            output(f"    Get a key at {row['doc_url']}")
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the Agor CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet)

    if args.command is None or not hasattr(args, "func"):
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
