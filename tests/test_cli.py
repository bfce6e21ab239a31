"""
Tests for the CLI commands.

Uses Python's unittest module.
Tests argument parsing, the config commands and keys status output.
"""

from __future__ import annotations

import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from agor.cli import create_parser, main
from agor.config.settings import load_config


class TestArgumentParser(unittest.TestCase):
    """Tests for CLI argument parsing."""

    def setUp(self) -> None:
        self.parser = create_parser()

    def test_version_argument(self) -> None:
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                self.parser.parse_args(["--version"])

        self.assertEqual(cm.exception.code, 0)

    def test_no_command_defaults(self) -> None:
        args = self.parser.parse_args([])

        self.assertEqual(args.verbose, 0)
        self.assertFalse(args.quiet)
        self.assertIsNone(args.command)

    def test_verbose_flag(self) -> None:
        self.assertEqual(self.parser.parse_args(["-vv"]).verbose, 2)

    def test_config_set_arguments(self) -> None:
        args = self.parser.parse_args(["config", "set", "board", "experiments"])

        self.assertEqual(args.command, "config")
        self.assertEqual(args.config_command, "set")
        self.assertEqual(args.key, "board")
        self.assertEqual(args.value, "experiments")

    def test_config_path_option(self) -> None:
        args = self.parser.parse_args(["--config", "/tmp/x.yaml", "config", "list"])

        self.assertEqual(args.config, "/tmp/x.yaml")

    def test_keys_status_json(self) -> None:
        args = self.parser.parse_args(["keys", "status", "--json"])

        self.assertTrue(args.json)


class CliTestCase(unittest.TestCase):
    """Runs main() against a temporary config file."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "config.yaml"
        self.env_patch = patch.dict(os.environ, {}, clear=True)
        self.env_patch.start()

    def tearDown(self) -> None:
        self.env_patch.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run_cli(self, *argv: str) -> tuple[int, str, str]:
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                main(["--config", str(self.config_path), *argv])
        return cm.exception.code, stdout.getvalue(), stderr.getvalue()


class TestConfigCommands(CliTestCase):
    """Tests for `agor config ...`."""

    def test_set_and_get_context(self) -> None:
        code, out, _ = self.run_cli("config", "set", "board", "experiments")
        self.assertEqual(code, 0)
        self.assertIn("Set board = experiments", out)

        code, out, _ = self.run_cli("config", "get", "board")
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "experiments")

    def test_get_unset_exits_1(self) -> None:
        code, out, _ = self.run_cli("config", "get", "session")

        self.assertEqual(code, 1)
        self.assertEqual(out, "")

    def test_get_default(self) -> None:
        code, out, _ = self.run_cli("config", "get", "defaults.agent")

        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "claude-code")

    def test_set_invalid_key(self) -> None:
        code, _, err = self.run_cli("config", "set", "daemon.port", "3030")

        self.assertEqual(code, 1)
        self.assertIn("Cannot set", err)

    def test_set_credential_output_is_sanitized(self) -> None:
        code, out, _ = self.run_cli(
            "config", "set", "credentials.OPENAI_API_KEY", "sk-proj-verysecretvalue"
        )

        self.assertEqual(code, 0)
        self.assertNotIn("verysecretvalue", out)
        self.assertEqual(
            load_config(self.config_path).credentials["OPENAI_API_KEY"],
            "sk-proj-verysecretvalue",
        )

        code, out, _ = self.run_cli("config", "get", "credentials.OPENAI_API_KEY")
        self.assertEqual(out.strip(), "sk-proj-...")

    def test_set_unknown_credential(self) -> None:
        code, _, err = self.run_cli("config", "set", "credentials.FOO_KEY", "x")

        self.assertEqual(code, 1)
        self.assertIn("Unknown API key", err)

    def test_set_blank_credential(self) -> None:
        code, _, err = self.run_cli("config", "set", "credentials.GEMINI_API_KEY", "  ")

        self.assertEqual(code, 1)
        self.assertIn("contains only whitespace", err)

    def test_unset(self) -> None:
        self.run_cli("config", "set", "repo", "anthropics/agor")

        code, out, _ = self.run_cli("config", "unset", "repo")

        self.assertEqual(code, 0)
        self.assertIn("Unset repo", out)
        self.assertIsNone(load_config(self.config_path).context.repo)

    def test_clear(self) -> None:
        self.run_cli("config", "set", "board", "b")
        self.run_cli("config", "set", "agent", "codex")

        code, _, _ = self.run_cli("config", "clear")

        self.assertEqual(code, 0)
        context = load_config(self.config_path).context
        self.assertIsNone(context.board)
        self.assertIsNone(context.agent)

    def test_list_json(self) -> None:
        self.run_cli("config", "set", "session", "01933e4a")

        code, out, _ = self.run_cli("config", "list", "--json")

        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["session"], "01933e4a")
        self.assertEqual(data["board"], "main")
        self.assertEqual(data["colorOutput"], "true")

    def test_init(self) -> None:
        code, out, _ = self.run_cli("config", "init")
        self.assertEqual(code, 0)
        self.assertTrue(self.config_path.exists())

        code, out, _ = self.run_cli("config", "init")
        self.assertIn("already exists", out)

    def test_corrupt_config_exits_2(self) -> None:
        self.config_path.write_text("context: [broken\n")

        code, _, err = self.run_cli("config", "get", "board")

        self.assertEqual(code, 2)
        self.assertIn("Configuration error", err)

    def test_undecodable_config_exits_2(self) -> None:
        self.config_path.write_bytes(b"context:\n  board: \xff\xfe\n")

        code, _, err = self.run_cli("config", "list")

        self.assertEqual(code, 2)
        self.assertIn("Configuration error", err)


class TestKeysStatus(CliTestCase):
    """Tests for `agor keys status`."""

    def test_status_reports_sources_without_values(self) -> None:
        self.run_cli("config", "set", "credentials.GEMINI_API_KEY", "AIzaSyGlobalSecret")
        os.environ["ANTHROPIC_API_KEY"] = "sk-ant-api03-envsecret"

        code, out, err = self.run_cli("keys", "status", "--json")

        self.assertEqual(code, 0)
        rows = {row["key"]: row for row in json.loads(out)}
        self.assertEqual(rows["ANTHROPIC_API_KEY"]["source"], "environment")
        self.assertEqual(rows["ANTHROPIC_API_KEY"]["value"], "sk-ant-a...")
        self.assertEqual(rows["GEMINI_API_KEY"]["source"], "config")
        self.assertIsNone(rows["OPENAI_API_KEY"]["source"])
        self.assertEqual(rows["OPENAI_API_KEY"]["value"], "none")
        self.assertNotIn("envsecret", out + err)
        self.assertNotIn("GlobalSecret", out + err)


if __name__ == "__main__":
    unittest.main()
