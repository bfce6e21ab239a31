"""Tests for context value resolution (agor.config.context)."""

import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path

from agor.config.context import (
    get_effective_config,
    get_effective_config_async,
    resolve_value,
    resolve_value_async,
    resolve_values,
    resolve_values_async,
)
from agor.config.settings import (
    AgorConfig,
    ContextKey,
    ContextValues,
    DefaultValues,
    DisplaySettings,
    default_config,
    save_config,
)


class TestResolveValue(unittest.TestCase):
    """Tests for the flag -> context -> defaults priority order."""

    def setUp(self) -> None:
        self.config = default_config()

    def test_flag_wins_over_everything(self) -> None:
        self.config.context.board = "from-context"

        self.assertEqual(resolve_value("board", "experiments", self.config), "experiments")

    def test_flag_with_empty_context(self) -> None:
        config = AgorConfig(context=ContextValues())

        self.assertEqual(resolve_value("board", "experiments", config), "experiments")

    def test_context_wins_over_default(self) -> None:
        self.config.context.agent = "codex"

        self.assertEqual(resolve_value(ContextKey.AGENT, None, self.config), "codex")

    def test_default_used_without_context(self) -> None:
        self.assertEqual(resolve_value("board", None, self.config), "main")
        self.assertEqual(resolve_value("agent", None, self.config), "claude-code")

    def test_blank_context_does_not_shadow_default(self) -> None:
        config = AgorConfig(
            context=ContextValues(board=""),
            defaults=DefaultValues(board="main"),
        )

        self.assertEqual(resolve_value("board", None, config), "main")

    def test_whitespace_context_does_not_shadow_default(self) -> None:
        self.config.context.agent = "  \t"

        self.assertEqual(resolve_value("agent", None, self.config), "claude-code")

    def test_blank_flag_falls_through(self) -> None:
        self.config.context.board = "from-context"

        self.assertEqual(resolve_value("board", "", self.config), "from-context")
        self.assertEqual(resolve_value("board", "   ", self.config), "from-context")

    def test_keys_without_defaults_resolve_to_none(self) -> None:
        self.assertIsNone(resolve_value("session", None, self.config))
        self.assertIsNone(resolve_value("repo", None, self.config))

    def test_blank_default_resolves_to_none(self) -> None:
        config = AgorConfig(defaults=DefaultValues(board=" "))

        self.assertIsNone(resolve_value("board", None, config))

    def test_invalid_key_raises(self) -> None:
        with self.assertRaises(ValueError):
            resolve_value("tableStyle", "x", self.config)


class TestResolveValueFromDisk(unittest.TestCase):
    """Tests that load the config file when none is passed."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "config.yaml"

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_absent_file_uses_defaults(self) -> None:
        self.assertEqual(resolve_value("board", config_path=self.config_path), "main")

    def test_reads_context_from_file(self) -> None:
        config = default_config()
        config.context.repo = "anthropics/agor:main"
        save_config(config, self.config_path)

        self.assertEqual(
            resolve_value("repo", config_path=self.config_path),
            "anthropics/agor:main",
        )

    def test_async_variants(self) -> None:
        config = default_config()
        config.context.session = "01933e4a"
        save_config(config, self.config_path)

        value = asyncio.run(resolve_value_async("session", config_path=self.config_path))
        values = asyncio.run(
            resolve_values_async(["session", "agent"], config_path=self.config_path)
        )
        effective = asyncio.run(get_effective_config_async(config_path=self.config_path))

        self.assertEqual(value, "01933e4a")
        self.assertEqual(values, {"session": "01933e4a", "agent": "claude-code"})
        self.assertEqual(effective["session"], "01933e4a")


class TestResolveValues(unittest.TestCase):
    """Tests for batch resolution."""

    def test_resolves_each_key_independently(self) -> None:
        resolved = resolve_values(
            ["board", "agent"], {"board": "experiments"}, default_config()
        )

        self.assertEqual(resolved, {"board": "experiments", "agent": "claude-code"})

    def test_unresolved_keys_are_omitted(self) -> None:
        resolved = resolve_values(["board", "session", "repo"], None, default_config())

        self.assertEqual(resolved, {"board": "main"})
        self.assertNotIn("session", resolved)

    def test_accepts_enum_keys(self) -> None:
        resolved = resolve_values([ContextKey.AGENT], {"agent": "gemini"}, AgorConfig())

        self.assertEqual(resolved, {"agent": "gemini"})


class TestEffectiveConfig(unittest.TestCase):
    """Tests for get_effective_config."""

    def test_effective_config_from_defaults(self) -> None:
        effective = get_effective_config(default_config())

        self.assertEqual(
            effective,
            {
                "board": "main",
                "session": None,
                "repo": None,
                "agent": "claude-code",
                "tableStyle": "unicode",
                "colorOutput": "true",
                "shortIdLength": "8",
            },
        )

    def test_display_settings_are_verbatim(self) -> None:
        config = AgorConfig(
            display=DisplaySettings(table_style="minimal", color_output=False)
        )

        effective = get_effective_config(config)

        self.assertEqual(effective["tableStyle"], "minimal")
        self.assertEqual(effective["colorOutput"], "false")
        self.assertIsNone(effective["shortIdLength"])
        self.assertIsNone(effective["board"])


if __name__ == "__main__":
    unittest.main()
