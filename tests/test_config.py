from __future__ import annotations

import pytest
import yaml

from aitherflow.engine.config import HostConfig
from aitherflow.engine.yaml_config import load_yaml_config, resolve_config
from aitherflow.shared.commands import COMMAND_HELP, help_text, parse_command
from aitherflow.shared.services.paths import config_dir, data_dir
from aitherflow.shared.services.preferences import UserPreferences


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "AITHERFLOW_CLAUDE_CLI",
        "AITHERFLOW_MODEL",
        "AITHERFLOW_TOOL_CLEAR_DELAY",
        "AITHERFLOW_EVENT_LOG_SIZE",
        "AITHERFLOW_QUEUE_SIZE",
        "AITHERFLOW_STDERR_LIMIT",
        "AITHERFLOW_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestHostConfig:
    def test_defaults(self) -> None:
        config = HostConfig.from_env()
        assert config.claude_cli == "claude"
        assert config.model is None
        assert config.tool_clear_delay == 1.5
        assert config.event_log_size == 200

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("AITHERFLOW_CLAUDE_CLI", "/opt/claude")
        monkeypatch.setenv("AITHERFLOW_MODEL", "opus")
        monkeypatch.setenv("AITHERFLOW_TOOL_CLEAR_DELAY", "0.25")
        monkeypatch.setenv("AITHERFLOW_EVENT_LOG_SIZE", "10")

        config = HostConfig.from_env()

        assert config.claude_cli == "/opt/claude"
        assert config.model == "opus"
        assert config.tool_clear_delay == 0.25
        assert config.event_log_size == 10

    def test_invalid_number_keeps_default(self, monkeypatch) -> None:
        monkeypatch.setenv("AITHERFLOW_TOOL_CLEAR_DELAY", "soon")
        monkeypatch.setenv("AITHERFLOW_QUEUE_SIZE", "lots")
        config = HostConfig.from_env()
        assert config.tool_clear_delay == 1.5
        assert config.event_queue_size == 5000


class TestYamlConfig:
    def test_host_section_overrides_base(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "host:\n"
            "  claude_cli: /usr/bin/claude\n"
            "  model: sonnet\n"
            "  tool_clear_delay: 2\n"
            "  bogus: 1\n"
        )
        config = load_yaml_config(path, HostConfig())

        assert config.claude_cli == "/usr/bin/claude"
        assert config.model == "sonnet"
        assert config.tool_clear_delay == 2.0
        assert config.event_log_size == 200

    def test_invalid_number_is_skipped(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("host:\n  event_log_size: many\n")
        assert load_yaml_config(path, HostConfig()).event_log_size == 200

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml_config(tmp_path / "absent.yaml", HostConfig())

    def test_invalid_yaml_raises(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("host: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_config(path, HostConfig())

    def test_resolve_prefers_explicit_then_default(self, tmp_path) -> None:
        default = tmp_path / "config.yaml"
        assert resolve_config(None, default) == HostConfig.from_env()

        default.write_text("host:\n  model: haiku\n")
        assert resolve_config(None, default).model == "haiku"

        explicit = tmp_path / "other.yaml"
        explicit.write_text("host:\n  model: opus\n")
        assert resolve_config(explicit, default).model == "opus"


class TestPaths:
    def test_override_env(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("AITHERFLOW_CONFIG_DIR", str(tmp_path / "cfg"))
        monkeypatch.setenv("AITHERFLOW_DATA_DIR", str(tmp_path / "data"))
        assert config_dir() == tmp_path / "cfg"
        assert data_dir() == tmp_path / "data"

    def test_xdg(self, monkeypatch, tmp_path) -> None:
        monkeypatch.delenv("AITHERFLOW_CONFIG_DIR", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert config_dir() == tmp_path / "aither-flow"


class TestPreferences:
    def test_round_trip(self, tmp_path) -> None:
        path = tmp_path / "preferences.json"
        UserPreferences(show_tool_details=True, sidebar_width=40).save(path)
        prefs = UserPreferences.load(path)
        assert prefs.show_tool_details is True
        assert prefs.sidebar_width == 40
        assert prefs.confirm_close_agent is True

    def test_missing_or_corrupt_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "preferences.json"
        assert UserPreferences.load(path) == UserPreferences()
        path.write_text("nope")
        assert UserPreferences.load(path) == UserPreferences()

    def test_out_of_range_values_are_reset(self, tmp_path) -> None:
        path = tmp_path / "preferences.json"
        path.write_text('{"sidebar_width": 500, "show_tool_details": "yes", "unknown": 1}')
        prefs = UserPreferences.load(path)
        assert prefs.sidebar_width == 28
        assert prefs.show_tool_details is False


class TestCommands:
    def test_parse(self) -> None:
        command = parse_command("  /open ~/src/my project ")
        assert command.name == "open"
        assert command.args == ["~/src/my", "project"]
        assert command.arg_text == "~/src/my project"

    def test_plain_text_is_not_a_command(self) -> None:
        assert parse_command("hello /there") is None
        assert parse_command("/") is None

    def test_help_lists_every_command(self) -> None:
        text = help_text()
        for name in COMMAND_HELP:
            assert f"/{name}" in text
