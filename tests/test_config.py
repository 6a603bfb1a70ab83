"""Tests for configuration loading."""

from pathlib import Path

import pytest

from transcript_relay.config import (
    DEFAULT_LOG_DIR,
    Config,
    apply_env_overrides,
    expand_env_var,
    load_config,
)


class TestExpandEnvVar:
    """Tests for ${VAR} expansion."""

    def test_expands_set_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should substitute the variable's value."""
        monkeypatch.setenv("RELAY_TEST_SECRET", "s3cret")
        assert expand_env_var("${RELAY_TEST_SECRET}") == "s3cret"

    def test_unset_variable_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unset variable should not leak its placeholder as a secret."""
        monkeypatch.delenv("RELAY_TEST_MISSING", raising=False)
        assert expand_env_var("${RELAY_TEST_MISSING}") == ""

    def test_plain_value_unchanged(self) -> None:
        """Values without ${} should pass through."""
        assert expand_env_var("plain") == "plain"


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_when_no_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Missing config file should yield defaults."""
        monkeypatch.delenv("TRANSCRIPT_RELAY_LOG_DIR")
        config = load_config(tmp_path / "missing.yaml")

        assert config.log_dir == DEFAULT_LOG_DIR
        assert config.hook.api_url == ""
        assert config.hook.timeout_seconds == 4.0
        assert config.hook.grace_seconds == 0.05
        assert config.hook.gate_policy == "session_end"
        assert config.server.backend == "typesense"
        assert config.server.upload_path == "/api/upload"
        assert config.typesense.collection == "tool_calls"
        assert config.typesense.connection_timeout_seconds == 5.0
        assert config.blob.container == "claude-transcripts"

    def test_loads_yaml_sections(self, tmp_path: Path) -> None:
        """Should read every section from YAML."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
log_dir: ~/relay-logs
hook:
  api_url: https://relay.example.com/api/upload
  timeout_seconds: 2
  gate_policy: always
server:
  backend: blob
  require_tool_use_id: true
  port: 9000
typesense:
  host: ts.internal
  port: 443
  protocol: https
blob:
  container: archive
"""
        )

        config = load_config(config_file)

        assert config.hook.api_url == "https://relay.example.com/api/upload"
        assert config.hook.timeout_seconds == 2.0
        assert config.hook.gate_policy == "always"
        assert config.server.backend == "blob"
        assert config.server.require_tool_use_id is True
        assert config.server.port == 9000
        assert config.typesense.host == "ts.internal"
        assert config.typesense.port == 443
        assert config.typesense.protocol == "https"
        assert config.blob.container == "archive"

    def test_expands_env_placeholders_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """${VAR} values in YAML should be read from the environment."""
        monkeypatch.setenv("RELAY_TEST_TS_KEY", "from-env")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("typesense:\n  api_key: ${RELAY_TEST_TS_KEY}\n")

        config = load_config(config_file)

        assert config.typesense.api_key == "from-env"

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables should win over file values."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("hook:\n  api_url: http://file.example\n")
        monkeypatch.setenv("CLAUDE_TRANSCRIPT_API_URL", "http://env.example")
        monkeypatch.setenv("CLAUDE_TRANSCRIPT_API_KEY", "k")

        config = load_config(config_file)

        assert config.hook.api_url == "http://env.example"
        assert config.hook.api_key == "k"

    def test_log_dir_env_override(self, tmp_path: Path) -> None:
        """TRANSCRIPT_RELAY_LOG_DIR should set log_dir as a Path."""
        config = load_config(tmp_path / "missing.yaml")
        assert config.log_dir == tmp_path / "logs"


class TestApplyEnvOverrides:
    """Tests for apply_env_overrides."""

    def test_converts_types(self) -> None:
        """Numeric settings should be converted."""
        config = apply_env_overrides(Config(), {"TYPESENSE_PORT": "9108"})
        assert config.typesense.port == 9108

    def test_empty_values_ignored(self) -> None:
        """Empty variables should not clear configured values."""
        config = Config()
        config.server.api_key = "keep"
        apply_env_overrides(config, {"TRANSCRIPT_RELAY_SERVER_API_KEY": ""})
        assert config.server.api_key == "keep"

    def test_selects_backend_and_storage(self) -> None:
        """Backend and blob settings should be settable from the environment."""
        config = apply_env_overrides(
            Config(),
            {
                "TRANSCRIPT_RELAY_BACKEND": "blob",
                "AZURE_STORAGE_CONNECTION_STRING": "UseDevelopmentStorage=true",
                "TRANSCRIPT_RELAY_CONTAINER": "c1",
            },
        )
        assert config.server.backend == "blob"
        assert config.blob.connection_string == "UseDevelopmentStorage=true"
        assert config.blob.container == "c1"
