"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from linkharvest.infrastructure.config.load import load_config
from linkharvest.infrastructure.config.schema import DEFAULT_USER_AGENT

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "linkharvest-test",
        "environment": "test",
        "logging": {"level": "DEBUG", "format": "console"},
        "resolver": {
            "timeout_ms": 5000,
            "user_agent": "TestAgent/1.0",
            "mirror_bases": {"hubcloud": "https://hubcloud.live/"},
        },
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "linkharvest"
        assert config.environment == "dev"
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev -> console
        assert config.resolver.timeout_ms == 15_000
        assert config.resolver.max_concurrent_hops == 4
        assert config.resolver.require_referer is False
        assert config.resolver.follow_redirects is True
        assert config.resolver.user_agent == DEFAULT_USER_AGENT
        assert config.resolver.mirror_bases == {}

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "linkharvest-test"
        assert config.environment == "test"
        assert config.log_level == "DEBUG"
        assert config.resolver.timeout_ms == 5000
        assert config.resolver.timeout_seconds == 5.0
        assert config.resolver.user_agent == "TestAgent/1.0"
        assert config.resolver.mirror_bases == {"hubcloud": "https://hubcloud.live"}

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_partial_override_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"resolver": {"max_concurrent_hops": 8}}), encoding="utf-8")

        config = load_config(config_path=path)
        assert config.resolver.max_concurrent_hops == 8
        assert config.resolver.timeout_ms == 15_000  # default preserved
        assert config.app_name == "linkharvest"  # default preserved

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_invalid_timeout_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"resolver": {"timeout_ms": 0}}), encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LINKHARVEST_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LINKHARVEST_RESOLVER_TIMEOUT_MS", "60000")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.resolver.timeout_ms == 60_000
        # YAML values not overridden by ENV stay
        assert config.resolver.user_agent == "TestAgent/1.0"

    def test_env_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINKHARVEST_ENVIRONMENT", "prod")
        monkeypatch.setenv("LINKHARVEST_RESOLVER_REQUIRE_REFERER", "true")

        config = load_config()
        assert config.environment == "prod"
        assert config.log_format == "json"  # prod -> json
        assert config.resolver.require_referer is True

    def test_dotenv_file_feeds_env_layer(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Registers the variable with monkeypatch so teardown removes it again.
        monkeypatch.setenv("LINKHARVEST_RESOLVER_MAX_CONCURRENT_HOPS", "0")
        monkeypatch.delenv("LINKHARVEST_RESOLVER_MAX_CONCURRENT_HOPS")
        dotenv = tmp_path / ".env"
        dotenv.write_text("LINKHARVEST_RESOLVER_MAX_CONCURRENT_HOPS=2\n", encoding="utf-8")

        config = load_config(dotenv_path=dotenv)
        assert config.resolver.max_concurrent_hops == 2

    def test_dotenv_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LINKHARVEST_RESOLVER_TIMEOUT_MS", "60000")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"resolver_timeout_ms": 2500, "log_level": "ERROR"},
        )
        assert config.resolver.timeout_ms == 2500
        assert config.log_level == "ERROR"

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"resolver": {"follow_redirects": False}},
        )
        assert config.resolver.follow_redirects is False
        assert config.resolver.timeout_ms == 5000  # YAML preserved

    def test_sectioned_dump_round_trips(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        dumped = config.to_sectioned_dict()
        assert dumped["logging"] == {"level": "DEBUG", "format": "console"}
        assert dumped["resolver"]["timeout_ms"] == 5000
