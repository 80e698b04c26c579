"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from streamgarr.infrastructure.config.load import load_config
from streamgarr.infrastructure.config.schema import DEFAULT_MANIFEST_BASE_URL

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so teardown also removes values load_dotenv wrote.
    for name in ("STREAMGARR_TMDB_API_KEY", "STREAMGARR_DISABLED_PROVIDERS"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "streamgarr-test",
        "environment": "test",
        "http": {
            "timeout_seconds": 15.0,
            "user_agent": "TestAgent/1.0",
        },
        "logging": {"level": "DEBUG", "format": "console"},
        "cache": {"backend": "diskcache", "dir": str(tmp_path / "cache")},
        "providers": {
            "manifest_base_url": "https://registry.example.org/providers",
            "provider_timeout_seconds": 12.5,
            "disabled": ["soapertv"],
        },
        "sandbox": {"timeout_seconds": 5.0, "max_workers": 2},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, env or CLI layer."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "streamgarr"
        assert config.environment == "dev"
        assert config.http_timeout_seconds == 20.0
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev → console
        assert config.tmdb_api_key is None

    def test_provider_defaults(self) -> None:
        providers = load_config().providers
        assert providers.manifest_base_url == DEFAULT_MANIFEST_BASE_URL
        assert providers.manifest_ttl_seconds == 300
        assert providers.code_ttl_seconds == 600
        assert providers.identifier_ttl_seconds == 86_400
        assert providers.provider_timeout_seconds == 30.0
        assert providers.max_concurrent_providers == 0
        assert providers.disabled == []

    def test_cache_and_sandbox_defaults(self) -> None:
        config = load_config()
        assert config.cache.backend == "memory"
        assert config.cache.stale_retention_seconds == 604_800
        assert config.sandbox.timeout_seconds == 30.0
        assert config.sandbox.max_workers == 8

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "streamgarr-test"
        assert config.environment == "test"
        assert config.http_timeout_seconds == 15.0
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.cache.backend == "diskcache"
        assert config.cache.directory == tmp_path / "cache"
        assert config.providers.provider_timeout_seconds == 12.5
        assert config.providers.disabled == ["soapertv"]
        assert config.sandbox.timeout_seconds == 5.0
        assert config.sandbox.max_workers == 2

    def test_yaml_partial_section_keeps_section_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(
            yaml.dump({"providers": {"code_ttl_seconds": 60}}), encoding="utf-8"
        )
        config = load_config(config_path=path)
        assert config.providers.code_ttl_seconds == 60
        assert config.providers.manifest_ttl_seconds == 300

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            yaml.dump({"providers": {"provider_timeout_seconds": 0}}), encoding="utf-8"
        )
        with pytest.raises(ValueError):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMGARR_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("STREAMGARR_PROVIDER_TIMEOUT_SECONDS", "8")
        monkeypatch.setenv("STREAMGARR_SANDBOX_MAX_WORKERS", "3")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.providers.provider_timeout_seconds == 8.0
        assert config.sandbox.max_workers == 3
        # YAML values not overridden by ENV stay
        assert config.app_name == "streamgarr-test"
        assert config.sandbox.timeout_seconds == 5.0

    def test_disabled_providers_comma_list(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMGARR_DISABLED_PROVIDERS", "vidzee, mp4hydra,")
        config = load_config()
        assert config.providers.disabled == ["vidzee", "mp4hydra"]

    def test_tmdb_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STREAMGARR_TMDB_API_KEY", "secret")
        assert load_config().tmdb_api_key == "secret"

    def test_dotenv_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("STREAMGARR_TMDB_API_KEY=from-dotenv\n", encoding="utf-8")
        config = load_config(dotenv_path=env_file)
        assert config.tmdb_api_key == "from-dotenv"

    def test_dotenv_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMGARR_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR"},
        )
        assert config.log_level == "ERROR"

    def test_cli_flat_provider_keys(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={
                "manifest_base_url": "https://mirror.example.org",
                "disabled_providers": ["vidzee"],
            },
        )
        assert config.providers.manifest_base_url == "https://mirror.example.org"
        assert config.providers.disabled == ["vidzee"]

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"http": {"timeout_seconds": 5.0}},
        )
        assert config.http_timeout_seconds == 5.0

    def test_sectioned_dump_round_trips(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        dumped = config.to_sectioned_dict()
        assert dumped["providers"]["disabled"] == ["soapertv"]
        assert dumped["sandbox"]["max_workers"] == 2
        assert dumped["cache"]["backend"] == "diskcache"
