"""
Tests for configuration handling.
"""

import pytest

import anvil
from anvil.config import (
    Configuration,
    Environment,
    configure,
    get_configuration,
    load_config,
    reset_configuration,
)
from anvil.errors import ConfigurationError


class TestEnvironment:
    """Environment coercion and defaults."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("development", Environment.DEVELOPMENT),
            ("production", Environment.PRODUCTION),
            ("DEVELOPMENT", Environment.DEVELOPMENT),
            (Environment.PRODUCTION, Environment.PRODUCTION),
        ],
    )
    def test_assignment_coerces(self, value, expected):
        config = Configuration()
        config.environment = value
        assert config.environment is expected

    def test_invalid_environment_raises(self):
        config = Configuration()
        with pytest.raises(ConfigurationError, match="Invalid environment"):
            config.environment = "staging"

    def test_invalid_environment_is_value_error(self):
        with pytest.raises(ValueError):
            Configuration(environment="staging")

    def test_defaults_to_production(self):
        assert Configuration().environment is Environment.PRODUCTION

    def test_default_from_anvil_env(self, monkeypatch):
        monkeypatch.setenv("ANVIL_ENV", "development")
        config = Configuration()
        assert config.is_development()
        assert not config.is_production()

    def test_invalid_anvil_env_falls_back_to_production(self, monkeypatch):
        monkeypatch.setenv("ANVIL_ENV", "qa")
        assert Configuration().is_production()


class TestCredentials:
    """API key and webhook token lookup."""

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ANVIL_API_KEY", "env_key")
        assert Configuration().get_api_key() == "env_key"

    def test_explicit_api_key_wins(self, monkeypatch):
        monkeypatch.setenv("ANVIL_API_KEY", "env_key")
        config = Configuration(api_key="direct_key")
        assert config.get_api_key() == "direct_key"

    def test_api_key_missing(self):
        assert Configuration().get_api_key() is None

    def test_webhook_token_reread_on_every_call(self, monkeypatch):
        config = Configuration()
        assert config.get_webhook_token() is None

        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "first")
        assert config.get_webhook_token() == "first"

        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "rotated")
        assert config.get_webhook_token() == "rotated"

    def test_explicit_webhook_token_wins(self, monkeypatch):
        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "env_token")
        assert Configuration(webhook_token="direct").get_webhook_token() == "direct"


class TestValidation:
    """validate() / validation_errors()."""

    def test_missing_api_key_raises(self):
        with pytest.raises(ConfigurationError, match="No API key configured"):
            Configuration().validate()

    def test_empty_api_key_raises(self):
        with pytest.raises(ConfigurationError):
            Configuration(api_key="").validate()

    def test_valid_configuration(self):
        config = Configuration(api_key="key")
        assert config.validation_errors() == []
        config.validate()

    def test_non_positive_timeout_reported(self):
        config = Configuration(api_key="key", timeout=0)
        errors = config.validation_errors()
        assert any("timeout" in e for e in errors)

    def test_copy_is_independent(self):
        config = Configuration(api_key="key")
        duplicate = config.copy()
        duplicate.api_key = "other"
        assert config.api_key == "key"


class TestProcessDefault:
    """Process-default configuration helpers."""

    def test_configure_updates_default(self):
        configure(api_key="abc", environment="development")
        assert get_configuration().api_key == "abc"
        assert get_configuration().is_development()

    def test_configure_rejects_unknown_setting(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration setting"):
            configure(api_secret="nope")

    def test_reset_restores_defaults(self):
        configure(api_key="abc")
        reset_configuration()
        assert get_configuration().api_key is None

    def test_package_reexports(self):
        anvil.configure(webhook_token="tok")
        assert anvil.get_configuration().get_webhook_token() == "tok"


class TestLoadConfig:
    """YAML loading with environment overrides."""

    def test_missing_file_yields_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert config.base_url == "https://app.useanvil.com/api/v1"
        assert config.graphql_url == "https://graphql.useanvil.com/"
        assert config.timeout == 120
        assert config.open_timeout == 30

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "anvil.yaml"
        path.write_text(
            "api_key: file_key\n"
            "environment: development\n"
            "timeout: 60\n"
            "max_retries: 5\n"
        )

        config = load_config(path)

        assert config.api_key == "file_key"
        assert config.is_development()
        assert config.timeout == 60
        assert config.max_retries == 5

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "anvil.yaml"
        path.write_text("api_key: file_key\nenvironment: development\n")
        monkeypatch.setenv("ANVIL_API_KEY", "env_key")
        monkeypatch.setenv("ANVIL_ENV", "production")

        config = load_config(path)

        assert config.get_api_key() == "env_key"
        assert config.api_key == "file_key"
        assert config.is_production()

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "anvil.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_environment_token_rotation_after_load(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "old")
        config = load_config(tmp_path / "missing.yaml")

        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "rotated")

        assert config.get_webhook_token() == "rotated"

    def test_file_token_used_when_environment_unset(self, tmp_path, monkeypatch):
        path = tmp_path / "anvil.yaml"
        path.write_text("webhook_token: from_file\n")
        config = load_config(path)

        assert config.get_webhook_token() == "from_file"

        monkeypatch.setenv("ANVIL_WEBHOOK_TOKEN", "from_env")
        assert config.get_webhook_token() == "from_env"

    def test_explicit_client_key_beats_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANVIL_API_KEY", "env_key")
        config = load_config(tmp_path / "missing.yaml")

        assert anvil.Client(api_key="direct_key", config=config).api_key == "direct_key"


class TestConfigureAtomicity:
    """configure() applies all settings or none."""

    def test_invalid_value_leaves_default_untouched(self):
        with pytest.raises(ConfigurationError):
            configure(api_key="leaked", environment="staging")

        assert get_configuration().api_key is None
        assert get_configuration().is_production()

    def test_unknown_setting_leaves_default_untouched(self):
        with pytest.raises(ConfigurationError):
            configure(api_key="leaked", api_secret="nope")

        assert get_configuration().api_key is None

    def test_default_instance_is_updated_in_place(self):
        before = get_configuration()
        configure(api_key="abc", timeout=30)
        assert get_configuration() is before
        assert before.timeout == 30
