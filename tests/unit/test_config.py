"""Tests for configuration management."""

import re

import pytest
import yaml
from pydantic import ValidationError

from addonfleet.core.config import (
    DefaultApplicationCredential,
    LoggingConfig,
    RunSettings,
    ServiceAccountKeyFile,
)
from addonfleet.core.exceptions import ConfigurationError


class TestCredentialSource:
    """Tests for credential source selection."""

    def test_default_application_credential(self):
        """Test the ambient credential is used without a key file."""
        source = RunSettings().credential_source

        assert isinstance(source, DefaultApplicationCredential)
        assert source.strategy == "default_application_credential"

    def test_service_account_key_file(self):
        """Test a key file selects the service account strategy."""
        source = RunSettings(sa_key_file="/keys/sa.json").credential_source

        assert source == ServiceAccountKeyFile(path="/keys/sa.json")
        assert source.strategy == "service_account_key"

    def test_empty_key_file_means_default(self):
        """Test an empty key path falls back to the ambient credential."""
        assert isinstance(RunSettings(sa_key_file="").credential_source, DefaultApplicationCredential)


class TestRunSettings:
    """Tests for RunSettings model."""

    def test_defaults(self):
        """Test default values."""
        settings = RunSettings()

        assert settings.vault_token is None
        assert settings.namespace == "default"
        assert settings.match_addons == ""
        assert settings.dry_run is False
        assert settings.kube_diff is False
        assert settings.no_spin is False
        assert settings.timeout_seconds is None
        assert settings.runtime is None
        assert settings.logging == LoggingConfig()

    def test_frozen(self):
        """Test settings cannot change after startup."""
        settings = RunSettings()

        with pytest.raises(ValidationError):
            settings.dry_run = True

    def test_context_params(self):
        """Test context parameters are parsed on access."""
        settings = RunSettings(context="env=prod,tier=web")

        assert settings.context_params == {"env": "prod", "tier": "web"}

    def test_invalid_context_rejected(self):
        """Test malformed context parameters fail validation."""
        with pytest.raises(ValidationError, match="expected key=value"):
            RunSettings(context="env")

    def test_addon_regex(self):
        """Test the addon filter is compiled."""
        regex = RunSettings(match_addons="^(ingress|dns)$").addon_regex

        assert isinstance(regex, re.Pattern)
        assert regex.match("dns")
        assert not regex.match("cert-manager")

    def test_empty_regex_matches_everything(self):
        """Test the default filter matches every addon."""
        assert RunSettings().addon_regex.search("anything")

    def test_invalid_regex_rejected(self):
        """Test a malformed addon regex fails validation."""
        with pytest.raises(ValidationError, match="invalid addon regex"):
            RunSettings(match_addons="(unclosed")

    def test_timeout_must_be_positive(self):
        """Test zero and negative deadlines are rejected."""
        with pytest.raises(ValidationError):
            RunSettings(timeout_seconds=0)

    def test_user_agent(self):
        """Test the user agent carries the package version."""
        from addonfleet import __version__

        assert RunSettings().user_agent == f"addonfleet/{__version__}"

    def test_helm_base_dir_defaults_to_entry_file_directory(self):
        """Test chart paths resolve relative to the entry file."""
        assert RunSettings().helm_base_dir("deploy/prod/main.star") == "deploy/prod"

    def test_helm_base_dir_uses_rel_path(self):
        """Test an explicit base path wins."""
        settings = RunSettings(rel_path="/repo/charts")

        assert settings.helm_base_dir("deploy/main.star") == "/repo/charts"


class TestBuild:
    """Tests for RunSettings.build."""

    def test_valid(self):
        """Test building valid settings."""
        settings = RunSettings.build(namespace="addons", dry_run=True)

        assert settings.namespace == "addons"
        assert settings.dry_run is True

    def test_invalid_raises_configuration_error(self):
        """Test validation failures surface as ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            RunSettings.build(match_addons="[")


class TestFromFile:
    """Tests for RunSettings.from_file."""

    def test_load(self, tmp_path):
        """Test loading settings from YAML."""
        config_file = tmp_path / "addonfleet.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "namespace": "addons",
                    "match_addons": "^ingress",
                    "sa_key_file": "/keys/sa.json",
                    "timeout_seconds": 600,
                    "logging": {"level": "DEBUG", "format": "console"},
                }
            )
        )

        settings = RunSettings.from_file(config_file)

        assert settings.namespace == "addons"
        assert settings.match_addons == "^ingress"
        assert settings.timeout_seconds == 600
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"
        assert settings.logging.output == "stderr"
        assert isinstance(settings.credential_source, ServiceAccountKeyFile)

    def test_overrides_take_precedence(self, tmp_path):
        """Test explicit values replace file values and None is ignored."""
        config_file = tmp_path / "addonfleet.yaml"
        config_file.write_text(yaml.dump({"namespace": "addons", "vault_addr": "https://vault"}))

        settings = RunSettings.from_file(config_file, namespace="override", vault_addr=None)

        assert settings.namespace == "override"
        assert settings.vault_addr == "https://vault"

    def test_empty_file(self, tmp_path):
        """Test an empty file yields defaults."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert RunSettings.from_file(config_file) == RunSettings()

    def test_missing_file(self, tmp_path):
        """Test a missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            RunSettings.from_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test unparseable YAML is a configuration error."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("namespace: [unclosed")

        with pytest.raises(ConfigurationError, match="Failed to load configuration"):
            RunSettings.from_file(config_file)

    def test_not_a_mapping(self, tmp_path):
        """Test a YAML list is rejected."""
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="expected a mapping"):
            RunSettings.from_file(config_file)

    def test_invalid_values(self, tmp_path):
        """Test invalid values in the file are a configuration error."""
        config_file = tmp_path / "bad-values.yaml"
        config_file.write_text(yaml.dump({"context": "no-equals-sign"}))

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            RunSettings.from_file(config_file)
