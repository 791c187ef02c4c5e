"""Configuration management for addonfleet."""

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from addonfleet import __version__
from addonfleet.core.exceptions import ConfigurationError
from addonfleet.utils.params import parse_comma_separated_params


class ServiceAccountKeyFile(BaseModel):
    """Authenticate to GCP with a service account JSON key on disk."""

    model_config = ConfigDict(frozen=True)

    path: str

    @property
    def strategy(self) -> str:
        return "service_account_key"


class DefaultApplicationCredential(BaseModel):
    """Authenticate to GCP with the ambient application default credential."""

    model_config = ConfigDict(frozen=True)

    @property
    def strategy(self) -> str:
        return "default_application_credential"


CredentialSource = ServiceAccountKeyFile | DefaultApplicationCredential


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "json"
    output: str = "stderr"


class RunSettings(BaseModel):
    """Process-wide settings, built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    vault_token: str | None = None
    vault_addr: str | None = None
    namespace: str = "default"
    kubeconfig: str | None = None
    match_addons: str = ""
    context: str = ""
    dry_run: bool = False
    kube_diff: bool = False
    no_spin: bool = False
    sa_key_file: str | None = None
    rel_path: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)
    runtime: str | None = None
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("match_addons")
    @classmethod
    def _validate_addon_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid addon regex {value!r}: {e}") from e
        return value

    @field_validator("context")
    @classmethod
    def _validate_context(cls, value: str) -> str:
        try:
            parse_comma_separated_params(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return value

    @property
    def credential_source(self) -> CredentialSource:
        """Credential strategy selected by presence of ``sa_key_file``."""
        if self.sa_key_file:
            return ServiceAccountKeyFile(path=self.sa_key_file)
        return DefaultApplicationCredential()

    @property
    def context_params(self) -> dict[str, str]:
        """Parameters passed to the clusters function of the entry file."""
        return parse_comma_separated_params(self.context)

    @property
    def addon_regex(self) -> re.Pattern[str]:
        """Compiled addon name filter."""
        return re.compile(self.match_addons)

    @property
    def user_agent(self) -> str:
        """User agent attached to every GKE and Kubernetes API call."""
        return f"addonfleet/{__version__}"

    def helm_base_dir(self, entry_file: str) -> str:
        """Base directory used to resolve ``//``-prefixed chart paths.

        Args:
            entry_file: Path to the main entry file

        Returns:
            ``rel_path`` if configured, otherwise the entry file's directory
        """
        if self.rel_path:
            return self.rel_path
        return str(Path(entry_file).parent)

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "RunSettings":
        """Load settings from a YAML file, with explicit values taking precedence.

        Args:
            path: Path to configuration file
            **overrides: Values that replace the ones read from the file;
                ``None`` values are ignored

        Returns:
            RunSettings instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration: expected a mapping in {config_path}")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.build(**data)

    @classmethod
    def build(cls, **data: Any) -> "RunSettings":
        """Validate settings, converting validation failures to ConfigurationError.

        Raises:
            ConfigurationError: If any value is invalid
        """
        try:
            return cls(**data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
