"""Configuration management for jgh.

Settings live in a YAML file (``~/.config/jgh/config.yaml`` by default,
overridable with ``JGH_CONFIG`` or ``--config``). The file holds the Jira API
token, so it is written owner-readable only.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from jgh.errors import ConfigurationMissingError, ValidationError

CONFIG_ENV_VAR = "JGH_CONFIG"
ISSUE_TYPES = ["Task", "Bug", "Story", "Epic"]


class JiraSettings(BaseModel):
    """Jira connection settings."""

    url: str = Field(default="", description="Jira site URL, e.g. https://company.atlassian.net")
    email: str = Field(default="", description="Account email used for Basic auth")
    token: str = Field(default="", description="Jira API token")
    project: str = Field(default="", description="Project key for new and listed issues")
    issue_type: str = Field(default="Task", description="Default issue type for create")
    account_id: str | None = Field(default=None, description="Resolved Atlassian account ID")

    def browse_url(self, issue_key: str) -> str:
        """Build the browser URL for an issue."""
        return f"{self.url.rstrip('/')}/browse/{issue_key}"


class Config(BaseModel):
    """jgh configuration."""

    jira: JiraSettings | None = None
    display_name: str | None = Field(default=None, description="Jira display name used for 'assigned to me'")
    tempo_token: str | None = Field(default=None, description="Tempo API token for time tracking")

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file or use defaults.

        Raises:
            ValidationError: If the file is not valid YAML or does not match the schema.
        """
        config_path = config_path or default_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls.model_validate(data)
        except yaml.YAMLError as e:
            raise ValidationError(f"Configuration file {config_path} is not valid YAML: {e}") from e
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(part) for part in error["loc"]) or "root" for error in e.errors())
            raise ValidationError(
                f'Configuration file {config_path} has invalid values ({fields}). Fix the file or delete it and run "jgh setup".'
            ) from e

    def save(self, config_path: Path | None = None) -> Path:
        """Save configuration to file."""
        config_path = config_path or default_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        # Created owner-only; chmod covers files that already existed
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
        config_path.chmod(0o600)
        return config_path

    def require_jira(self) -> JiraSettings:
        """Get the Jira settings, failing if setup never ran."""
        if self.jira is None:
            raise ConfigurationMissingError('Please run "jgh setup" first to configure your settings.')
        return self.jira


def default_config_path() -> Path:
    """Resolve the configuration file location."""
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "jgh" / "config.yaml"


def load_config(config_path: Path | None = None) -> Config:
    """Load a configuration that has been through ``jgh setup``.

    Raises:
        ConfigurationMissingError: If the file or its Jira section is absent.
    """
    config = Config.load(config_path)
    config.require_jira()
    return config


def mask_secret(secret: str | None) -> str:
    """Mask a secret for display."""
    return "*" * len(secret) if secret else "Not set"
