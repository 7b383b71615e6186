"""
Configuration system using Pydantic for type-safe settings management.

Settings are read from environment variables prefixed ``CREDCACHE_`` and,
optionally, from a YAML file whose values take precedence.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from credcache.enums import ProtectionBackend
from credcache.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("~/.config/credcache/config.yaml")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CacheSettings(BaseSettings):
    """Credential cache settings.

    Example:
        >>> settings = CacheSettings.load()
        >>> settings.protection
        <ProtectionBackend.KEYRING: 'keyring'>
    """

    model_config = SettingsConfigDict(
        env_prefix="CREDCACHE_",
        case_sensitive=False,
    )

    store_path: Path | None = Field(default=None, description="Default credential store directory")
    directory_name: str = Field(
        default="Credentials",
        min_length=1,
        description="Store subdirectory of the home directory, used when store_path is unset",
    )
    protection: ProtectionBackend = Field(
        default=ProtectionBackend.KEYRING, description="Secret protection backend"
    )
    keyring_service: str = Field(default="credcache", min_length=1, description="Keyring service holding the key")
    keyring_account: str | None = Field(default=None, description="Keyring account (defaults to OS login name)")
    passphrase: SecretStr | None = Field(default=None, description="Passphrase for the passphrase backend")
    log_level: str = Field(default="WARNING", description="Minimum log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("directory_name")
    @classmethod
    def validate_directory_name(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("directory_name must be a single path segment")
        return value

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> CacheSettings:
        """Load settings from a YAML file, the default config file, or the environment.

        Args:
            config_path: Explicit YAML file; the default file is used only when it exists

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        if config_path is not None:
            return cls.from_yaml(str(config_path))

        default_path = DEFAULT_CONFIG_PATH.expanduser()
        if default_path.exists():
            return cls.from_yaml(str(default_path))

        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid credcache environment settings: {e}") from e

    @classmethod
    def from_yaml(cls, config_path: str) -> CacheSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            CacheSettings instance

        Raises:
            ConfigurationError: If config file is invalid or contains invalid fields
        """
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports ``${VAR_NAME}`` (required) and ``${VAR_NAME:-default}``.
        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
