"""Configuration loader for the KB revision sync engine."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from kbsync.models.config import AppConfig

log = structlog.stdlib.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigLoader:
    """Loads and validates configuration from YAML files and environment variables."""

    def __init__(self, config_dir: str | Path | None = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory holding <env>.yaml files. Defaults to ./config
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration from a YAML file with environment variable substitution.

        Args:
            config_path: Path to the configuration YAML file. If None, uses
                config/<KBSYNC_ENV>.yaml, falling back to config/default.yaml

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If configuration file is missing or invalid
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._load_yaml_file(config_path)
        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        log.info("configuration_loaded_successfully", kb_name=app_config.kb.kb_name)
        return app_config

    def _get_default_config_path(self) -> str:
        """Get the configuration file path for the current KBSYNC_ENV."""
        env = os.getenv("KBSYNC_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set KBSYNC_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ${VAR_NAME} references with environment values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        """Substitute environment variables in a string.

        Raises:
            ConfigurationError: If a referenced environment variable is not set
        """
        for var_name in self.env_var_pattern.findall(value):
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment or .env file."
                )
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Return non-fatal configuration warnings.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        if config.kb.password is not None and not config.kb.username:
            warnings.append("kb.password is set but kb.username is empty")

        if config.database.username and not config.database.server_instance:
            warnings.append(
                "database credentials are set but database.server_instance is empty; "
                "the default instance will be used"
            )

        if config.kb.kb_version is not None and not config.kb.kb_version.strip():
            warnings.append("kb.kb_version is blank; the trunk version will be tracked")

        if config.store.revision_file_name in config.store.legacy_revision_file_names:
            warnings.append(
                f"store.revision_file_name '{config.store.revision_file_name}' "
                f"is also listed as a legacy name"
            )

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
