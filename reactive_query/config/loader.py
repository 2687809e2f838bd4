"""
Configuration loader for reactive_query.

Loads a ClientConfig from a JSON or YAML file merged with environment
variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import ClientConfig


class ConfigLoader:
    """Configuration loader with support for files and environment variables."""

    env_prefix = "REACTIVE_QUERY_"

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            environ: Environment mapping to read (defaults to ``os.environ``)
        """
        self.environ = os.environ if environ is None else environ
        self.config_paths = [
            Path("reactive_query.yaml"),
            Path("reactive_query.yml"),
            Path("reactive_query.json"),
            Path("config/reactive_query.yaml"),
            Path("config/reactive_query.json"),
        ]

    def load_config(
        self,
        config_file: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> ClientConfig:
        """
        Load configuration from all available sources.

        Later sources win: file, then environment, then ``overrides``.

        Raises:
            ConfigurationError: If a file cannot be parsed or the merged
                configuration does not validate
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        if overrides:
            config_data = self._deep_merge(config_data, overrides)

        try:
            return ClientConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid client configuration: {e}") from e

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from an explicit file or the first default path found."""
        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            return self._parse_config_file(config_path)

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)

        return None

    def _parse_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Parse configuration file based on extension."""
        suffix = config_path.suffix.lower()
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix in (".yaml", ".yml"):
                    return yaml.safe_load(f) or {}
                elif suffix == ".json":
                    return json.load(f) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse config file {config_path}: {e}") from e

        raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings = {
            f"{self.env_prefix}BASE_URL": ("base_url",),
            f"{self.env_prefix}GRAPHQL_PATH": ("graphql_path",),
            f"{self.env_prefix}TOKEN": ("token",),
            f"{self.env_prefix}LANGUAGE": ("language",),
            f"{self.env_prefix}TIMEOUT": ("timeout",),
            f"{self.env_prefix}POLL_INTERVAL": ("poll_interval",),
            f"{self.env_prefix}QUERY_ATTEMPTS": ("query_attempts",),
            f"{self.env_prefix}AUTH_HEADER_KEY": ("auth_header_key",),
            # Logging
            f"{self.env_prefix}LOG_LEVEL": ("logging", "level"),
            f"{self.env_prefix}LOG_FILE": ("logging", "file_path"),
        }
        # Free-form values that must stay strings
        raw_values = {f"{self.env_prefix}TOKEN", f"{self.env_prefix}LANGUAGE"}

        for env_var, config_path in env_mappings.items():
            value = self.environ.get(env_var)
            if value is None:
                continue

            converted = value if env_var in raw_values else self._convert_env_value(value)

            current = config
            for key in config_path[:-1]:
                current = current.setdefault(key, {})
            current[config_path[-1]] = converted

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type."""
        lower = value.lower()
        if lower in ("true", "yes", "on"):
            return True
        if lower in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ClientConfig:
    """Load a ClientConfig from file, environment and keyword overrides."""
    return ConfigLoader(environ).load_config(config_file, **overrides)
