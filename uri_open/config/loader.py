"""
Configuration loader for uri_open.

This module loads the engine configuration from a YAML or JSON file and from
``URI_OPEN_*`` environment variables. Environment values override file values.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import EngineConfig


class ConfigLoader:
    """Configuration loader with support for multiple sources."""

    def __init__(self, environ: Optional[Dict[str, str]] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            environ: Environment mapping to read instead of ``os.environ``
        """
        self.config_paths = [
            Path("uri_open.yaml"),
            Path("uri_open.yml"),
            Path("uri_open.json"),
            Path.home() / ".uri_open" / "config.yaml",
            Path.home() / ".uri_open" / "config.yml",
            Path.home() / ".uri_open" / "config.json",
        ]
        self.environ = environ

        # Environment variable prefix
        self.env_prefix = "URI_OPEN_"

    def load_config(self, config_file: Optional[Union[str, Path]] = None) -> EngineConfig:
        """
        Load configuration from all available sources.

        Args:
            config_file: Specific config file to load; when omitted the
                default locations are searched

        Returns:
            EngineConfig instance with merged configuration

        Raises:
            ConfigurationError: If a file cannot be parsed or a value is invalid
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        try:
            return EngineConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
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
        if suffix not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    data = json.load(f) or {}
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        environ = os.environ if self.environ is None else self.environ
        config: Dict[str, Any] = {}

        env_mappings = {
            # Logging
            f"{self.env_prefix}LOG_LEVEL": ("logging", "level"),
            f"{self.env_prefix}LOG_FILE": ("logging", "file_path"),
            f"{self.env_prefix}LOG_FORMAT": ("logging", "format"),
            # Engine
            f"{self.env_prefix}SPILL_THRESHOLD": ("spill_threshold",),
            f"{self.env_prefix}HTTP_CHUNK_SIZE": ("http_chunk_size",),
            f"{self.env_prefix}FTP_BLOCK_SIZE": ("ftp_block_size",),
            f"{self.env_prefix}USER_AGENT": ("user_agent",),
        }

        for env_var, config_path in env_mappings.items():
            value = environ.get(env_var)
            if value is not None:
                current = config
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = self._convert_env_value(value)

        # A log file given through the environment turns file logging on
        if "file_path" in config.get("logging", {}):
            config["logging"]["enable_file"] = True

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type."""
        try:
            return int(value)
        except ValueError:
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

    def save_config(self, config: EngineConfig, config_file: Union[str, Path]) -> None:
        """Save configuration to a YAML or JSON file."""
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_data = config.model_dump(mode="json")

        with open(config_path, "w", encoding="utf-8") as f:
            suffix = config_path.suffix.lower()
            if suffix in (".yaml", ".yml"):
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
            elif suffix == ".json":
                json.dump(config_data, f, indent=2)
            else:
                raise ConfigurationError(
                    f"Unsupported config file format: {config_path.suffix}"
                )
