"""Configuration loading.

Settings are layered, later sources overriding earlier ones:

1. schema defaults
2. a JSON or YAML configuration file
3. ``EBEAM_`` environment variables, ``__`` separating nested keys
   (``EBEAM_SCREEN__WIDTH=1920``)
4. explicit overrides, typically parsed from the command line

The merged dictionary is validated into a CalibratorConfig.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .schemas import CalibratorConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "EBEAM_"
NESTED_SEPARATOR = "__"


class ConfigurationError(Exception):
    """Base exception for configuration errors."""

    pass


class FileLoadError(ConfigurationError):
    """Exception raised when file loading fails."""

    pass


class FormatError(ConfigurationError):
    """Exception raised when file format is unsupported or invalid."""

    pass


class FileLoader:
    """Loads configuration dictionaries from JSON or YAML files."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def load_file(self, file_path: Union[str, Path]) -> dict[str, Any]:
        """Load configuration from a single file.

        Raises:
            FileLoadError: If the file is missing or cannot be read
            FormatError: If the extension is unsupported or content invalid
        """
        path = Path(file_path)

        if not path.is_file():
            raise FileLoadError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        if suffix not in (".json", ".yaml", ".yml"):
            raise FormatError(f"Unsupported configuration format: {suffix or path}")

        try:
            with open(path, encoding=self.encoding) as f:
                content = f.read()
        except OSError as e:
            raise FileLoadError(f"Failed to read file {path}: {e}") from e

        try:
            if suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                data = yaml.safe_load(content) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise FormatError(f"Invalid configuration in {path}: {e}") from e

        if not isinstance(data, dict):
            raise FormatError(f"Configuration root in {path} must be a mapping")

        logger.info(f"Loaded configuration from {path}")
        return data


class EnvironmentLoader:
    """Loads configuration from prefixed environment variables."""

    def __init__(
        self,
        prefix: str = ENV_PREFIX,
        nested_separator: str = NESTED_SEPARATOR,
        environ: Optional[dict[str, str]] = None,
    ):
        self.prefix = prefix
        self.nested_separator = nested_separator
        self.environ = os.environ if environ is None else environ

    def load_environment(self) -> dict[str, Any]:
        config: dict[str, Any] = {}

        for env_key, env_value in self.environ.items():
            if not env_key.startswith(self.prefix):
                continue

            config_key = env_key[len(self.prefix) :].lower()
            if not config_key:
                continue

            value = self._convert_value(env_value)
            _set_nested_value(config, config_key.split(self.nested_separator), value)
            logger.debug(f"Loaded env var: {env_key} -> {config_key} = {value!r}")

        return config

    @staticmethod
    def _convert_value(value: str) -> Any:
        """Convert string value with automatic type inference."""
        value = value.strip()

        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
            return int(value)

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value


def _set_nested_value(config: dict[str, Any], keys: list[str], value: Any) -> None:
    current = config
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into mappings."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ConfigLoader:
    """Builds a validated CalibratorConfig from all configuration sources."""

    def __init__(
        self,
        file_loader: Optional[FileLoader] = None,
        env_loader: Optional[EnvironmentLoader] = None,
    ):
        self.file_loader = file_loader or FileLoader()
        self.env_loader = env_loader or EnvironmentLoader()

    def load(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> CalibratorConfig:
        """Load and validate the configuration.

        Args:
            config_file: Optional JSON or YAML file
            overrides: Values taking precedence over every other source

        Raises:
            ConfigurationError: If a source cannot be loaded or validation fails
        """
        merged: dict[str, Any] = {}

        if config_file is not None:
            merged = deep_merge(merged, self.file_loader.load_file(config_file))

        merged = deep_merge(merged, self.env_loader.load_environment())

        if overrides:
            merged = deep_merge(merged, overrides)

        try:
            config = CalibratorConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        logger.debug(f"Effective configuration: {config.model_dump(mode='json')}")
        return config


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> CalibratorConfig:
    """Load configuration from file, environment and overrides."""
    return ConfigLoader().load(config_file, overrides)
