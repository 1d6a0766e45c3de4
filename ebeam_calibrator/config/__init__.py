"""Configuration module for the calibrator."""

from .loader import (
    ConfigLoader,
    ConfigurationError,
    EnvironmentLoader,
    FileLoader,
    FileLoadError,
    FormatError,
    load_config,
)
from .schemas import CalibratorConfig, LoggingConfig, LogLevel, ScreenConfig, ZoneConfig

__all__ = [
    "CalibratorConfig",
    "ScreenConfig",
    "ZoneConfig",
    "LoggingConfig",
    "LogLevel",
    "ConfigLoader",
    "FileLoader",
    "EnvironmentLoader",
    "ConfigurationError",
    "FileLoadError",
    "FormatError",
    "load_config",
]
