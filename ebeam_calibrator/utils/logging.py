"""Logging configuration utilities for the calibrator."""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Optional, Union

import yaml

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
CONFIG_ENV_KEY = "LOG_CFG"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    config_path: Optional[Union[str, Path]] = None,
    env_key: str = CONFIG_ENV_KEY,
) -> None:
    """Setup logging configuration.

    A YAML ``dictConfig`` file is used when one is given or named by the
    ``env_key`` environment variable; otherwise messages go to stderr with
    the default format.

    Args:
        level: Root logging level, as a number or level name
        config_path: Path to a YAML logging configuration file
        env_key: Environment variable naming a logging configuration file
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if config_path is None:
        config_path = os.getenv(env_key)

    if config_path:
        config_path = Path(config_path)
        try:
            with open(config_path, encoding="utf-8") as config_file:
                config = yaml.safe_load(config_file)
            logging.config.dictConfig(config)
            logging.getLogger().setLevel(level)
            return
        except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
            print(
                f"Error loading logging configuration from {config_path}: {e}",
                file=sys.stderr,
            )
            print("Using default logging configuration", file=sys.stderr)

    _setup_default_logging(level)


def _setup_default_logging(level: int) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        if getattr(handler, "_ebeam_default", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATEFMT))
    console_handler._ebeam_default = True
    root_logger.addHandler(console_handler)
