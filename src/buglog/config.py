"""Configuration for the default logger.

Settings are read from YAML and validated with Pydantic.

Example buglog.yaml:

    output: stderr      # stdout, stderr, or a file path (appended to)
    placeholder: "?"    # written for values that can't be encoded
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from buglog.writer import DEFAULT_PLACEHOLDER

__all__ = ["CONFIG_ENV_VAR", "BuglogConfig", "load_config"]

CONFIG_ENV_VAR = "BUGLOG_CONFIG"
DEFAULT_CONFIG_FILENAME = "buglog.yaml"


class BuglogConfig(BaseModel):
    """Settings for the process-wide default logger."""

    output: str = Field(
        default="stdout",
        description="Output stream: 'stdout', 'stderr', or a file path",
    )
    placeholder: str = Field(
        default=DEFAULT_PLACEHOLDER,
        description="Value written in place of tags that can't be encoded",
    )

    @field_validator("output")
    @classmethod
    def _output_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("output must be 'stdout', 'stderr', or a file path")
        return value


def _config_path(config_path: Path | str | None) -> tuple[Path, bool]:
    """Resolve where settings come from and whether that file must exist."""
    if config_path is not None:
        return Path(config_path), True
    env_config = os.getenv(CONFIG_ENV_VAR)
    if env_config:
        return Path(env_config), True
    return Path(DEFAULT_CONFIG_FILENAME), False


def load_config(config_path: Path | str | None = None) -> BuglogConfig:
    """Load buglog settings from a path, $BUGLOG_CONFIG, or ./buglog.yaml.

    A missing ./buglog.yaml means defaults; a missing file that was named
    explicitly or through the environment is an error.

    Raises:
        FileNotFoundError: If an explicitly named config file doesn't exist
        ValueError: If the YAML is invalid or fails validation
    """
    path, required = _config_path(config_path)

    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        logger.debug("No buglog.yaml found, using defaults")
        return BuglogConfig()

    logger.debug(f"Loading buglog config from {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Error reading {path}: {e}") from e

    try:
        return BuglogConfig.model_validate(raw or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e
