"""
Configuration management for usbtree.

Handles loading, validation, and access to tool configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from usbtree.descriptors.constants import DEFAULT_LANGUAGE_ID


# Default configuration paths
DEFAULT_CONFIG_PATHS = [
    Path("usbtree.yaml"),
    Path.home() / ".config" / "usbtree" / "usbtree.yaml",
]


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str | None = None
    file: str | None = None

    def __post_init__(self) -> None:
        # Fall back to the environment, then to warnings only
        if self.level is None:
            self.level = os.environ.get("USBTREE_LOG_LEVEL", "warning")
        self.level = self.level.lower()


@dataclass
class DecoderConfig:
    """Descriptor decoding settings."""

    configuration_id: int = 1
    language_id: int = DEFAULT_LANGUAGE_ID


@dataclass
class OutputConfig:
    """Output formatting settings."""

    format: str = "text"
    indent: int = 2


@dataclass
class TreeConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeConfig:
        """Create configuration from dictionary."""
        return cls(
            logging=LoggingConfig(**data.get("logging", {})),
            decoder=DecoderConfig(**data.get("decoder", {})),
            output=OutputConfig(**data.get("output", {})),
        )


def load_config(path: str | Path | None = None) -> TreeConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        TreeConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config file is not found.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the top level of the file is not a mapping.
    """
    if path is None:
        for candidate in DEFAULT_CONFIG_PATHS:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        return TreeConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    return TreeConfig.from_dict(data)


def validate_config(config: TreeConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.logging.level not in valid_log_levels:
        errors.append(f"Invalid log level: {config.logging.level}")

    valid_formats = {"text", "json"}
    if config.output.format not in valid_formats:
        errors.append(f"Invalid output format: {config.output.format}")

    if config.output.indent < 0:
        errors.append(f"Invalid indent: {config.output.indent}")

    # bConfigurationValue is a single byte
    if not (0 <= config.decoder.configuration_id <= 0xFF):
        errors.append(f"Invalid configuration_id: {config.decoder.configuration_id}")

    if not (0 <= config.decoder.language_id <= 0xFFFF):
        errors.append(f"Invalid language_id: {config.decoder.language_id}")

    return errors
