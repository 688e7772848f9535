"""Configuration exceptions: settings files, rule tables, overrides."""

from pathlib import Path
from typing import Any, Union

from .base import SeedProbeError


class ConfigurationError(SeedProbeError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class ConfigFileError(ConfigurationError):
    """Raised when a settings file is missing or is not valid TOML."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot load configuration file: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason
