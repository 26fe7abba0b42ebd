"""Shared utilities."""

from .config_validator import (
    ConfigurationError,
    MonitorConfigValidator,
    apply_defaults,
    load_config_file,
    validate_and_fix_config,
)

__all__ = [
    "ConfigurationError",
    "MonitorConfigValidator",
    "apply_defaults",
    "load_config_file",
    "validate_and_fix_config",
]
