"""Configuration module for dormant account auditing."""

from .loader import load_config, validate_config
from .models import (
    ActiveDirectoryConfig,
    SecurityConfig,
    LoggingConfig,
    PerformanceConfig,
    RemediationConfig,
    Config,
)

__all__ = [
    "load_config",
    "validate_config",
    "ActiveDirectoryConfig",
    "SecurityConfig",
    "LoggingConfig",
    "PerformanceConfig",
    "RemediationConfig",
    "Config",
]
