"""Configuration management for the duplicate cleanup engine."""

from .loader import Config, load_config, resolve_confirmation_token, save_config
from .models import (
    CleanupConfig,
    ConfigModel,
    DetectionConfig,
    LLMConfig,
    LoggingConfig,
    PostgresConfig,
    QualityConfig,
    SafetyConfig,
)

__all__ = [
    "CleanupConfig",
    "Config",
    "ConfigModel",
    "DetectionConfig",
    "LLMConfig",
    "LoggingConfig",
    "PostgresConfig",
    "QualityConfig",
    "SafetyConfig",
    "load_config",
    "resolve_confirmation_token",
    "save_config",
]
