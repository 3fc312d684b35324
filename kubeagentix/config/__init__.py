"""
Config - Black Box Interface

Purpose: Application configuration
Interface: ConfigProvider, EnvConfigProvider, FileConfigProvider, load_config_provider()
Hidden: Environment parsing, YAML overlay
"""

from .provider import (
    APIConfig,
    ConfigProvider,
    EnvConfigProvider,
    FileConfigProvider,
    LLMConfig,
    load_config_provider,
)

__all__ = [
    "APIConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "FileConfigProvider",
    "LLMConfig",
    "load_config_provider",
]
