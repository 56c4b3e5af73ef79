"""
Configuration Management Package

Provides Pydantic-based configuration models and management for Walltaker.
"""

from walltaker.core.config.models import AppConfig, SearchConfig, CacheSettings, HistoryConfig
from walltaker.core.config.manager import ConfigManager

__all__ = [
    "AppConfig",
    "SearchConfig",
    "CacheSettings",
    "HistoryConfig",
    "ConfigManager",
]
