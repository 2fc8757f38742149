"""Configuration: environment settings and JSON run configuration"""

from repo_insights.config.app_config import (
    AppConfig,
    ConfigError,
    KeywordConfig,
    LLMConfig,
    ReportSettings,
    load_config,
)
from repo_insights.config.settings import Settings, settings

__all__ = [
    "AppConfig",
    "ConfigError",
    "KeywordConfig",
    "LLMConfig",
    "ReportSettings",
    "Settings",
    "load_config",
    "settings",
]
