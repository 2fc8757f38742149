"""Run configuration loaded from the JSON files in the config directory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

GEMINI_HOST = "generativelanguage.googleapis.com"
ANTHROPIC_HOST = "api.anthropic.com"


class ConfigError(Exception):
    """Raised when a configuration file is missing, unparsable or invalid."""


class KeywordConfig(BaseModel):
    """Include/exclude filters plus category -> keywords rules (declared order kept)."""

    include: list[str] = []
    exclude: list[str] = []
    categories: dict[str, list[str]] = {}


class ReportSettings(BaseModel):
    window_days: int
    short_window_days: int
    top_n: int
    new_repo_threshold_days: int = 90
    dark_horse_score_threshold: int = 100
    cache_ttl_hours: int = 24
    report_language: str = ""
    report_id_format: str = "YYYY-MM-weekN"
    filter_domain: str = ""

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        # Zero means "not set" in the settings file, same as an absent key
        if isinstance(data, dict):
            defaults = {
                "new_repo_threshold_days": 90,
                "dark_horse_score_threshold": 100,
                "cache_ttl_hours": 24,
                "report_id_format": "YYYY-MM-weekN",
            }
            data = dict(data)
            for key, default in defaults.items():
                if not data.get(key):
                    data[key] = default
        return data


class LLMConfig(BaseModel):
    base_url: str = ""
    model: str = ""
    provider: str = ""
    timeout_seconds: int = 60
    max_retries: int = 3
    role_description: str = ""
    output_tone: str = "concise, analytical, non-promotional"
    temperature: float = 0.7

    @model_validator(mode="after")
    def fill_provider(self) -> "LLMConfig":
        if not self.provider:
            self.provider = detect_provider(self.base_url)
        return self

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        return value.strip().lower()


def detect_provider(base_url: str) -> str:
    """Guess the LLM provider from its API base URL (OpenAI-compatible by default)."""
    if GEMINI_HOST in base_url:
        return "gemini"
    if ANTHROPIC_HOST in base_url:
        return "anthropic"
    return "openai"


class AppConfig(BaseModel):
    languages: list[str]
    keywords: KeywordConfig
    settings: ReportSettings
    llm: LLMConfig

    def validate_semantics(self) -> list[str]:
        """Return every cross-field problem found; an empty list means valid."""
        errors: list[str] = []

        if not self.languages:
            errors.append("languages list cannot be empty")

        if not self.keywords.include:
            errors.append("include keywords cannot be empty")
        if not self.keywords.categories:
            errors.append("categories cannot be empty")

        s = self.settings
        if s.window_days <= 0:
            errors.append("window_days must be greater than 0")
        if s.short_window_days <= 0:
            errors.append("short_window_days must be greater than 0")
        if s.short_window_days > s.window_days:
            errors.append("short_window_days must be less than or equal to window_days")
        if s.top_n <= 0:
            errors.append("top_n must be greater than 0")
        if not s.report_language.strip():
            errors.append("report_language cannot be empty")
        if not s.filter_domain.strip():
            errors.append("filter_domain cannot be empty")
        if s.new_repo_threshold_days < 0:
            errors.append("new_repo_threshold_days cannot be negative")
        if s.dark_horse_score_threshold < 0:
            errors.append("dark_horse_score_threshold cannot be negative")
        if s.cache_ttl_hours < 0:
            errors.append("cache_ttl_hours cannot be negative")

        llm = self.llm
        if not llm.base_url:
            errors.append("llm base_url cannot be empty")
        if not llm.model:
            errors.append("llm model cannot be empty")
        if llm.provider not in ("openai", "anthropic", "gemini"):
            errors.append(f"llm provider must be openai, anthropic or gemini (got {llm.provider!r})")
        if llm.timeout_seconds <= 0:
            errors.append("llm timeout_seconds must be greater than 0")
        if llm.max_retries < 0:
            errors.append("llm max_retries cannot be negative")
        if not llm.role_description:
            errors.append("llm role_description cannot be empty")
        if not llm.output_tone:
            errors.append("llm output_tone cannot be empty")
        if llm.temperature < 0 or llm.temperature > 2:
            errors.append("llm temperature must be between 0 and 2")

        return errors


def _load_json_file(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"failed to load {path.name}: file not found ({path})") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to load {path.name}: invalid JSON ({e})") from e
    except OSError as e:
        raise ConfigError(f"failed to load {path.name}: {e}") from e


def load_config(config_dir: str | Path) -> AppConfig:
    """
    Load languages.json, keywords.json, settings.json and llm.json

    Args:
        config_dir: Directory holding the four JSON files

    Returns:
        Parsed AppConfig with defaults applied

    Raises:
        ConfigError: If any file is missing, unparsable or fails schema validation
    """
    base = Path(config_dir)
    raw: dict[str, Any] = {}
    for section, filename in (
        ("languages", "languages.json"),
        ("keywords", "keywords.json"),
        ("settings", "settings.json"),
        ("llm", "llm.json"),
    ):
        raw[section] = _load_json_file(base / filename)

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {base}: {e}") from e

    logger.info(
        f"Loaded configuration from {base}: {len(config.languages)} languages, "
        f"{len(config.keywords.categories)} categories, top_n={config.settings.top_n}"
    )
    return config
