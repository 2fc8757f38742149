"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Repo Insights"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "info"

    # Filesystem layout
    CONFIG_DIR: str = "config"
    DATA_DIR: str = "data"
    REPORTS_DIR: str = "reports"
    HISTORY_FILE: str = "data/history.json"

    # LLM API for commentary (template fallback when unset)
    LLM_API_KEY: Optional[str] = None

    # GitHub API (enables created_at/topics enrichment)
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"

    # Crawling settings
    TRENDING_BASE_URL: str = "https://github.com/trending"
    CRAWL_MAX_RETRIES: int = 3
    CRAWL_RETRY_DELAY_SECONDS: float = 2.0
    HTTP_TIMEOUT_SECONDS: float = 30.0
    MAX_CONCURRENT_REQUESTS: int = 5
    USER_AGENT: str = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
