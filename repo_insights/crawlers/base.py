"""Base crawler class with common functionality"""

from abc import ABC, abstractmethod
from typing import List
import logging

from repo_insights.config.settings import Settings, settings as default_settings
from repo_insights.models.repository import RepoMetadata


class BaseCrawler(ABC):
    """
    Base crawler class

    Source-specific crawlers inherit from this class
    """

    def __init__(self, settings: Settings = default_settings):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings
        self.user_agent = settings.USER_AGENT
        self.delay = settings.CRAWL_RETRY_DELAY_SECONDS

    @abstractmethod
    async def crawl(self) -> List[RepoMetadata]:
        """
        Crawl the source and return raw repository records

        Returns:
            List of RepoMetadata objects
        """
        pass

    def log_start(self):
        """Log crawl start"""
        self.logger.info(f"Starting {self.__class__.__name__}")

    def log_end(self, count: int):
        """Log crawl end with count"""
        self.logger.info(f"Finished {self.__class__.__name__}: {count} repositories")

    def log_error(self, error: Exception):
        """Log error"""
        self.logger.error(f"Error in {self.__class__.__name__}: {str(error)}", exc_info=error)
