"""
Settings for the external catalog lookup client.
Provider endpoints, timeouts and retry policy come from environment variables.
"""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LookupConfig(BaseSettings):
    """
    Configuration for outbound book-metadata providers.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Primary ISBN provider
    google_books_url: str = Field(default="https://www.googleapis.com/books/v1/volumes")
    google_books_api_key: Optional[str] = Field(default=None)

    # Secondary provider: ISBN-keyed endpoint and free-text search endpoint
    open_library_books_url: str = Field(default="https://openlibrary.org/api/books")
    open_library_search_url: str = Field(default="https://openlibrary.org/search.json")
    open_library_covers_url: str = Field(default="https://covers.openlibrary.org/b/id")

    # Request policy
    request_timeout: float = Field(default=45.0)
    retry_attempts: int = Field(default=2)
    retry_delay: float = Field(default=0.5)
    title_search_limit: int = Field(default=10)

    @validator('request_timeout')
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError('request_timeout must be between 1 and 300 seconds')
        return v

    @validator('retry_attempts')
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry_attempts must be between 0 and 10')
        return v

    @validator('retry_delay')
    def validate_retry_delay(cls, v):
        if v < 0:
            raise ValueError('retry_delay cannot be negative')
        return v

    @validator('title_search_limit')
    def validate_title_search_limit(cls, v):
        if v < 1 or v > 40:
            raise ValueError('title_search_limit must be between 1 and 40')
        return v

    model_config = {
        "env_prefix": "LOOKUP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    def get_user_agent(self) -> str:
        """Get user agent string for provider requests."""
        return "ReadingTracker/1.0"

    def get_headers(self) -> dict:
        """Get default headers for provider requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
