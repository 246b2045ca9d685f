"""
API configuration settings.
"""

from typing import List

from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Reading Tracker API"
    api_version: str = "1.0.0"
    api_description: str = "Catalog books, record reading progress and keep notes"
    api_prefix: str = ""

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    # Database Settings
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "reading_tracker"

    # Security Settings
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # CORS Settings
    cors_origins: List[str] = ["http://localhost:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: str = ""

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }
