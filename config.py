"""
Configuration management for the application.
"""

import os
import logging
from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", "sqlite:///./countries.db")
    # Prefer the pure-Python pymysql driver over mysqlclient
    if url.startswith("mysql://"):
        url = url.replace("mysql://", "mysql+pymysql://", 1)
    return url


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = _database_url()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # External APIs
    COUNTRIES_API_URL: str = os.getenv(
        "COUNTRIES_API_URL",
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    )
    EXCHANGE_RATE_API_URL: str = os.getenv(
        "EXCHANGE_RATE_API_URL",
        "https://open.er-api.com/v6/latest/USD"
    )
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "20"))

    # Image cache
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    IMAGE_CACHE_DIR: str = os.getenv("IMAGE_CACHE_DIR", os.path.join(BASE_DIR, "cache"))
    IMAGE_FILE_NAME: str = "summary.png"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "")

    # App Metadata
    APP_NAME: str = "Country Currency API"
    APP_VERSION: str = "1.0.0"

    @property
    def IMAGE_PATH(self) -> str:
        return os.path.join(self.IMAGE_CACHE_DIR, self.IMAGE_FILE_NAME)


settings = Settings()


def validate_settings():
    """Warn about settings that should never reach production."""
    if "password" in settings.DATABASE_URL:
        logging.getLogger("country_api.config").warning(
            "Using default database password, update DATABASE_URL in .env"
        )
