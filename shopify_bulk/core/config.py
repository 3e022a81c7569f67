"""
Centralized configuration.

Defaults for the transport and the bulk operation lifecycle are loaded once
from environment variables (or a .env file) with Pydantic Settings, then passed
explicitly into every client and service.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Package configuration using Pydantic Settings.

    Every value can be overridden through an environment variable of the same
    name. Per-call arguments take precedence over these values.
    """

    # === BASIC CONFIGURATION ===
    APP_NAME: str = "shopify-bulk-operations"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # === SHOPIFY CONFIGURATION ===
    SHOPIFY_API_VERSION: str = Field(default="2025-04")
    SHOPIFY_MAX_RETRIES: int = Field(default=3, ge=0)

    # === RETRY CONFIGURATION ===
    RETRY_INITIAL_DELAY_SECONDS: float = Field(default=0.5, gt=0)
    RETRY_BACKOFF_FACTOR: float = Field(default=2.0, ge=1)
    RETRY_MAX_DELAY_SECONDS: float = Field(default=30.0, gt=0)

    # === BULK OPERATION CONFIGURATION ===
    BULK_POLL_INTERVAL_SECONDS: float = Field(default=5.0, gt=0)
    BULK_TIMEOUT_SECONDS: float = Field(default=300.0, gt=0)
    # A freshly created operation is sometimes not visible to the status query yet
    BULK_NOT_FOUND_RETRIES: int = Field(default=3, ge=0)
    BULK_NOT_FOUND_DELAY_SECONDS: float = Field(default=1.0, ge=0)

    # === HTTP CONFIGURATION ===
    HTTP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    HTTP_CONNECT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    DOWNLOAD_CHUNK_SIZE: int = Field(default=64 * 1024, gt=0)

    # === LOGGING CONFIGURATION ===
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: Optional[str] = Field(default=None)
    LOG_MAX_SIZE_MB: int = Field(default=10)
    LOG_BACKUP_COUNT: int = Field(default=5)
    LOG_FORMAT: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
        "frozen": True,
    }

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate the log level name."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate the environment name."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def graphql_url(self, shop: str) -> str:
        """
        Build the Admin GraphQL endpoint for a shop.

        Args:
            shop: Normalized shop domain (e.g. 'my-store.myshopify.com')

        Returns:
            str: Versioned GraphQL endpoint URL
        """
        return f"https://{shop}/admin/api/{self.SHOPIFY_API_VERSION}/graphql.json"

    def get_shopify_headers(self, access_token: str) -> dict:
        """
        Build the headers for Admin API requests.

        Returns:
            dict: Authentication headers
        """
        return {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "User-Agent": f"{self.APP_NAME}/{self.APP_VERSION}",
        }


@lru_cache()
def get_settings() -> Settings:
    """
    Return the cached settings instance.

    Returns:
        Settings: Configuration loaded from the environment
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload configuration from the environment (useful for testing).

    Returns:
        Settings: New configuration instance
    """
    get_settings.cache_clear()
    return get_settings()
