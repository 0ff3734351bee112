from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Kolkata"
    STORE_CURRENCY: str = "INR"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 40
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Redis (cart + wishlist working set)
    REDIS_URL: str = "redis://localhost:6379/0"
    GUEST_CART_TTL_SECONDS: int = 30 * 24 * 60 * 60

    # Rate limiting (slowapi); use the Redis URL to share limits across instances
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Auth
    # Placeholder keeps local/test runs from failing; real deployments override via env.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Collaborating services
    CATALOG_SERVICE_URL: str = "http://catalog-service:8010"
    COMMUNICATIONS_SERVICE_URL: str = "http://communications-service:8004"

    # PhonePe gateway
    PHONEPE_ENV: Literal["sandbox", "production"] = "sandbox"
    PHONEPE_BASE_URL_SANDBOX: str = "https://api-preprod.phonepe.com/apis/pg-sandbox"
    PHONEPE_BASE_URL_PROD: str = "https://api.phonepe.com/apis/hermes"
    PHONEPE_MERCHANT_ID: str = ""
    PHONEPE_SALT_KEY: str = ""
    PHONEPE_SALT_INDEX: str = "1"
    PHONEPE_REDIRECT_URL: str = "http://localhost:5173/payment/return"
    PHONEPE_CALLBACK_URL: str = "http://localhost:8000/store/payments/callback"
    PHONEPE_TIMEOUT_SECONDS: float = 12.0

    # Orders
    RETURN_WINDOW_DAYS: int = 7

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @property
    def phonepe_base_url(self) -> str:
        if self.PHONEPE_ENV == "production":
            return self.PHONEPE_BASE_URL_PROD
        return self.PHONEPE_BASE_URL_SANDBOX


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
