from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Jakarta"
    STORE_NAME: str = "5SCENT"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder secret keeps local/test runs working. Real deployments
    # must override via env.
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"
    ADMIN_ROLES: list[str] = ["admin", "service_role"]

    # Background jobs
    REDIS_URL: str = "redis://localhost:6379/0"
    EXPIRY_SWEEP_BATCH_SIZE: int = 200

    # Midtrans
    MIDTRANS_SERVER_KEY: str = ""
    MIDTRANS_IS_PRODUCTION: bool = False
    QRIS_EXPIRY_MINUTES: int = 5
    QRIS_ACQUIRER: str = "gopay"

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
    def midtrans_base_url(self) -> str:
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://app.midtrans.com"
        return "https://api.sandbox.midtrans.com"


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
