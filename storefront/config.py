from __future__ import annotations
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "storefront"
    PRODUCTS_COLLECTION: str = "products"
    ORDERS_COLLECTION: str = "orders"
    SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Where shared deep links point (the storefront client, not this API)
    PUBLIC_BASE_URL: str = "http://localhost:5173"
    NOTICE_SECONDS: float = 3.0

    # Idle sessions are dropped after SESSION_TTL_SECONDS; at most SESSION_MAX kept
    SESSION_TTL_SECONDS: float = 1800
    SESSION_MAX: int = 10000

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]
    PORT: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
