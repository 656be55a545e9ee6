"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SunSano"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 2

    # Database (SQLite by default, any async SQLAlchemy URL works)
    database_url: str = "sqlite+aiosqlite:///./data/sunsano.db"
    db_echo: bool = False

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Frontend (used for checkout success / cancel redirects)
    frontend_url: str = "http://localhost:5000"

    @computed_field
    @property
    def checkout_success_url(self) -> str:
        return f"{self.frontend_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"

    @computed_field
    @property
    def checkout_cancel_url(self) -> str:
        return f"{self.frontend_url}/payment-cancelled"

    # Payment gateways
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    payment_webhook_secret: str = Field(default="change-me-webhook-secret")

    # Admin access for management endpoints
    admin_api_key: Optional[str] = None

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "noreply@sunsano.de"
    email_from_name: str = "SunSano"

    # Rate limiting (per client IP on the API prefix)
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60

    # CORS
    cors_origins: List[str] = ["http://localhost:5000"]

    # Shop
    currency: str = "eur"
    delivery_fee: Decimal = Decimal("2.50")
    shipping_countries: List[str] = ["DE", "AT", "CH"]

    # Checkout orchestration timings (seconds)
    checkout_poll_interval: float = 30.0
    checkout_max_polls: int = 20
    checkout_webhook_delay_min: float = 5.0
    checkout_webhook_delay_max: float = 15.0
    checkout_webhook_retry_delay: float = 10.0
    checkout_webhook_max_retries: int = 3
    payment_log_capacity: int = Field(default=100, ge=1)

    # Data retention for cleanup jobs (days)
    order_retention_days: int = 365
    payment_retention_days: int = 30
    rejected_review_retention_days: int = 30


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
