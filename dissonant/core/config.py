"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import RedisDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dissonant.schemas.address import Address


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Services receive an instance at construction time; nothing below the
    dependency layer reads the environment directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # API
    project_name: str = "Dissonant API"
    version: str = "0.1.0"

    # Firestore
    gcp_project_id: str | None = None

    # Redis (Celery broker/backend)
    redis_url: RedisDsn = RedisDsn("redis://localhost:6379/0")

    # Courier (Shippo)
    courier_api_key: str = ""
    courier_api_url: str = "https://api.goshippo.com"
    courier_timeout: float = 30.0
    default_carrier: str = "usps"
    shippo_webhook_token: str = ""

    # Label creation endpoint (wraps the courier purchase flow)
    label_service_url: str = ""
    label_max_attempts: int = 3
    label_retry_base_delay: float = 2.0

    # Email (SendGrid)
    email_api_key: str = ""
    email_from_address: str = "noreply@dissonant.com"
    email_from_name: str = "Dissonant Music"

    # Payments (carried for the payment collaborators only)
    stripe_secret_key: str = ""
    paypal_client_id: str = ""
    paypal_client_secret: str = ""

    # Warehouse return address
    warehouse_name: str = "Dissonant Music"
    warehouse_street1: str = ""
    warehouse_city: str = ""
    warehouse_state: str = ""
    warehouse_zip: str = ""
    warehouse_country: str = "US"

    # Scheduled jobs
    stale_delivered_days: int = 30

    # Error reporting
    sentry_dsn: str = ""

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def payment_api_keys(self) -> dict[str, str]:
        """Payment provider credentials keyed by provider field name."""
        return {
            "stripe_secret_key": self.stripe_secret_key,
            "paypal_client_id": self.paypal_client_id,
            "paypal_client_secret": self.paypal_client_secret,
        }

    @computed_field  # type: ignore[prop-decorator]
    @property
    def warehouse_address(self) -> Address:
        """Return address used as the sender of outbound and return labels."""
        return Address(
            name=self.warehouse_name,
            street1=self.warehouse_street1,
            city=self.warehouse_city,
            state=self.warehouse_state,
            zip=self.warehouse_zip,
            country=self.warehouse_country,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
