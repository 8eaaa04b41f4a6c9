"""
Application Settings for Memorizu

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Firestore credentials are resolved in this order:
    - FIREBASE_SERVICE_ACCOUNT_KEY: service account JSON as a string
    - FIREBASE_SERVICE_ACCOUNT_PATH: path to a service account file
    - application default credentials (Cloud Run, Firebase hosting)
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Firebase / Firestore Configuration
    firebase_project_id: Optional[str] = None
    firebase_service_account_key: Optional[str] = None
    firebase_service_account_path: Optional[str] = None

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_publication_webhook_secret: Optional[str] = None
    stripe_api_version: Optional[str] = None

    # Subscription plan prices (price ID -> plan name table)
    stripe_pro_price_id: Optional[str] = None
    stripe_business_price_id: Optional[str] = None

    # Publication payments
    reconciliation_max_charges: int = 100

    # Admin / debug routes
    admin_api_key: Optional[str] = None

    # When enabled, user routes require a Firebase ID token for the same user
    enforce_user_auth: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_stripe_keys(self) -> "Settings":
        """Production deployments cannot run without Stripe credentials."""
        if self.is_production:
            if not self.stripe_secret_key:
                raise ValueError("STRIPE_SECRET_KEY required when ENVIRONMENT=production")
            if not self.stripe_webhook_secret:
                raise ValueError("STRIPE_WEBHOOK_SECRET required when ENVIRONMENT=production")

        if self.reconciliation_max_charges < 1:
            raise ValueError("RECONCILIATION_MAX_CHARGES must be at least 1")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def firebase_configured(self) -> bool:
        """Whether any Firestore credential source is configured."""
        return bool(
            self.firebase_project_id
            or self.firebase_service_account_key
            or self.firebase_service_account_path
        )

    @property
    def publication_webhook_secret(self) -> Optional[str]:
        """Secret for the publication webhook endpoint (falls back to the main one)."""
        return self.stripe_publication_webhook_secret or self.stripe_webhook_secret

    @property
    def plan_price_ids(self) -> dict[str, str]:
        """Static price ID -> plan name table for configured plans."""
        table = {}
        if self.stripe_pro_price_id:
            table[self.stripe_pro_price_id] = "pro"
        if self.stripe_business_price_id:
            table[self.stripe_business_price_id] = "business"
        return table


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
