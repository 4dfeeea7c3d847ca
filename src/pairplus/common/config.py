"""PairPlus configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "service_token": "insecure-service-token-change-me",
}

APPLE_VERIFY_PRODUCTION = "https://buy.itunes.apple.com/verifyReceipt"
APPLE_VERIFY_SANDBOX = "https://sandbox.itunes.apple.com/verifyReceipt"
ANDROID_PUBLISHER_URL = "https://androidpublisher.googleapis.com/androidpublisher/v3"


class PairPlusSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PAIRPLUS_", populate_by_name=True)

    environment: str = "development"
    log_level: str = "INFO"

    # API
    api_title: str = "PairPlus"
    api_version: str = "0.1.0"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_allow_origin: str = "*"

    # Internal trigger route (document-store change events)
    service_token: str = "insecure-service-token-change-me"

    # Document store: "sql" or "firestore"
    store_backend: str = "sql"
    db_url: str = "sqlite+aiosqlite:///./data/pairplus.db"
    users_collection: str = "users"
    pairs_collection: str = "pairs"

    # Firebase (identity tokens, Firestore backend)
    firebase_project_id: str = ""
    firebase_credentials_path: str = ""

    # App Store. The un-prefixed names are accepted for parity with
    # deployments that export the bare variable.
    apple_shared_secret: str = Field(
        default="",
        validation_alias=AliasChoices(
            "apple_shared_secret", "PAIRPLUS_APPLE_SHARED_SECRET", "APPLE_SHARED_SECRET",
        ),
    )
    apple_production_url: str = APPLE_VERIFY_PRODUCTION
    apple_sandbox_url: str = APPLE_VERIFY_SANDBOX

    # Google Play
    android_package_name: str = Field(
        default="",
        validation_alias=AliasChoices(
            "android_package_name", "PAIRPLUS_ANDROID_PACKAGE_NAME", "ANDROID_PACKAGE_NAME",
        ),
    )
    google_service_account_json: str = Field(
        default="",
        validation_alias=AliasChoices(
            "google_service_account_json",
            "PAIRPLUS_GOOGLE_SERVICE_ACCOUNT_JSON",
            "GOOGLE_SERVICE_ACCOUNT_JSON",
        ),
    )
    android_publisher_url: str = ANDROID_PUBLISHER_URL

    verification_timeout: float = 30.0  # seconds

    @property
    def apple_configured(self) -> bool:
        return bool(self.apple_shared_secret)

    @property
    def android_configured(self) -> bool:
        return bool(self.android_package_name and self.google_service_account_json)

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.store_backend not in ("sql", "firestore"):
            raise RuntimeError(
                f"PAIRPLUS_STORE_BACKEND must be 'sql' or 'firestore', got {self.store_backend!r}"
            )

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"PAIRPLUS_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default service token — set PAIRPLUS_SERVICE_TOKEN for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> PairPlusSettings:
    settings = PairPlusSettings()
    settings.validate_for_production()
    return settings
