"""
Payment Relay Configuration Module

Loads environment variables for the EveryPay relay backend.
"""
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode


class CorsMode(str, Enum):
    """How the CORS middleware treats origins outside the allow-list."""

    STRICT = "strict"
    PERMISSIVE = "permissive"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Notes:
    - Credentials for the processor API never leave this object; handlers
      receive it through app state instead of reading the environment
    - frontend_app_url falls back to backend_app_url, where /payment-result
      is served by this service itself
    - cors_mode defaults to permissive only in the development environment
    """

    # EveryPay API
    everypay_api_url: str = "https://igw-demo.every-pay.com/api"
    everypay_username: str = ""
    everypay_secret: str = ""
    everypay_account: str = "EUR3D1"

    # Webhook verification
    everypay_shared_key: str = ""
    webhook_signature_scheme: Literal["concat", "hmac"] = "concat"

    # Public URLs
    backend_app_url: str = "http://localhost:3000"
    frontend_app_url: Optional[str] = None

    # CORS
    allowed_origins: Annotated[List[str], NoDecode] = []
    environment: str = "development"
    cors_mode: Optional[CorsMode] = None

    # Upstream transport
    upstream_timeout_seconds: float = 10.0
    processor_mode: Literal["live", "mock"] = "live"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        """Accept ALLOWED_ORIGINS as a comma separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("everypay_api_url", "backend_app_url", "frontend_app_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v

    @model_validator(mode="after")
    def apply_defaults(self) -> "Settings":
        if not self.frontend_app_url:
            self.frontend_app_url = self.backend_app_url
        if self.cors_mode is None:
            self.cors_mode = (
                CorsMode.PERMISSIVE if self.environment == "development" else CorsMode.STRICT
            )
        return self

    @property
    def callback_url(self) -> str:
        """URL the processor redirects the customer back to."""
        return f"{self.backend_app_url}/payment-callback"

    @property
    def result_url(self) -> str:
        """Frontend page that renders the terminal payment status."""
        return f"{self.frontend_app_url}/payment-result"


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
