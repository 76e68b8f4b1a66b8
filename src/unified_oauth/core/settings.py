from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load .env if present
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


class OAuthClientCredentials(BaseModel):
    """Client id/secret pair registered with a vendor. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="OAuth client identifier")
    client_secret: str = Field(..., repr=False, description="OAuth client secret")


class OAuthSettings(BaseModel):
    """OAuth client credentials for every supported vendor."""

    model_config = ConfigDict(frozen=True)

    notion: OAuthClientCredentials
    slack: OAuthClientCredentials
    google_drive: OAuthClientCredentials
    confluence: OAuthClientCredentials


class SecuritySettings(BaseModel):
    """Security-related settings for sealing stored token material."""

    ENCRYPTION_KEY: str = Field(..., repr=False, description="Symmetric key used for encrypting stored tokens.")


class HTTPSettings(BaseModel):
    """Outbound request policy owned by the request executor."""

    TIMEOUT_SECONDS: float = Field(default=30.0, description="Per-request timeout for vendor token endpoints")
    RETRY_ATTEMPTS: int = Field(default=3, ge=1, description="Attempts for requests the vendor cannot have consumed")
    RETRY_BASE_SLEEP: float = Field(default=0.5, ge=0, description="Base backoff in seconds, doubled per attempt")


class LifecycleSettings(BaseModel):
    """Connection lifecycle tuning."""

    ACCESS_TOKEN_REFRESH_BUFFER_SECONDS: int = Field(
        default=600,
        ge=0,
        description="Refresh access tokens expiring within this many seconds",
    )


class APISettings(BaseModel):
    """FastAPI application settings."""

    API_TITLE: str = Field(default="Unified OAuth Backend", description="API title for OpenAPI")
    API_DESCRIPTION: str = Field(
        default="Internal API establishing, refreshing and revoking OAuth connections to third-party services.",
        description="API description",
    )
    API_VERSION: str = Field(default="0.1.0", description="API version")
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")
    ENV: str = Field(default="development", description="Environment name")


# Environment variable names per vendor, keyed by OAuthSettings field.
_OAUTH_ENV_VARS: Dict[str, tuple[str, str]] = {
    "notion": ("OAUTH_NOTION_CLIENT_ID", "OAUTH_NOTION_CLIENT_SECRET"),
    "slack": ("OAUTH_SLACK_CLIENT_ID", "OAUTH_SLACK_CLIENT_SECRET"),
    "google_drive": ("OAUTH_GOOGLE_DRIVE_CLIENT_ID", "OAUTH_GOOGLE_DRIVE_CLIENT_SECRET"),
    "confluence": ("OAUTH_CONFLUENCE_CLIENT_ID", "OAUTH_CONFLUENCE_CLIENT_SECRET"),
}


class Settings(BaseModel):
    """Application configuration bundle."""

    security: SecuritySettings
    oauth: OAuthSettings
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)
    api: APISettings = Field(default_factory=APISettings)

    @staticmethod
    def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
        value = os.getenv(name, default)
        if value is not None and not value.strip():
            return default
        return value

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Every vendor client id/secret and the encryption key are required; all
        missing names are reported together in one ConfigurationError.
        """
        missing: List[str] = []

        def required(name: str) -> str:
            value = cls._get_env(name)
            if value is None:
                missing.append(name)
                return ""
            return value

        oauth_values = {
            field: {"client_id": required(id_var), "client_secret": required(secret_var)}
            for field, (id_var, secret_var) in _OAUTH_ENV_VARS.items()
        }
        encryption_key = required("ENCRYPTION_KEY")
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        try:
            http = HTTPSettings(
                TIMEOUT_SECONDS=float(cls._get_env("HTTP_TIMEOUT_SECONDS", "30")),
                RETRY_ATTEMPTS=int(cls._get_env("HTTP_RETRY_ATTEMPTS", "3")),
                RETRY_BASE_SLEEP=float(cls._get_env("HTTP_RETRY_BASE_SLEEP", "0.5")),
            )
            lifecycle = LifecycleSettings(
                ACCESS_TOKEN_REFRESH_BUFFER_SECONDS=int(cls._get_env("ACCESS_TOKEN_REFRESH_BUFFER_SECONDS", "600")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric configuration: {e}") from e

        api = APISettings(
            API_TITLE=cls._get_env("API_TITLE", "Unified OAuth Backend"),
            API_VERSION=cls._get_env("API_VERSION", "0.1.0"),
            CORS_ALLOW_ORIGINS=(cls._get_env("CORS_ALLOW_ORIGINS", "*") or "*").split(","),
            ENV=cls._get_env("ENV", "development"),
        )
        return cls(
            security=SecuritySettings(ENCRYPTION_KEY=encryption_key),
            oauth=OAuthSettings(**{k: OAuthClientCredentials(**v) for k, v in oauth_values.items()}),
            http=http,
            lifecycle=lifecycle,
            api=api,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to application settings loaded from environment."""
    return Settings.from_env()
