"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="FreshTrio API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # JWT (HS256 only, see SessionIssuer)
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_issuer: str = Field(default="freshtrio-api", alias="JWT_ISSUER")
    # Session token lifetime in seconds (24 hours)
    jwt_expiration_seconds: int = Field(default=86400, alias="JWT_EXPIRATION")
    # How long after expiry a token may still be exchanged on /auth/refresh
    refresh_grace_seconds: int = Field(default=86400, alias="REFRESH_GRACE_SECONDS")

    # Google Sign-In
    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")

    # Firebase
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Path to Firebase service account JSON file",
    )

    firebase_config_json: str | None = Field(
        default=None,
        alias="FIREBASE_CONFIG_JSON",
        description="Raw JSON string of the Firebase service account",
    )

    # CORS
    cors_origins_str: str = Field(
        default="*",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    # Error responses: "legacy" collapses application errors into a generic 500
    error_response_mode: Literal["detailed", "legacy"] = Field(
        default="detailed", alias="ERROR_RESPONSE_MODE"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
