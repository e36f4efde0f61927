"""Application configuration."""
from collections import Counter
from datetime import timedelta
from functools import lru_cache
import math

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings

ACCESS_SECRET_PLACEHOLDER = "access-token-secret-replace-me-in-prod"
REFRESH_SECRET_PLACEHOLDER = "refresh-token-secret-replace-me-in-prod"

WEAK_VALUES = {"changeme", "changeme-in-production", "secret", "password", "test"}


def estimate_entropy_bits(value: str) -> float:
    """Shannon entropy of the value's characters times its length."""
    if not value:
        return 0.0
    counts = Counter(value)
    entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
    return entropy_per_char * len(value)


def check_signing_secret(name: str, value: str) -> None:
    """Fail closed if a signing secret is weak or placeholder quality."""
    if not value:
        raise ValueError(f"{name} must be set.")

    if len(value) < 32:
        raise ValueError(f"{name} must be at least 32 characters.")

    lowered = value.lower()
    if lowered in WEAK_VALUES or "changeme" in lowered or "replace-me" in lowered:
        raise ValueError(f"{name} must not be a placeholder value.")

    if estimate_entropy_bits(value) < 100:
        raise ValueError(f"{name} entropy is too low; use a cryptographically random value.")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Community Portal"
    debug: bool = False
    app_env: str = Field(
        default="development",
        validation_alias=AliasChoices("app_env", "APP_ENV", "NODE_ENV"),
    )
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Database
    database_url: str = "sqlite:///./data/community_portal.db"

    # Tokens
    access_token_secret: str = ACCESS_SECRET_PLACEHOLDER
    refresh_token_secret: str = REFRESH_SECRET_PLACEHOLDER
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Cookies
    access_cookie_name: str = "accessToken"
    refresh_cookie_name: str = "refreshToken"
    cookie_path: str = "/"
    cookie_samesite: str = "lax"

    # Route protection
    login_path: str = "/login"
    api_prefix: str = "/api"
    protected_page_prefixes: list[str] = ["/dashboard"]
    public_api_paths: list[str] = [
        "/api/auth/login",
        "/api/auth/signup",
        "/api/auth/refresh",
        "/api/auth/google",
        "/api/auth/google/callback",
    ]

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/api/auth/google/callback"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @model_validator(mode="after")
    def validate_signing_secrets(self) -> "Settings":
        """Keep the two token classes on distinct keys; require real keys in production."""
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")

        if self.is_production:
            check_signing_secret("ACCESS_TOKEN_SECRET", self.access_token_secret)
            check_signing_secret("REFRESH_TOKEN_SECRET", self.refresh_token_secret)

        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() in ("production", "prod")

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_expire_days)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
