"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable we rely on.
That means anyone inspecting the project can quickly answer the questions:

*What:* Which settings exist and what do they control?
*When:* They are read once, the first time ``get_settings`` is called.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* ``pydantic-settings`` reads the environment (and ``.env`` files) with a
sensible default for everything except the backend credentials.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "CharitiesNextToMe"
    # Sent as ``x-application-name`` on every backend request.
    APP_CLIENT_NAME: str = "charities-next-to-me"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    TEMPLATES_DIR: Path | None = None
    TZ: str = "America/Toronto"
    LOG_LEVEL: str = "INFO"

    # ---- Managed backend (auth + data + storage)
    SUPABASE_URL: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    SUPABASE_ANON_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    )
    HTTP_TIMEOUT: float = 10.0

    # ---- Browser session persistence
    # Cookie/session secret. MUST be long & random in production.
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "cntm_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 30
    SESSION_HTTPS_ONLY: bool = False
    AUTH_STORAGE_KEY: str = "charities-next-to-me-auth"

    # ---- Auth flow
    SITE_URL: str = "http://localhost:8000"
    # Comma separated list of external providers enabled on the backend.
    OAUTH_PROVIDERS: str = "google"
    MIN_PASSWORD_LENGTH: int = 6
    PUBLIC_LANDING_ROUTE: str = "/"
    AUTH_LANDING_ROUTE: str = "/feed"
    SIGN_IN_ROUTE: str = "/auth"

    # ---- Profile pictures
    AVATAR_BUCKET: str = "avatars"
    AVATAR_MAX_BYTES: int = 5 * 1024 * 1024

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR or self.BASE_DIR / "charities" / "templates"

    @property
    def oauth_callback_url(self) -> str:
        return f"{self.SITE_URL}/auth/callback"

    @property
    def backend_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)

    @property
    def oauth_providers(self) -> list[str]:
        return [item.strip().lower() for item in self.OAUTH_PROVIDERS.split(",") if item.strip()]

    @field_validator("SUPABASE_URL", "SITE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


# Importing ``settings`` anywhere instantly gives you access to the configured
# values without rebuilding the object each time.
settings = get_settings()
