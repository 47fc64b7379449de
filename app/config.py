"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


KNOWN_PROVIDERS: tuple[str, ...] = ("gemini", "mistral", "openrouter", "openai")
DEFAULT_PROVIDER_ORDER: tuple[str, ...] = KNOWN_PROVIDERS


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ReelPicks", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_access_token: str | None = Field(default=None, alias="TMDB_TOKEN")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    include_adult: bool = Field(default=False, alias="INCLUDE_ADULT_CONTENT")

    suggestion_providers: tuple[str, ...] = Field(
        default=DEFAULT_PROVIDER_ORDER, alias="SUGGESTION_PROVIDERS"
    )

    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_api_url: HttpUrl = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_URL",
    )

    mistral_api_key: str | None = Field(default=None, alias="MISTRAL_API_KEY")
    mistral_model: str = Field(default="mistral-large-latest", alias="MISTRAL_MODEL")
    mistral_api_url: HttpUrl = Field(
        default="https://api.mistral.ai/v1", alias="MISTRAL_API_URL"
    )

    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash-lite", alias="OPENROUTER_MODEL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_api_url: HttpUrl = Field(
        default="https://api.openai.com/v1", alias="OPENAI_API_URL"
    )

    recommendation_batch_size: int = Field(
        default=6, alias="RECOMMENDATION_BATCH_SIZE", ge=1, le=30
    )
    suggestion_timeout_seconds: float = Field(
        default=45.0, alias="SUGGESTION_TIMEOUT", gt=0, le=300
    )
    catalog_timeout_seconds: float = Field(
        default=10.0, alias="CATALOG_TIMEOUT", gt=0, le=120
    )
    revert_on_mutation_failure: bool = Field(
        default=False, alias="REVERT_ON_MUTATION_FAILURE"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelpicks.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("suggestion_providers", mode="before")
    @classmethod
    def _parse_providers(cls, value: object) -> tuple[str, ...]:
        """Normalise the provider fallback chain from environment values."""

        if value is None:
            return DEFAULT_PROVIDER_ORDER
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError(
                "SUGGESTION_PROVIDERS must be a string or iterable of strings"
            )

        cleaned: list[str] = []
        for entry in raw_values:
            name = entry.lower()
            if not name:
                continue
            if name not in KNOWN_PROVIDERS:
                raise ValueError(f"Unknown suggestion provider configured: {entry}")
            if name not in cleaned:
                cleaned.append(name)
        if not cleaned:
            return DEFAULT_PROVIDER_ORDER
        return tuple(cleaned)

    def provider_api_key(self, name: str) -> str | None:
        """Return the configured API key for a suggestion provider."""

        return getattr(self, f"{name}_api_key", None)

    @property
    def has_tmdb_credentials(self) -> bool:
        return bool(self.tmdb_api_key or self.tmdb_access_token)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
