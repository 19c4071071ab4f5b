"""
Centralised settings loader (pydantic-settings).

Every value can be overridden through the environment or a local `.env`.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ───────────────────────────────────────────────
    env_name: str = Field("local", alias="ENV_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    database_url: str = Field("sqlite+aiosqlite:///./nutrio.db", alias="DATABASE_URL")
    cloud_sql_instance: str | None = Field(None, alias="CLOUD_SQL_CONNECTION_NAME")
    db_user: str | None = Field(None, alias="DB_USER")
    db_pass: str | None = Field(None, alias="DB_PASS")
    db_name: str | None = Field(None, alias="DB_NAME")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    # ─── auth ───────────────────────────────────────────────────────
    jwt_secret: str = Field("change-me-outside-local-dev-0123456789", alias="JWT_SECRET")
    token_ttl_minutes: int = Field(60 * 24 * 7, alias="TOKEN_TTL_MINUTES")

    # ─── Gemini ─────────────────────────────────────────────────────
    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    gemini_model: str = Field("models/gemini-2.0-flash", alias="GEMINI_MODEL")
    max_image_bytes: int = Field(4_000_000, alias="MAX_IMAGE_BYTES")

    # ─── product defaults ───────────────────────────────────────────
    water_goal_ml: int = Field(2000, alias="WATER_GOAL_ML")

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    @property
    def cors_origin_list(self) -> list[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
