from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JSON_PREVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Restore the snapshot when accept_changes cannot commit the patch.
    ROLLBACK_ON_ACCEPT_FAILURE: bool = False

    # --- Debug traces ---
    TRACE_DOCUMENTS: bool = False
    TRACE_DOCUMENT_LIMIT: int = 2000

    # Schema issues joined into a single error message
    MAX_REPORTED_ISSUES: int = 5


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()
