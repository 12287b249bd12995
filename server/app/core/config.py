from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    api_title: str = "Kalakriti Catalog API"
    api_version: str = "0.1.0"

    catalog_db_backend: str = Field("sqlite", alias="CATALOG_DB_BACKEND")
    catalog_sqlite_url: str = Field(
        default="sqlite:///./data/sqlite/catalog.db",
        validation_alias=AliasChoices("CATALOG_SQLITE_URL", "SQLITE_URL"),
    )
    catalog_postgres_url: str | None = Field(
        default=None,
        alias="CATALOG_POSTGRES_URL",
    )
    # off: hasMore means "the page came back full"; on: fetch one extra row to know for sure
    search_probe_has_more: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    frontend_origin: str | None = Field(default=None, alias="FRONTEND_ORIGIN")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def resolved_cors_origins(self) -> List[str]:
        """
        Returns the configured CORS origins plus the optional storefront origin, deduped.
        """
        normalized: list[str] = []

        def _append(origin: str | None) -> None:
            if not origin:
                return
            cleaned = origin.rstrip("/")
            if cleaned not in normalized:
                normalized.append(cleaned)

        for origin in self.cors_origins:
            _append(origin)

        _append(self.frontend_origin)
        return normalized


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
