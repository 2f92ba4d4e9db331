"""Runtime configuration for the CRM service."""

from __future__ import annotations

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["CRMSettings", "DEFAULT_SECRET_KEY"]

DEFAULT_SECRET_KEY = "crm-dev-secret-key-change-me-in-production"


class CRMSettings(BaseSettings):
    """Settings read from ``CRM_*`` environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CRM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str = Field(
        default="sqlite+pysqlite:///./crm.db",
        validation_alias=AliasChoices("CRM_DATABASE_URL", "DATABASE_URL", "database_url"),
    )
    db_echo: bool = False

    # Bearer tokens
    secret_key: str = DEFAULT_SECRET_KEY
    token_algorithm: str = "HS256"
    token_ttl_minutes: int = Field(default=60 * 24, ge=1)
    # Accept the unverified X-User-ID header as caller identity (prototype mode)
    trust_user_header: bool = True

    # HTTP server
    host: str = "127.0.0.1"
    port: int = Field(
        default=2022,
        validation_alias=AliasChoices("CRM_PORT", "SERVER_PORT", "port"),
    )
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
