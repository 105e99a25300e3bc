"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
import ssl
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lajiforms.exceptions import SettingsError
from lajiforms.typing.enums import Lang

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "lajiforms"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )
    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )

    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to SSL certificate.",
    )
    timeout: float = Field(
        default=30.0,
        validation_alias="TIMEOUT",
        description="Request timeout in seconds.",
    )
    max_connections: int = Field(
        default=20,
        validation_alias="MAX_CONNECTIONS",
        description="Maximum number of concurrent connections.",
    )

    api_base_url: str = Field(
        default="https://api.laji.fi/v0",
        validation_alias="API_BASE_URL",
        description="Base URL of the metadata and taxonomy API.",
    )
    api_access_token: str | None = Field(
        default=None,
        validation_alias="API_ACCESS_TOKEN",
        description="Access token for the metadata and taxonomy API.",
    )
    store_base_url: str = Field(
        default="https://laji-store.laji.fi",
        validation_alias="STORE_BASE_URL",
        description="Base URL of the form storage service.",
    )
    store_auth: str | None = Field(
        default=None,
        validation_alias="STORE_AUTH",
        description="Authorization header value for the form storage service.",
    )
    default_lang: str = Field(
        default="en",
        validation_alias="DEFAULT_LANG",
        description="Language of catalog labels when none is requested.",
    )
    taxon_page_size: int = Field(
        default=1000,
        validation_alias="TAXON_PAGE_SIZE",
        description="Page size of taxon set and species lookups.",
    )

    @field_validator("default_lang")
    @classmethod
    def _check_default_lang(cls, value: str) -> str:
        if not Lang.is_lang(value):
            message = f"DEFAULT_LANG must be one of fi, sv, en, got '{value}'"
            raise ValueError(message)
        return value


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path)
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def build_httpx_client_kwargs(settings: Settings, *, base_url: str | None = None) -> dict[str, Any]:
    """Build kwargs used for `httpx.AsyncClient`.

    Args:
        settings (Settings): Runtime settings.
        base_url (str | None): Optional base URL of the client.

    Returns:
        dict[str, Any]: Arguments for the client constructor.
    """
    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
    }
    proxy_url = settings.https_proxy or settings.http_proxy
    if proxy_url:
        kwargs["proxy"] = proxy_url
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        logger.warning("Settings could not be loaded")
        raise SettingsError(exc=exc) from exc
