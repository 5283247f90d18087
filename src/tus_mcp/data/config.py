from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Transport = Literal["stdio", "streamable-http", "sse"]


class TusConfig(BaseSettings):
    """Configuration for the Santander open-data API and the MCP server.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    base_url: str = Field(
        default="http://datos.santander.es/api/rest/datasets", alias="TUS_API_URL"
    )
    items_per_page: int = Field(default=500, alias="TUS_ITEMS_PER_PAGE")
    cache_ttl_seconds: float = Field(default=30.0, alias="TUS_CACHE_TTL")
    http_timeout_seconds: float = Field(default=30.0, alias="TUS_HTTP_TIMEOUT")
    timezone: str = Field(default="Europe/Madrid", alias="TUS_TIMEZONE")

    # MCP transport
    transport: Transport = Field(default="streamable-http", alias="MCP_TRANSPORT")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")


@lru_cache
def get_config() -> TusConfig:
    """Get the configuration (cached singleton).

    Returns:
        TusConfig with values from .env file or environment variables.
    """
    return TusConfig()
