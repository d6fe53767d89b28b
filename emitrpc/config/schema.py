"""Configuration schema using Pydantic.

Values come from ~/.emitrpc/config.json, overridden by EMITRPC_* environment
variables (nested keys use ``__``, e.g. EMITRPC_SERVER__TITLE).
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# One day, in milliseconds
DEFAULT_TIMEOUT_MS = 1000 * 60 * 60 * 24


class ServerConfig(BaseModel):
    """HTTP surface around the WebSocket route."""
    title: str = "emitrpc"
    health_path: str = "/health"


class RpcConfig(BaseSettings):
    """Root configuration for an emitrpc server."""
    model_config = SettingsConfigDict(env_prefix="EMITRPC_", env_nested_delimiter="__", extra="ignore")

    path: str = "/"  # Route accepting WebSocket upgrades
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)  # Per-connection lifetime ceiling (ms)
    host: str = "127.0.0.1"
    port: int = 8787
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip() or "/"
        return value if value.startswith("/") else f"/{value}"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000
