"""Configuration for the chat relay service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment configuration."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_version: str = Field("1.0.0", description="Semantic version returned by health endpoints.")
    host: str = Field("0.0.0.0", description="Interface the listener binds to.")
    port: int = Field(
        8080,
        ge=1,
        le=65535,
        alias="PORT",
        description="TCP port shared by the WebSocket relay and the HTTP endpoints.",
    )
    history_limit: int = Field(
        1000,
        ge=0,
        description="Max number of chat messages kept in memory and replayed to new sessions.",
    )
    max_sender_length: int = Field(50, ge=1, description="Sender names are trimmed and cut to this length.")
    max_message_length: int = Field(
        2000,
        ge=1,
        description="Messages with a longer body are rejected.",
    )
    outbound_buffer: int = Field(
        256,
        ge=1,
        description="Live frames a session may lag behind before it is evicted as a slow consumer.",
    )
    shutdown_grace_seconds: float = Field(
        1.0,
        ge=0.0,
        le=30.0,
        description="How long close frames may flush on shutdown before sessions are dropped.",
    )
    welcome_text: str = Field("Welcome to WS server", description="System notice sent on connect.")
    log_level: str = Field("INFO", alias="LOG_LEVEL", description="Root log level when no logging.json is found.")

    @property
    def session_queue_size(self) -> int:
        """Outbound queue bound: welcome notice, full history replay and live headroom."""

        return self.history_limit + self.outbound_buffer + 1


class HealthPayload(BaseModel):
    """Health-check response payload."""

    status: Literal["ok"]
    api_version: str


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance.

    Returns:
        Settings: Loaded environment settings.
    """

    return Settings()
