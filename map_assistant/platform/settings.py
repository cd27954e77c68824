"""Application settings and configuration.

This module provides Pydantic settings classes for the chat client,
loaded from environment variables with support for nested configuration.
"""

import logging
from pathlib import Path

import pydantic_settings
from pydantic import BaseModel, Field, field_validator


class RelaySettings(BaseModel):
    """Connection settings for the relay backend.

    Attributes:
        base_url: Base URL of the relay (e.g. http://localhost:3000)
        timeout_seconds: Per-request HTTP timeout
        api_key: Optional key sent as a bearer token
    """

    base_url: str
    timeout_seconds: float = Field(60.0)
    api_key: str | None = None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f'invalid relay url "{v}"')
        return v.rstrip("/")


class ChatSettings(BaseModel):
    poll_interval_seconds: float = Field(10.0, gt=0)
    settle_delay_seconds: float = Field(5.0, ge=0)
    max_poll_failures: int = Field(3, ge=1)
    state_path: Path = Field(Path.home() / ".map_assistant" / "state.json")


class LoggingSettings(BaseModel):
    log_level: str = Field("INFO")
    log_json: bool = Field(False, description="True=JSON lines, False=console")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    relay: RelaySettings
    chat: ChatSettings = ChatSettings()
    logging: LoggingSettings = LoggingSettings()
