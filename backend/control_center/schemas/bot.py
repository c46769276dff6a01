from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from control_center.models.bot import BotStatus

DISCORD_ID_PATTERN = r"^\d{5,25}$"


class ThreadSettings(BaseModel):
    enabled: bool = True
    allowed_threads: list[str] = Field(default_factory=list)


class ChannelSettings(BaseModel):
    id: str = Field(..., pattern=DISCORD_ID_PATTERN)
    name: str | None = None
    enabled: bool = True
    thread_settings: ThreadSettings = Field(default_factory=ThreadSettings)


class ServerSettings(BaseModel):
    id: str = Field(..., pattern=DISCORD_ID_PATTERN)
    name: str | None = None
    enabled: bool = True
    channels: list[ChannelSettings] = Field(default_factory=list)


class BotSettings(BaseModel):
    """Runtime settings. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    prefix: str = Field("!", min_length=1, max_length=5)
    auto_restart: bool = True
    log_level: str = "info"


class BotCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    client_id: str = Field(..., pattern=DISCORD_ID_PATTERN)
    token: str = Field(..., min_length=1, description="Plaintext bot token, encrypted before storage")
    avatar_url: str | None = Field(None, max_length=512)
    settings: dict[str, Any] | None = None
    servers: list[ServerSettings] = Field(default_factory=list)
    user_id: str | None = None

    @field_validator("settings")
    @classmethod
    def validate_settings(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        if v is None:
            return None
        # Partial settings are allowed; defaults fill the rest
        return BotSettings(**v).model_dump()


class BotUpdate(BaseModel):
    """
    Partial update. A token may be plaintext or an envelope previously
    issued by the server; the latter is stored unchanged.
    """

    name: str | None = Field(None, min_length=1, max_length=100)
    client_id: str | None = Field(None, pattern=DISCORD_ID_PATTERN)
    token: str | None = Field(None, min_length=1)
    avatar_url: str | None = Field(None, max_length=512)
    settings: dict[str, Any] | None = None
    servers: list[ServerSettings] | None = None
    status: BotStatus | None = None


class BotResponse(BaseModel):
    """A bot as returned to API callers. Never carries the token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = None
    name: str
    client_id: str
    avatar_url: str | None = None
    status: BotStatus
    settings: dict[str, Any]
    servers: list[dict[str, Any]]
    last_active: datetime | None = None
    created_at: datetime
    updated_at: datetime


class BotStatusUpdate(BaseModel):
    status: BotStatus


class BotStatusResponse(BaseModel):
    id: str
    status: BotStatus
    last_active: datetime | None = None
