import enum
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

COMMAND_NAME_PATTERN = r"^[a-z0-9_-]{1,32}$"
VARIABLE_NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
# Only well-formed names count as placeholders; "{some thing!}" is literal text
PLACEHOLDER_RE = re.compile(r"{([a-zA-Z0-9_]+)}")


class ApiService(str, enum.Enum):
    NONE = "none"
    OPENAI = "openai"
    PERPLEXITY = "perplexity"
    STABILITY = "stability"
    ANTHROPIC = "anthropic"
    DEEPL = "deepl"
    SPOTIFY = "spotify"
    YOUTUBE = "youtube"


class CommandOptionType(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    USER = "user"
    CHANNEL = "channel"
    ROLE = "role"
    MENTIONABLE = "mentionable"


def extract_prompt_variables(content: str) -> list[str]:
    """Return the {placeholder} names in a prompt, in order, without duplicates."""
    seen: list[str] = []
    for name in PLACEHOLDER_RE.findall(content):
        if name not in seen:
            seen.append(name)
    return seen


def check_variable_names(names: list[str]) -> list[str]:
    """Reject malformed or repeated prompt variable names."""
    for name in names:
        if not VARIABLE_NAME_RE.match(name):
            raise ValueError(f"Invalid variable name: {name!r}")
    if len(set(names)) != len(names):
        raise ValueError("Variable names must be unique")
    return names


class OptionChoice(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    value: str | int


class CommandOption(BaseModel):
    name: str = Field(..., pattern=COMMAND_NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    type: CommandOptionType
    required: bool = False
    choices: list[OptionChoice] | None = None


class OutputDestination(BaseModel):
    type: Literal["global", "servers", "channels", "threads"] = "global"
    allowed_servers: list[str] | None = None
    allowed_channels: list[str] | None = None
    allowed_threads: list[str] | None = None

    @model_validator(mode="after")
    def check_targets(self) -> "OutputDestination":
        required = {
            "servers": self.allowed_servers,
            "channels": self.allowed_channels,
            "threads": self.allowed_threads,
        }
        if self.type in required and not required[self.type]:
            raise ValueError(f"allowed_{self.type} must list at least one id when type is '{self.type}'")
        return self


class PromptInput(BaseModel):
    content: str = Field(..., min_length=1)
    variables: list[str] | None = None
    api_integration: ApiService | None = None

    @field_validator("variables")
    @classmethod
    def validate_variables(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return check_variable_names(v)


class CommandCreate(BaseModel):
    bot_id: str
    name: str = Field(..., pattern=COMMAND_NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    usage: str = Field("", max_length=200)
    options: list[CommandOption] = Field(default_factory=list)
    prompt: PromptInput | None = None
    enabled: bool = True
    output_destination: OutputDestination = Field(default_factory=OutputDestination)


class CommandUpdate(BaseModel):
    """Partial update. Sending "prompt": null removes the prompt."""

    name: str | None = Field(None, pattern=COMMAND_NAME_PATTERN)
    description: str | None = Field(None, min_length=1, max_length=100)
    usage: str | None = Field(None, max_length=200)
    options: list[CommandOption] | None = None
    prompt: PromptInput | None = None
    enabled: bool | None = None
    output_destination: OutputDestination | None = None


class PromptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    command_id: str
    content: str
    variables: list[str]
    api_integration: ApiService | None = None


class CommandResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    bot_id: str
    name: str
    description: str
    usage: str
    options: list[CommandOption]
    enabled: bool
    output_destination: OutputDestination
    prompt: PromptResponse | None = None
    created_at: datetime
    updated_at: datetime
