from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from control_center.schemas.command import (
    COMMAND_NAME_PATTERN,
    ApiService,
    CommandOption,
    OutputDestination,
    check_variable_names,
)

CATEGORY_PATTERN = r"^[a-z_-]{1,32}$"
TemplateDifficulty = Literal["beginner", "intermediate", "advanced"]


class CommandStructure(BaseModel):
    """Default command a template produces. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., pattern=COMMAND_NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    options: list[CommandOption] = Field(default_factory=list)
    difficulty: TemplateDifficulty = "beginner"
    tags: list[str] = Field(default_factory=list)
    popular: bool = False
    output_destination: OutputDestination | None = None


class PromptStructure(BaseModel):
    content: str = ""
    variables: list[str] = Field(default_factory=list)

    @field_validator("variables")
    @classmethod
    def validate_variables(cls, v: list[str]) -> list[str]:
        return check_variable_names(v)


class ApiIntegrationStructure(BaseModel):
    """Service and settings for a template. Extra keys such as "flow" are kept."""

    model_config = ConfigDict(extra="allow")

    service: ApiService = ApiService.NONE
    settings: dict[str, Any] = Field(default_factory=dict)


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    category: str = Field(..., pattern=CATEGORY_PATTERN)
    command_structure: CommandStructure
    prompt_structure: PromptStructure | None = None
    api_integration_structure: ApiIntegrationStructure | None = None
    is_public: bool = False
    user_id: str | None = None


class TemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, min_length=1)
    category: str | None = Field(None, pattern=CATEGORY_PATTERN)
    command_structure: CommandStructure | None = None
    prompt_structure: PromptStructure | None = None
    api_integration_structure: ApiIntegrationStructure | None = None
    is_public: bool | None = None


class TemplateApply(BaseModel):
    """Create a command on a bot from a template, optionally renaming it."""

    bot_id: str
    name: str | None = Field(None, pattern=COMMAND_NAME_PATTERN)
    description: str | None = Field(None, min_length=1, max_length=100)


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = None
    name: str
    description: str
    category: str
    command_structure: dict[str, Any]
    prompt_structure: dict[str, Any] | None = None
    api_integration_structure: dict[str, Any] | None = None
    is_public: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("command_structure")
    @classmethod
    def default_tags(cls, v: dict[str, Any]) -> dict[str, Any]:
        if "tags" not in v or v["tags"] is None:
            return {**v, "tags": []}
        return v
