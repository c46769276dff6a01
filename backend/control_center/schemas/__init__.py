from control_center.schemas.bot import (
    BotCreate,
    BotResponse,
    BotSettings,
    BotStatusResponse,
    BotStatusUpdate,
    BotUpdate,
    ServerSettings,
)
from control_center.schemas.command import (
    ApiService,
    CommandCreate,
    CommandOption,
    CommandResponse,
    CommandUpdate,
    OutputDestination,
    PromptInput,
    PromptResponse,
)
from control_center.schemas.template import (
    TemplateApply,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)

__all__ = [
    "ApiService",
    "BotCreate",
    "BotResponse",
    "BotSettings",
    "BotStatusResponse",
    "BotStatusUpdate",
    "BotUpdate",
    "CommandCreate",
    "CommandOption",
    "CommandResponse",
    "CommandUpdate",
    "OutputDestination",
    "PromptInput",
    "PromptResponse",
    "ServerSettings",
    "TemplateApply",
    "TemplateCreate",
    "TemplateResponse",
    "TemplateUpdate",
]
