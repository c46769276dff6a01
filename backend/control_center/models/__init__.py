from control_center.models.bot import Bot, BotStatus
from control_center.models.command import Command, CommandPrompt
from control_center.models.template import Template

__all__ = [
    "Bot",
    "BotStatus",
    "Command",
    "CommandPrompt",
    "Template",
]
