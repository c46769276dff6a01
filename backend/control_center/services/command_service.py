from typing import Any

import structlog
from sqlalchemy.orm import Session

from control_center.config import settings
from control_center.models.bot import Bot, utcnow
from control_center.models.command import Command, CommandPrompt
from control_center.schemas.command import (
    ApiService,
    check_variable_names,
    extract_prompt_variables,
)

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("name", "description", "usage", "options", "enabled", "output_destination")


class DuplicateCommandError(ValueError):
    """A command with this name already exists on the bot."""


def _build_prompt(prompt: dict[str, Any]) -> CommandPrompt:
    content = prompt.get("content") or ""
    variables = prompt.get("variables")
    if variables is None:
        variables = extract_prompt_variables(content)
    else:
        check_variable_names(variables)

    api_integration = prompt.get("api_integration")
    if api_integration == ApiService.NONE.value:
        api_integration = None

    return CommandPrompt(content=content, variables=variables, api_integration=api_integration)


def _ensure_unique_name(db: Session, bot_id: str, name: str, exclude_id: str | None = None) -> None:
    query = db.query(Command).filter(Command.bot_id == bot_id, Command.name == name)
    if exclude_id is not None:
        query = query.filter(Command.id != exclude_id)
    if query.first() is not None:
        raise DuplicateCommandError(f"Command '{name}' already exists on this bot")


def create_command(
    db: Session,
    bot: Bot,
    name: str,
    description: str,
    usage: str = "",
    options: list[dict[str, Any]] | None = None,
    prompt: dict[str, Any] | None = None,
    enabled: bool = True,
    output_destination: dict[str, Any] | None = None,
) -> Command:
    """
    Create a command on a bot, with an optional prompt.

    Prompt variables default to the {placeholders} found in the content.
    """
    _ensure_unique_name(db, bot.id, name)

    count = db.query(Command).filter(Command.bot_id == bot.id).count()
    if count >= settings.max_commands_per_bot:
        raise ValueError(f"A bot cannot have more than {settings.max_commands_per_bot} commands")

    command = Command(
        bot_id=bot.id,
        name=name,
        description=description,
        usage=usage or f"/{name}",
        options=options or [],
        enabled=enabled,
        output_destination=output_destination or {"type": "global"},
    )
    if prompt is not None:
        command.prompt = _build_prompt(prompt)

    db.add(command)
    db.commit()
    db.refresh(command)

    logger.info(
        "command_created",
        command_id=command.id,
        bot_id=bot.id,
        has_prompt=command.prompt is not None,
    )
    return command


def get_command(db: Session, command_id: str) -> Command | None:
    return db.get(Command, command_id)


def list_commands(db: Session, bot_id: str | None = None) -> list[Command]:
    query = db.query(Command)
    if bot_id is not None:
        query = query.filter(Command.bot_id == bot_id)
    return query.order_by(Command.created_at).all()


def update_command(db: Session, command: Command, changes: dict[str, Any]) -> Command:
    """
    Apply a partial update.

    A "prompt" key replaces the prompt; an explicit None removes it.
    """
    if changes.get("name") and changes["name"] != command.name:
        _ensure_unique_name(db, command.bot_id, changes["name"], exclude_id=command.id)

    for field in UPDATABLE_FIELDS:
        if changes.get(field) is not None:
            setattr(command, field, changes[field])

    if "prompt" in changes:
        if changes["prompt"] is None:
            command.prompt = None
        elif command.prompt is None:
            command.prompt = _build_prompt(changes["prompt"])
        else:
            new_prompt = _build_prompt(changes["prompt"])
            command.prompt.content = new_prompt.content
            command.prompt.variables = new_prompt.variables
            command.prompt.api_integration = new_prompt.api_integration

    command.updated_at = utcnow()
    db.commit()
    db.refresh(command)

    logger.info("command_updated", command_id=command.id, fields=sorted(changes))
    return command


def delete_command(db: Session, command: Command) -> None:
    command_id = command.id
    db.delete(command)
    db.commit()
    logger.info("command_deleted", command_id=command_id)
