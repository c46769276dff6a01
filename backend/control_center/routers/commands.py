from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from control_center.config import settings
from control_center.database import get_db
from control_center.middleware.rate_limit import limiter
from control_center.models.command import Command
from control_center.schemas.command import CommandCreate, CommandResponse, CommandUpdate
from control_center.services.bot_service import get_bot
from control_center.services.command_service import (
    DuplicateCommandError,
    create_command,
    delete_command,
    get_command,
    list_commands,
    update_command,
)

router = APIRouter()


def get_command_or_404(command_id: str, db: Session = Depends(get_db)) -> Command:
    command = get_command(db, command_id)
    if not command:
        raise HTTPException(status_code=404, detail="Command not found")
    return command


@router.get("/commands", response_model=list[CommandResponse])
@limiter.limit(settings.rate_limit_reads)
async def list_all_commands(
    request: Request,
    bot_id: str | None = None,
    db: Session = Depends(get_db),
):
    """List commands with their prompts, optionally for one bot."""
    return list_commands(db, bot_id=bot_id)


@router.get("/commands/{command_id}", response_model=CommandResponse)
@limiter.limit(settings.rate_limit_reads)
async def get_single_command(request: Request, command: Command = Depends(get_command_or_404)):
    return command


@router.post("/commands", response_model=CommandResponse, status_code=201)
@limiter.limit(settings.rate_limit_writes)
async def create_new_command(
    request: Request,
    command_data: CommandCreate,
    db: Session = Depends(get_db),
):
    bot = get_bot(db, command_data.bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")

    data = command_data.model_dump(mode="json")
    try:
        command = create_command(
            db=db,
            bot=bot,
            name=data["name"],
            description=data["description"],
            usage=data["usage"],
            options=data["options"],
            prompt=data["prompt"],
            enabled=data["enabled"],
            output_destination=data["output_destination"],
        )
    except DuplicateCommandError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return command


@router.put("/commands/{command_id}", response_model=CommandResponse)
@limiter.limit(settings.rate_limit_writes)
async def edit_command(
    request: Request,
    update_data: CommandUpdate,
    command: Command = Depends(get_command_or_404),
    db: Session = Depends(get_db),
):
    """Update a command. Sending "prompt": null removes its prompt."""
    changes = update_data.model_dump(mode="json", exclude_unset=True)
    try:
        return update_command(db, command, changes)
    except DuplicateCommandError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/commands/{command_id}", status_code=204)
@limiter.limit(settings.rate_limit_writes)
async def remove_command(
    request: Request,
    command: Command = Depends(get_command_or_404),
    db: Session = Depends(get_db),
):
    delete_command(db, command)
    return Response(status_code=204)
