from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from control_center.config import settings
from control_center.database import get_db
from control_center.middleware.rate_limit import limiter
from control_center.models.bot import Bot
from control_center.schemas.bot import (
    BotCreate,
    BotResponse,
    BotStatusResponse,
    BotStatusUpdate,
    BotUpdate,
)
from control_center.services.bot_service import (
    create_bot,
    delete_bot,
    get_bot,
    list_bots,
    update_bot,
    update_bot_status,
)
from control_center.services.encryption import TokenCipher, get_token_cipher

router = APIRouter()


def get_bot_or_404(bot_id: str, db: Session = Depends(get_db)) -> Bot:
    bot = get_bot(db, bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    return bot


@router.get("/bots", response_model=list[BotResponse])
@limiter.limit(settings.rate_limit_reads)
async def list_all_bots(
    request: Request,
    user_id: str | None = None,
    db: Session = Depends(get_db),
):
    """List bots. Tokens are never included."""
    return list_bots(db, user_id=user_id)


@router.get("/bots/{bot_id}", response_model=BotResponse)
@limiter.limit(settings.rate_limit_reads)
async def get_single_bot(request: Request, bot: Bot = Depends(get_bot_or_404)):
    return bot


@router.post("/bots", response_model=BotResponse, status_code=201)
@limiter.limit(settings.rate_limit_writes)
async def create_new_bot(
    request: Request,
    bot_data: BotCreate,
    db: Session = Depends(get_db),
    cipher: TokenCipher = Depends(get_token_cipher),
):
    """
    Register a bot.

    The token is encrypted before storage and is not returned.
    """
    bot = create_bot(
        db=db,
        cipher=cipher,
        name=bot_data.name,
        client_id=bot_data.client_id,
        token=bot_data.token,
        avatar_url=bot_data.avatar_url,
        settings=bot_data.settings,
        servers=[server.model_dump(mode="json") for server in bot_data.servers],
        user_id=bot_data.user_id,
    )
    return bot


@router.put("/bots/{bot_id}", response_model=BotResponse)
@limiter.limit(settings.rate_limit_writes)
async def edit_bot(
    request: Request,
    update_data: BotUpdate,
    bot: Bot = Depends(get_bot_or_404),
    db: Session = Depends(get_db),
    cipher: TokenCipher = Depends(get_token_cipher),
):
    """
    Update a bot.

    A token that already looks encrypted is stored unchanged; anything else
    is encrypted first.
    """
    changes = update_data.model_dump(exclude_unset=True)
    if update_data.servers is not None:
        changes["servers"] = [server.model_dump(mode="json") for server in update_data.servers]
    return update_bot(db, cipher, bot, changes)


@router.delete("/bots/{bot_id}", status_code=204)
@limiter.limit(settings.rate_limit_writes)
async def remove_bot(
    request: Request,
    bot: Bot = Depends(get_bot_or_404),
    db: Session = Depends(get_db),
):
    delete_bot(db, bot)
    return Response(status_code=204)


@router.get("/bots/{bot_id}/status", response_model=BotStatusResponse)
@limiter.limit(settings.rate_limit_reads)
async def get_status(request: Request, bot: Bot = Depends(get_bot_or_404)):
    return BotStatusResponse(id=bot.id, status=bot.status, last_active=bot.last_active)


@router.post("/bots/{bot_id}/status", response_model=BotResponse)
@limiter.limit(settings.rate_limit_writes)
async def set_status(
    request: Request,
    status_data: BotStatusUpdate,
    bot: Bot = Depends(get_bot_or_404),
    db: Session = Depends(get_db),
):
    """Record a status reported by the bot runtime."""
    return update_bot_status(db, bot, status_data.status)
