from typing import Any

import structlog
from sqlalchemy.orm import Session

from control_center.models.bot import DEFAULT_BOT_SETTINGS, Bot, BotStatus, utcnow
from control_center.services.encryption import TokenCipher, looks_encrypted

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("name", "client_id", "avatar_url", "servers", "status")


def create_bot(
    db: Session,
    cipher: TokenCipher,
    name: str,
    client_id: str,
    token: str,
    avatar_url: str | None = None,
    settings: dict[str, Any] | None = None,
    servers: list[dict[str, Any]] | None = None,
    user_id: str | None = None,
) -> Bot:
    """
    Register a bot.

    The plaintext token is encrypted before the row is written. New bots
    start offline.
    """
    bot = Bot(
        user_id=user_id,
        name=name,
        client_id=client_id,
        encrypted_token=cipher.encrypt(token),
        avatar_url=avatar_url,
        status=BotStatus.OFFLINE,
        settings={**DEFAULT_BOT_SETTINGS, **(settings or {})},
        servers=servers or [],
    )

    db.add(bot)
    db.commit()
    db.refresh(bot)

    logger.info("bot_created", bot_id=bot.id, client_id=bot.client_id)
    return bot


def get_bot(db: Session, bot_id: str) -> Bot | None:
    return db.get(Bot, bot_id)


def list_bots(db: Session, user_id: str | None = None) -> list[Bot]:
    """List bots, newest first, optionally only those owned by user_id."""
    query = db.query(Bot)
    if user_id is not None:
        query = query.filter(Bot.user_id == user_id)
    return query.order_by(Bot.created_at.desc()).all()


def update_bot(db: Session, cipher: TokenCipher, bot: Bot, changes: dict[str, Any]) -> Bot:
    """
    Apply a partial update.

    A supplied token is encrypted unless it already looks like an envelope,
    so an unchanged value round-tripped through an edit form is stored as-is.
    Settings are merged into the existing settings; servers are replaced.
    """
    for field in UPDATABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(bot, field, changes[field])

    # avatar_url may be explicitly cleared
    if "avatar_url" in changes and changes["avatar_url"] is None:
        bot.avatar_url = None

    if changes.get("settings") is not None:
        bot.settings = {**(bot.settings or {}), **changes["settings"]}

    token = changes.get("token")
    if token:
        if looks_encrypted(token):
            bot.encrypted_token = token
            logger.info("bot_token_kept", bot_id=bot.id)
        else:
            bot.encrypted_token = cipher.encrypt(token)
            logger.info("bot_token_rotated", bot_id=bot.id)

    bot.updated_at = utcnow()
    db.commit()
    db.refresh(bot)

    logger.info("bot_updated", bot_id=bot.id, fields=sorted(k for k in changes if k != "token"))
    return bot


def update_bot_status(db: Session, bot: Bot, status: BotStatus) -> Bot:
    """Record a lifecycle status reported by the bot runtime. Never touches the token."""
    previous = bot.status
    now = utcnow()

    bot.status = status
    bot.last_active = now
    bot.updated_at = now
    db.commit()
    db.refresh(bot)

    logger.info(
        "bot_status_changed",
        bot_id=bot.id,
        previous=previous.value if previous else None,
        status=status.value,
    )
    return bot


def delete_bot(db: Session, bot: Bot) -> None:
    """Delete a bot and its commands."""
    bot_id = bot.id
    db.delete(bot)
    db.commit()
    logger.info("bot_deleted", bot_id=bot_id)


def get_bot_token(bot: Bot, cipher: TokenCipher) -> str:
    """
    Decrypt a bot's token for the runtime that logs the bot in.

    This is the only read path for the plaintext token. Crypto errors
    propagate; the stored value is unrecoverable under the current key.
    """
    token = cipher.decrypt(bot.encrypted_token)
    logger.info("bot_token_decrypted", bot_id=bot.id)
    return token


def reencrypt_bot_tokens(db: Session, old_cipher: TokenCipher, new_cipher: TokenCipher) -> int:
    """
    Re-encrypt every stored token under a new key.

    All tokens are decrypted before anything is written, so a single
    unreadable token aborts the rotation without partial changes.
    Returns the number of bots updated.
    """
    bots = db.query(Bot).all()
    plaintexts = {bot.id: old_cipher.decrypt(bot.encrypted_token) for bot in bots}

    for bot in bots:
        bot.encrypted_token = new_cipher.encrypt(plaintexts[bot.id])
    db.commit()

    logger.info("bot_tokens_reencrypted", count=len(bots))
    return len(bots)
