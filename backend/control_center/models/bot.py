import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from control_center.database import Base


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class BotStatus(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"
    STARTING = "starting"
    STOPPING = "stopping"


DEFAULT_BOT_SETTINGS = {
    "prefix": "!",
    "auto_restart": True,
    "log_level": "info",
}


class Bot(Base):
    """
    A registered Discord bot.

    encrypted_token always holds a hex envelope from TokenCipher, never the
    raw token. Read paths must serialize through BotResponse, which omits it.
    """

    __tablename__ = "bots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    client_id: Mapped[str] = mapped_column(String(32), nullable=False)
    encrypted_token: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    status: Mapped[BotStatus] = mapped_column(
        Enum(BotStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=BotStatus.OFFLINE,
        nullable=False,
    )
    settings: Mapped[dict] = mapped_column(JSON, default=lambda: dict(DEFAULT_BOT_SETTINGS), nullable=False)
    servers: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Timestamps
    last_active: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    commands: Mapped[list["Command"]] = relationship(  # noqa: F821
        back_populates="bot",
        cascade="all, delete-orphan",
    )
