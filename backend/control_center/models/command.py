import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from control_center.database import Base
from control_center.models.bot import utcnow


class Command(Base):
    """A slash command registered on a bot."""

    __tablename__ = "commands"
    __table_args__ = (UniqueConstraint("bot_id", "name", name="uq_commands_bot_id_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("bots.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(String(100), nullable=False)
    usage: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    options: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    output_destination: Mapped[dict] = mapped_column(
        JSON, default=lambda: {"type": "global"}, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    bot: Mapped["Bot"] = relationship(back_populates="commands")  # noqa: F821
    prompt: Mapped["CommandPrompt | None"] = relationship(
        back_populates="command",
        cascade="all, delete-orphan",
        uselist=False,
    )


class CommandPrompt(Base):
    """Prompt text sent to an optional AI integration when a command runs."""

    __tablename__ = "command_prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    command_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("commands.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    api_integration: Mapped[str | None] = mapped_column(String(32), nullable=True)

    command: Mapped[Command] = relationship(back_populates="prompt")
