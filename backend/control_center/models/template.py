import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from control_center.database import Base
from control_center.models.bot import utcnow


class Template(Base):
    """
    A reusable command blueprint.

    command_structure holds the default command (name, description, options,
    tags, ...). prompt_structure and api_integration_structure are optional
    and copied onto commands created from the template.
    """

    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    command_structure: Mapped[dict] = mapped_column(JSON, nullable=False)
    prompt_structure: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    api_integration_structure: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
