from typing import Any

import structlog
from sqlalchemy.orm import Session

from control_center.models.bot import Bot, utcnow
from control_center.models.command import Command
from control_center.models.template import Template
from control_center.schemas.command import ApiService
from control_center.services.command_service import create_command

logger = structlog.get_logger()

UPDATABLE_FIELDS = (
    "name",
    "description",
    "category",
    "command_structure",
    "prompt_structure",
    "api_integration_structure",
    "is_public",
)
CLEARABLE_FIELDS = ("prompt_structure", "api_integration_structure")

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "Greeting",
        "description": "A simple command that greets the user",
        "category": "basic",
        "command_structure": {
            "name": "hello",
            "description": "Get a greeting from the bot",
            "options": [],
            "difficulty": "beginner",
            "tags": ["basic", "greeting"],
            "popular": True,
        },
        "prompt_structure": {
            "content": "Greet the user cheerfully. Adjust the greeting to the time of day.",
            "variables": [],
        },
        "api_integration_structure": {
            "service": "openai",
            "settings": {"model": "gpt-3.5-turbo", "temperature": 0.7, "max_tokens": 100},
        },
        "is_public": True,
    },
    {
        "name": "Ask AI",
        "description": "Answer a free-form question with an AI model",
        "category": "conversation",
        "command_structure": {
            "name": "ask",
            "description": "Ask the AI a question",
            "options": [
                {"name": "question", "description": "Your question", "type": "string", "required": True}
            ],
            "difficulty": "beginner",
            "tags": ["ai", "chat"],
            "popular": True,
        },
        "prompt_structure": {"content": "Question: {question}", "variables": ["question"]},
        "api_integration_structure": {
            "service": "anthropic",
            "settings": {"model": "claude-3-haiku", "temperature": 0.7, "max_tokens": 1000},
        },
        "is_public": True,
    },
    {
        "name": "Image generation",
        "description": "Generate an image from a text prompt",
        "category": "media",
        "command_structure": {
            "name": "imagine",
            "description": "Generate an image from a text prompt",
            "options": [
                {"name": "prompt", "description": "What to draw", "type": "string", "required": True},
                {
                    "name": "style",
                    "description": "Image style",
                    "type": "string",
                    "required": False,
                    "choices": [
                        {"name": "Photo", "value": "photo"},
                        {"name": "Anime", "value": "anime"},
                        {"name": "Oil painting", "value": "oil-painting"},
                    ],
                },
            ],
            "difficulty": "intermediate",
            "tags": ["ai", "image"],
            "popular": True,
        },
        "prompt_structure": {"content": "{prompt}, in {style} style", "variables": ["prompt", "style"]},
        "api_integration_structure": {
            "service": "stability",
            "settings": {"model": "stable-diffusion-xl", "cfg_scale": 7, "steps": 30},
        },
        "is_public": True,
    },
    {
        "name": "Translation",
        "description": "Translate text into another language",
        "category": "utility",
        "command_structure": {
            "name": "translate",
            "description": "Translate text into another language",
            "options": [
                {"name": "text", "description": "Text to translate", "type": "string", "required": True},
                {
                    "name": "target",
                    "description": "Target language",
                    "type": "string",
                    "required": True,
                    "choices": [
                        {"name": "English", "value": "EN"},
                        {"name": "Japanese", "value": "JA"},
                        {"name": "German", "value": "DE"},
                        {"name": "French", "value": "FR"},
                    ],
                },
            ],
            "difficulty": "beginner",
            "tags": ["utility"],
            "popular": True,
        },
        "prompt_structure": {"content": "{text}", "variables": ["text", "target"]},
        "api_integration_structure": {"service": "deepl", "settings": {"formality": "default"}},
        "is_public": True,
    },
]


class DuplicateTemplateError(ValueError):
    """A template with this name already exists."""


def create_template(
    db: Session,
    name: str,
    description: str,
    category: str,
    command_structure: dict[str, Any],
    prompt_structure: dict[str, Any] | None = None,
    api_integration_structure: dict[str, Any] | None = None,
    is_public: bool = False,
    user_id: str | None = None,
) -> Template:
    if db.query(Template).filter(Template.name == name).first() is not None:
        raise DuplicateTemplateError(f"Template '{name}' already exists")

    template = Template(
        name=name,
        description=description,
        category=category,
        command_structure={"tags": [], **command_structure},
        prompt_structure=prompt_structure,
        api_integration_structure=api_integration_structure,
        is_public=is_public,
        user_id=user_id,
    )

    db.add(template)
    db.commit()
    db.refresh(template)

    logger.info("template_created", template_id=template.id, category=category)
    return template


def get_template(db: Session, template_id: str) -> Template | None:
    return db.get(Template, template_id)


def list_templates(db: Session, category: str | None = None) -> list[Template]:
    """List templates, newest first, optionally filtered by category."""
    query = db.query(Template)
    if category:
        query = query.filter(Template.category == category)
    return query.order_by(Template.created_at.desc()).all()


def update_template(db: Session, template: Template, changes: dict[str, Any]) -> Template:
    new_name = changes.get("name")
    if new_name and new_name != template.name:
        if db.query(Template).filter(Template.name == new_name).first() is not None:
            raise DuplicateTemplateError(f"Template '{new_name}' already exists")

    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None and field not in CLEARABLE_FIELDS:
            continue
        setattr(template, field, changes[field])

    template.updated_at = utcnow()
    db.commit()
    db.refresh(template)

    logger.info("template_updated", template_id=template.id, fields=sorted(changes))
    return template


def delete_template(db: Session, template: Template) -> None:
    template_id = template.id
    db.delete(template)
    db.commit()
    logger.info("template_deleted", template_id=template_id)


def create_command_from_template(
    db: Session,
    bot: Bot,
    template: Template,
    name: str | None = None,
    description: str | None = None,
) -> Command:
    """
    Create a command on a bot from a template's defaults.

    A prompt is attached when the template has prompt content or names an
    AI integration.
    """
    structure = template.command_structure
    prompt_structure = template.prompt_structure or {}
    api_structure = template.api_integration_structure or {}

    service = api_structure.get("service")
    if service not in {s.value for s in ApiService} or service == ApiService.NONE.value:
        service = None

    prompt = None
    if prompt_structure.get("content") or service:
        prompt = {
            "content": prompt_structure.get("content", ""),
            "variables": prompt_structure.get("variables") or None,
            "api_integration": service,
        }

    command = create_command(
        db,
        bot=bot,
        name=name or structure["name"],
        description=description or structure.get("description") or template.description,
        options=structure.get("options") or [],
        prompt=prompt,
        output_destination=structure.get("output_destination"),
    )

    logger.info("template_applied", template_id=template.id, command_id=command.id)
    return command


def seed_default_templates(db: Session) -> int:
    """Insert the built-in templates that are missing. Returns how many were added."""
    existing = {name for (name,) in db.query(Template.name).all()}
    added = 0
    for data in DEFAULT_TEMPLATES:
        if data["name"] in existing:
            continue
        create_template(db, **data)
        added += 1

    logger.info("templates_seeded", added=added)
    return added
