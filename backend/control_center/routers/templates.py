from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from control_center.config import settings
from control_center.database import get_db
from control_center.middleware.rate_limit import limiter
from control_center.models.template import Template
from control_center.schemas.command import CommandResponse
from control_center.schemas.template import (
    TemplateApply,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from control_center.services.bot_service import get_bot
from control_center.services.command_service import DuplicateCommandError
from control_center.services.template_service import (
    DuplicateTemplateError,
    create_command_from_template,
    create_template,
    delete_template,
    get_template,
    list_templates,
    update_template,
)

router = APIRouter()


def get_template_or_404(template_id: str, db: Session = Depends(get_db)) -> Template:
    template = get_template(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.get("/templates", response_model=list[TemplateResponse])
@limiter.limit(settings.rate_limit_reads)
async def list_all_templates(
    request: Request,
    category: str | None = None,
    db: Session = Depends(get_db),
):
    return list_templates(db, category=category)


@router.get("/templates/{template_id}", response_model=TemplateResponse)
@limiter.limit(settings.rate_limit_reads)
async def get_single_template(request: Request, template: Template = Depends(get_template_or_404)):
    return template


@router.post("/templates", response_model=TemplateResponse, status_code=201)
@limiter.limit(settings.rate_limit_writes)
async def create_new_template(
    request: Request,
    template_data: TemplateCreate,
    db: Session = Depends(get_db),
):
    data = template_data.model_dump(mode="json")
    try:
        return create_template(db=db, **data)
    except DuplicateTemplateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/templates/{template_id}", response_model=TemplateResponse)
@limiter.limit(settings.rate_limit_writes)
async def edit_template(
    request: Request,
    update_data: TemplateUpdate,
    template: Template = Depends(get_template_or_404),
    db: Session = Depends(get_db),
):
    changes = update_data.model_dump(mode="json", exclude_unset=True)
    try:
        return update_template(db, template, changes)
    except DuplicateTemplateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/templates/{template_id}", status_code=204)
@limiter.limit(settings.rate_limit_writes)
async def remove_template(
    request: Request,
    template: Template = Depends(get_template_or_404),
    db: Session = Depends(get_db),
):
    delete_template(db, template)
    return Response(status_code=204)


@router.post("/templates/{template_id}/apply", response_model=CommandResponse, status_code=201)
@limiter.limit(settings.rate_limit_writes)
async def apply_template(
    request: Request,
    apply_data: TemplateApply,
    template: Template = Depends(get_template_or_404),
    db: Session = Depends(get_db),
):
    """Create a command on a bot from this template."""
    bot = get_bot(db, apply_data.bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")

    try:
        return create_command_from_template(
            db,
            bot=bot,
            template=template,
            name=apply_data.name,
            description=apply_data.description,
        )
    except DuplicateCommandError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
