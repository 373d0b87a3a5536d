from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, notify
from ..activity import log_activity
from ..services import lifecycle

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("/", response_model=List[schemas.TemplateOut])
async def list_templates(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return db.query(models.BriefTemplate).order_by(models.BriefTemplate.created_at).all()


@router.post("/", response_model=schemas.TemplateOut)
async def save_as_template(
    payload: schemas.TemplateCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can create templates")
    brief = rbac.get_or_404(db, models.Brief, payload.brief_id, "Brief")
    tasks = sorted(brief.tasks, key=lambda t: t.sort_order)
    template = models.BriefTemplate(
        name=payload.name,
        description=brief.description,
        tasks=[
            schemas.TemplateTask.model_validate(t, from_attributes=True).model_dump()
            for t in tasks
        ],
        created_by=user.id,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


@router.post("/{template_id}/instantiate", response_model=schemas.BriefOut)
async def create_from_template(
    template_id: UUID,
    payload: schemas.TemplateInstantiate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can create briefs")
    template = rbac.get_or_404(db, models.BriefTemplate, template_id, "Template")
    if payload.brand_id:
        rbac.get_or_404(db, models.Brand, payload.brand_id, "Brand")
    brief = models.Brief(
        title=payload.title,
        description=template.description,
        status="draft",
        created_by=user.id,
        global_priority=lifecycle.next_global_priority(db),
        deadline=payload.deadline,
        brand_id=payload.brand_id,
    )
    db.add(brief)
    db.flush()
    log_activity(
        db,
        brief.id,
        user.id,
        "created_brief",
        details={"title": payload.title, "from_template": template.name},
    )
    if payload.assignee_id:
        rbac.get_or_404(db, models.User, payload.assignee_id, "User")
        for outline in template.tasks or []:
            item = schemas.TemplateTask.model_validate(outline)
            lifecycle.create_task(
                db,
                brief,
                user,
                payload.assignee_id,
                title=item.title,
                description=item.description,
                duration=item.duration or "",
                duration_minutes=item.duration_minutes or 0,
            )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(brief)
    return brief


@router.delete("/{template_id}", status_code=204)
async def delete_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can delete templates")
    template = rbac.get_or_404(db, models.BriefTemplate, template_id, "Template")
    db.delete(template)
    db.commit()
    return Response(status_code=204)
