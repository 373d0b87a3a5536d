import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, notify, storage
from ..activity import log_activity
from ..ratelimit import rate_limit
from ..services import jsr, lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jsr", tags=["jsr"])


@router.post("/links", response_model=schemas.JsrLinkOut)
async def generate_jsr_link(
    payload: schemas.JsrLinkCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    rbac.get_or_404(db, models.Brand, payload.brand_id, "Brand")
    link = models.JsrLink(
        brand_id=payload.brand_id,
        token=jsr.generate_token(),
        label=payload.label,
        is_active=True,
        created_by=user.id,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    logger.info("share link %s issued for brand %s", link.id, link.brand_id)
    return link


@router.get("/links", response_model=List[schemas.JsrLinkOut])
async def list_jsr_links(
    brand_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    return (
        db.query(models.JsrLink)
        .filter(models.JsrLink.brand_id == brand_id)
        .order_by(models.JsrLink.created_at.desc())
        .all()
    )


@router.post("/links/{link_id}/deactivate", response_model=schemas.JsrLinkOut)
async def deactivate_jsr_link(
    link_id: UUID,
    payload: schemas.JsrDeactivate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    link = rbac.get_or_404(db, models.JsrLink, link_id, "Link")
    link.is_active = False
    blob_paths: list[str] = []
    if payload.delete_tasks:
        client_tasks = db.query(models.JsrClientTask).filter_by(jsr_link_id=link.id).all()
        linked_ids = [t.linked_task_id for t in client_tasks if t.linked_task_id]
        db.query(models.JsrClientTask).filter_by(jsr_link_id=link.id).delete(
            synchronize_session=False
        )
        if linked_ids:
            blob_paths = lifecycle.delete_task_rows(db, linked_ids)
    db.commit()
    for path in blob_paths:
        storage.delete_binary_payload(path)
    logger.info("share link %s deactivated (delete_tasks=%s)", link.id, payload.delete_tasks)
    db.refresh(link)
    return link


@router.put("/links/{link_id}/deadline")
async def set_cumulative_deadline(
    link_id: UUID,
    payload: schemas.CumulativeDeadline,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    link = rbac.get_or_404(db, models.JsrLink, link_id, "Link")
    pending = (
        db.query(models.JsrClientTask)
        .filter(
            models.JsrClientTask.jsr_link_id == link.id,
            models.JsrClientTask.final_deadline.is_(None),
        )
        .all()
    )
    for client_task in pending:
        client_task.final_deadline = payload.deadline
    db.commit()
    return {"updated": len(pending)}


@router.get("/public/{token}", response_model=Optional[schemas.JsrView])
async def get_jsr_by_token(token: str, db: Session = Depends(get_db)):
    link = jsr.active_link(db, token)
    if link is None:
        return None
    return jsr.build_share_view(db, link)


@router.post("/public/{token}/tasks", response_model=schemas.PublicClientTask)
@rate_limit("10/minute")
async def add_client_task(
    request: Request,
    token: str,
    payload: schemas.ClientTaskCreate,
    db: Session = Depends(get_db),
):
    link = jsr.active_link(db, token)
    if link is None:
        raise HTTPException(status_code=404, detail="Invalid or inactive link")
    client_task = jsr.submit_client_task(
        db,
        link,
        title=payload.title.strip(),
        description=payload.description,
        proposed_deadline=payload.proposed_deadline,
        client_name=payload.client_name,
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(client_task)
    return client_task


@router.get("/client-tasks", response_model=List[schemas.ClientTaskOut])
async def list_client_tasks(
    brand_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    client_tasks = (
        db.query(models.JsrClientTask)
        .filter(models.JsrClientTask.brand_id == brand_id)
        .order_by(models.JsrClientTask.created_at.desc())
        .all()
    )
    return [jsr.client_task_row(t) for t in client_tasks]


@router.put("/client-tasks/{client_task_id}/status", response_model=schemas.ClientTaskOut)
async def update_client_task_status(
    client_task_id: UUID,
    payload: schemas.ClientTaskStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    client_task = rbac.get_or_404(db, models.JsrClientTask, client_task_id, "Client task")
    jsr.change_client_task_status(db, client_task, payload.status, user)
    db.commit()
    await notify.publish_pending(db)
    db.refresh(client_task)
    return jsr.client_task_row(client_task)


@router.put("/client-tasks/{client_task_id}/deadline", response_model=schemas.ClientTaskOut)
async def update_client_task_deadline(
    client_task_id: UUID,
    payload: schemas.ClientTaskDeadline,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    client_task = rbac.get_or_404(db, models.JsrClientTask, client_task_id, "Client task")
    client_task.final_deadline = payload.final_deadline
    task = db.get(models.Task, client_task.linked_task_id) if client_task.linked_task_id else None
    if task is not None:
        task.deadline = payload.final_deadline
        log_activity(
            db,
            task.brief_id,
            user.id,
            "updated_task",
            task_id=task.id,
            details={"deadline": payload.final_deadline},
        )
    db.commit()
    db.refresh(client_task)
    return jsr.client_task_row(client_task)


@router.put("/client-tasks/{client_task_id}/assignee", response_model=schemas.ClientTaskOut)
async def reassign_client_task(
    client_task_id: UUID,
    payload: schemas.ClientTaskReassign,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    client_task = rbac.get_or_404(db, models.JsrClientTask, client_task_id, "Client task")
    assignee = rbac.get_or_404(db, models.User, payload.assignee_id, "User")
    jsr.reassign_client_task(db, client_task, assignee, user)
    db.commit()
    await notify.publish_pending(db)
    db.refresh(client_task)
    return jsr.client_task_row(client_task)
