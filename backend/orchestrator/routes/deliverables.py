import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..auth import get_current_user
from .. import models, schemas, rbac, notify
from ..activity import log_activity
from ..services import lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deliverables", tags=["deliverables"])


def deliverable_row(d: models.Deliverable) -> dict:
    task = d.task
    brief = task.brief if task else None
    return {
        **schemas.DeliverableOut.model_validate(d).model_dump(),
        "submitter_name": d.submitter.display_name if d.submitter else "Unknown",
        "reviewer_name": d.reviewer.display_name if d.reviewer else None,
        "task_title": task.title if task else "Unknown",
        "brief_title": brief.title if brief else "Unknown",
        "brief_id": brief.id if brief else None,
    }


@router.get("/")
async def list_deliverables(
    task_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = db.query(models.Deliverable)
    if task_id:
        query = query.filter(models.Deliverable.task_id == task_id)
    if user.role == "employee":
        query = query.filter(models.Deliverable.submitted_by == user.id)
    return [deliverable_row(d) for d in query.order_by(models.Deliverable.submitted_at.desc()).all()]


@router.get("/task/{task_id}", response_model=list[schemas.DeliverableOut])
async def get_deliverables_for_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return (
        db.query(models.Deliverable)
        .filter_by(task_id=task_id)
        .order_by(models.Deliverable.submitted_at)
        .all()
    )


@router.post("/", response_model=schemas.DeliverableOut)
async def submit_deliverable(
    payload: schemas.DeliverableCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task = rbac.get_or_404(db, models.Task, payload.task_id, "Task")
    if task.assignee_id != user.id:
        raise HTTPException(status_code=403, detail="Only the assignee can submit deliverables")
    deliverable = models.Deliverable(
        task_id=task.id,
        submitted_by=user.id,
        message=payload.message,
        link=payload.link,
        status="pending",
    )
    db.add(deliverable)
    if task.status != "done":
        task.status = "review"
    if task.assigned_by:
        notify.notify(
            db,
            task.assigned_by,
            "deliverable_submitted",
            "Deliverable submitted",
            f'{user.name or "Someone"} submitted a deliverable for "{task.title}"',
            brief_id=task.brief_id,
            task_id=task.id,
            triggered_by=user.id,
        )
    log_activity(
        db, task.brief_id, user.id, "submitted_deliverable", task_id=task.id,
        details={"link": payload.link},
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(deliverable)
    return deliverable


@router.post("/{deliverable_id}/approve", response_model=schemas.DeliverableOut)
async def approve_deliverable(
    deliverable_id: UUID,
    payload: schemas.DeliverableReview,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user, "Only admins/managers can approve deliverables")
    deliverable = rbac.get_or_404(db, models.Deliverable, deliverable_id, "Deliverable")
    deliverable.status = "approved"
    deliverable.reviewed_by = user.id
    deliverable.review_note = payload.note
    deliverable.reviewed_at = utcnow()

    task = deliverable.task
    task.status = "done"
    task.completed_at = utcnow()
    notify.notify(
        db,
        deliverable.submitted_by,
        "deliverable_approved",
        "Deliverable approved",
        f'Your deliverable for "{task.title}" was approved',
        brief_id=task.brief_id,
        task_id=task.id,
        triggered_by=user.id,
    )
    log_activity(
        db, task.brief_id, user.id, "approved_deliverable", task_id=task.id,
        details={"status": "done", "note": payload.note},
    )
    lifecycle.sync_brief_review(db, task.brief, user.id, {task.id: "done"})
    db.commit()
    await notify.publish_pending(db)
    db.refresh(deliverable)
    return deliverable


@router.post("/{deliverable_id}/reject", response_model=schemas.DeliverableOut)
async def reject_deliverable(
    deliverable_id: UUID,
    payload: schemas.DeliverableReject,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user, "Only admins/managers can reject deliverables")
    deliverable = rbac.get_or_404(db, models.Deliverable, deliverable_id, "Deliverable")
    deliverable.status = "rejected"
    deliverable.reviewed_by = user.id
    deliverable.review_note = payload.note
    deliverable.reviewed_at = utcnow()

    task = deliverable.task
    if task.status == "review":
        task.status = "in-progress"
    notify.notify(
        db,
        deliverable.submitted_by,
        "deliverable_rejected",
        "Changes requested",
        f'Your deliverable for "{task.title}" needs changes: {payload.note}',
        brief_id=task.brief_id,
        task_id=task.id,
        triggered_by=user.id,
    )
    log_activity(
        db, task.brief_id, user.id, "rejected_deliverable", task_id=task.id,
        details={"note": payload.note},
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(deliverable)
    return deliverable
