from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, notify

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _unread(db: Session, user: models.User):
    return db.query(models.Notification).filter(
        models.Notification.recipient_id == user.id,
        models.Notification.is_read.is_(False),
    )


@router.get("/", response_model=schemas.NotificationList)
async def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    notifications = (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user.id)
        .order_by(models.Notification.created_at.desc())
        .limit(limit)
        .all()
    )
    return {"notifications": notifications, "unread_count": _unread(db, user).count()}


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return {"count": _unread(db, user).count()}


@router.post("/{notification_id}/read", response_model=schemas.NotificationOut)
async def mark_as_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    notif = (
        db.query(models.Notification)
        .filter_by(id=notification_id, recipient_id=user.id)
        .first()
    )
    if not notif:
        raise HTTPException(status_code=404, detail="Notification not found")
    notif.is_read = True
    db.commit()
    db.refresh(notif)
    await notify.publish_read_state(user.id, [notif.id])
    return notif


@router.post("/mark-all-read")
async def mark_all_as_read(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    updated = _unread(db, user).all()
    for notif in updated:
        notif.is_read = True
    db.commit()
    await notify.publish_read_state(user.id, [n.id for n in updated])
    return {"updated": len(updated)}
