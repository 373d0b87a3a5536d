from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..database import as_utc, get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, notify

router = APIRouter(prefix="/api/messages", tags=["messages"])

PREVIEW_LENGTH = 100


def _between(a: UUID, b: UUID):
    return or_(
        and_(models.DirectMessage.sender_id == a, models.DirectMessage.recipient_id == b),
        and_(models.DirectMessage.sender_id == b, models.DirectMessage.recipient_id == a),
    )


def _unread_from(db: Session, user: models.User):
    return db.query(models.DirectMessage).filter(
        models.DirectMessage.recipient_id == user.id,
        models.DirectMessage.is_read.is_(False),
    )


def message_row(message: models.DirectMessage, user: models.User) -> schemas.MessageOut:
    out = schemas.MessageOut.model_validate(message)
    out.is_mine = message.sender_id == user.id
    return out


@router.get("/contacts", response_model=List[schemas.ContactOut])
async def get_contacts(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    unread: dict[UUID, int] = {}
    for message in _unread_from(db, user):
        unread[message.sender_id] = unread.get(message.sender_id, 0) + 1

    latest: dict[UUID, models.DirectMessage] = {}
    mine = (
        db.query(models.DirectMessage)
        .filter(
            or_(
                models.DirectMessage.sender_id == user.id,
                models.DirectMessage.recipient_id == user.id,
            )
        )
        .order_by(models.DirectMessage.created_at.desc())
    )
    for message in mine:
        other = message.recipient_id if message.sender_id == user.id else message.sender_id
        latest.setdefault(other, message)

    contacts = []
    for other in db.query(models.User).filter(models.User.id != user.id):
        last = latest.get(other.id)
        contacts.append(
            schemas.ContactOut(
                id=other.id,
                name=other.name,
                email=other.email,
                role=other.role,
                designation=other.designation,
                unread_count=unread.get(other.id, 0),
                last_message=last.content if last else None,
                last_message_at=as_utc(last.created_at) if last else None,
            )
        )
    contacts.sort(key=lambda c: (c.name or c.email).lower())
    contacts.sort(key=lambda c: c.last_message_at.timestamp() if c.last_message_at else 0, reverse=True)
    contacts.sort(key=lambda c: c.unread_count > 0, reverse=True)
    return contacts


@router.get("/unread-count")
async def get_unread_total(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return {"count": _unread_from(db, user).count()}


@router.get("/{other_user_id}", response_model=List[schemas.MessageOut])
async def get_conversation(
    other_user_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    messages = (
        db.query(models.DirectMessage)
        .filter(_between(user.id, other_user_id))
        .order_by(models.DirectMessage.created_at)
        .all()
    )
    return [message_row(m, user) for m in messages]


@router.post("/", response_model=schemas.MessageOut)
async def send_message(
    payload: schemas.MessageCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    recipient = rbac.get_or_404(db, models.User, payload.recipient_id, "User")
    message = models.DirectMessage(
        sender_id=user.id,
        recipient_id=recipient.id,
        content=content,
        is_read=False,
    )
    db.add(message)
    notify.notify(
        db,
        recipient.id,
        "direct_message",
        "New message",
        f"{user.display_name}: {content[:PREVIEW_LENGTH]}",
        triggered_by=user.id,
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(message)
    return message_row(message, user)


@router.post("/{other_user_id}/read")
async def mark_conversation_read(
    other_user_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    unread = _unread_from(db, user).filter(models.DirectMessage.sender_id == other_user_id).all()
    for message in unread:
        message.is_read = True
    db.commit()
    return {"updated": len(unread)}
