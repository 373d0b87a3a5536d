import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Iterable
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from . import models, pubsub, schemas

logger = logging.getLogger(__name__)

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")

EMAIL_OUTBOX: list[tuple[str, str, str]] = []

_PENDING_KEY = "pending_notifications"


def send_email(to_email: str, subject: str, message: str):
    if os.getenv("TESTING") == "1":
        EMAIL_OUTBOX.append((to_email, subject, message))
        return
    server = os.getenv("SMTP_SERVER")
    if not server:
        return
    from_addr = os.getenv("EMAIL_FROM", "noreply@example.com")
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_email
    msg.set_content(message)
    with smtplib.SMTP(server) as s:
        s.send_message(msg)


def notify(
    db: Session,
    recipient_id: UUID,
    type: str,
    title: str,
    message: str,
    *,
    brief_id: UUID | None = None,
    task_id: UUID | None = None,
    triggered_by: UUID | None = None,
) -> models.Notification:
    """Stage a notification row in the caller's transaction."""
    if type not in models.NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")
    notification = models.Notification(
        recipient_id=recipient_id,
        type=type,
        title=title,
        message=message,
        brief_id=brief_id,
        task_id=task_id,
        triggered_by=triggered_by,
    )
    db.add(notification)
    db.info.setdefault(_PENDING_KEY, []).append(notification)
    return notification


def notify_many(
    db: Session,
    recipient_ids: Iterable[UUID | None],
    type: str,
    title: str,
    message: str,
    *,
    skip: UUID | None = None,
    **refs,
) -> list[models.Notification]:
    """Fan a notification out to each distinct recipient once.

    ``None`` entries and the ``skip`` user (normally the actor) are dropped.
    """
    recipients: dict[UUID, None] = {}
    for rid in recipient_ids:
        if rid is None or rid == skip:
            continue
        recipients.setdefault(rid, None)
    return [notify(db, rid, type, title, message, **refs) for rid in recipients]


def discard_pending(db: Session) -> None:
    db.info.pop(_PENDING_KEY, None)


async def publish_pending(db: Session) -> None:
    """Push notifications committed in this session to their recipients' channels."""
    pending = db.info.pop(_PENDING_KEY, [])
    for notification in pending:
        payload = jsonable_encoder(schemas.NotificationOut.model_validate(notification))
        try:
            await pubsub.publish_user_event(
                str(notification.recipient_id),
                {"type": "notification_created", "data": payload},
            )
        except RedisError:
            logger.warning(
                "could not publish notification %s to user %s",
                notification.id,
                notification.recipient_id,
            )


async def publish_read_state(recipient_id: UUID, notification_ids: list[UUID]) -> None:
    """Tell the recipient's other sessions which notifications are now read."""
    if not notification_ids:
        return
    try:
        await pubsub.publish_user_event(
            str(recipient_id),
            {"type": "notification_read", "data": {"ids": [str(i) for i in notification_ids]}},
        )
    except RedisError:
        logger.warning("could not publish read state to user %s", recipient_id)
