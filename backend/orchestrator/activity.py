from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from . import models


def log_activity(
    db: Session,
    brief_id: UUID,
    user_id: UUID,
    action: str,
    task_id: UUID | None = None,
    details: dict | None = None,
) -> models.ActivityLog:
    """Append one activity row to the caller's transaction."""
    entry = models.ActivityLog(
        brief_id=brief_id,
        user_id=user_id,
        action=action,
        task_id=task_id,
        details=jsonable_encoder(details or {}),
    )
    db.add(entry)
    return entry
