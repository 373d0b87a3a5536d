from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac

router = APIRouter(prefix="/api/activity", tags=["activity"])


def activity_row(entry: models.ActivityLog) -> schemas.ActivityOut:
    out = schemas.ActivityOut.model_validate(entry)
    out.user_name = entry.user.display_name if entry.user else "Unknown"
    return out


@router.get("/brief/{brief_id}", response_model=List[schemas.ActivityOut])
async def get_brief_timeline(
    brief_id: UUID,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_visible(db, user, brief)
    entries = (
        db.query(models.ActivityLog)
        .filter(models.ActivityLog.brief_id == brief_id)
        .order_by(models.ActivityLog.created_at.desc())
        .limit(limit)
        .all()
    )
    return [activity_row(e) for e in entries]
