from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import as_utc, get_db, utcnow
from ..auth import get_current_user
from .. import models, schemas, rbac

router = APIRouter(prefix="/api/time", tags=["time"])


def elapsed_minutes(started_at: datetime, until: datetime) -> int:
    return round((until - as_utc(started_at)).total_seconds() / 60)


def entry_row(entry: models.TimeEntry) -> schemas.TimeEntryOut:
    out = schemas.TimeEntryOut.model_validate(entry)
    out.user_name = entry.user.display_name if entry.user else "Unknown"
    out.task_title = entry.task.title if entry.task else None
    return out


def _stop(entry: models.TimeEntry, now: datetime) -> None:
    entry.stopped_at = now
    entry.duration_minutes = elapsed_minutes(entry.started_at, now)
    entry.is_running = False


@router.get("/task/{task_id}", response_model=List[schemas.TimeEntryOut])
async def get_time_entries(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    entries = (
        db.query(models.TimeEntry)
        .filter_by(task_id=task_id)
        .order_by(models.TimeEntry.started_at.desc())
        .all()
    )
    return [entry_row(e) for e in entries]


@router.get("/task/{task_id}/total")
async def get_task_time_total(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    now = utcnow()
    total = 0
    for entry in db.query(models.TimeEntry).filter_by(task_id=task_id):
        if entry.is_running:
            total += elapsed_minutes(entry.started_at, now)
        else:
            total += entry.duration_minutes or 0
    return {"task_id": task_id, "total_minutes": total}


@router.get("/active", response_model=Optional[schemas.TimeEntryOut])
async def get_active_timer(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    entry = db.query(models.TimeEntry).filter_by(user_id=user.id, is_running=True).first()
    return entry_row(entry) if entry else None


@router.post("/start", response_model=schemas.TimeEntryOut)
async def start_timer(
    payload: schemas.TimerStart,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.get_or_404(db, models.Task, payload.task_id, "Task")
    now = utcnow()
    for running in db.query(models.TimeEntry).filter_by(user_id=user.id, is_running=True):
        _stop(running, now)
    entry = models.TimeEntry(
        task_id=payload.task_id,
        user_id=user.id,
        started_at=now,
        is_manual=False,
        is_running=True,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry_row(entry)


@router.post("/{entry_id}/stop", response_model=schemas.TimeEntryOut)
async def stop_timer(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    entry = rbac.get_or_404(db, models.TimeEntry, entry_id, "Time entry")
    if entry.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    if entry.is_running:
        _stop(entry, utcnow())
        db.commit()
        db.refresh(entry)
    return entry_row(entry)


@router.post("/manual", response_model=schemas.TimeEntryOut)
async def add_manual_entry(
    payload: schemas.ManualTimeEntry,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.get_or_404(db, models.Task, payload.task_id, "Task")
    now = utcnow()
    entry = models.TimeEntry(
        task_id=payload.task_id,
        user_id=user.id,
        started_at=now,
        stopped_at=now,
        duration_minutes=payload.duration_minutes,
        is_manual=True,
        is_running=False,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry_row(entry)
