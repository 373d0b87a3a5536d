from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..database import as_utc, utcnow
from ..notify import notify

# purpose: hourly deadline sweep that nudges assignees, brief managers and admins

logger = logging.getLogger(__name__)

TASK_REMINDER_WINDOW = timedelta(hours=int(os.getenv("TASK_REMINDER_WINDOW_HOURS", "12")))
OVERDUE_REMINDER_WINDOW = timedelta(hours=int(os.getenv("OVERDUE_REMINDER_WINDOW_HOURS", "24")))
DUE_SOON = timedelta(hours=24)


def _recently_reminded(
    db: Session,
    recipient_id: UUID,
    since: datetime,
    *,
    task_id: UUID | None = None,
    brief_id: UUID | None = None,
) -> bool:
    query = db.query(models.Notification.id).filter(
        models.Notification.recipient_id == recipient_id,
        models.Notification.type == "deadline_reminder",
        models.Notification.created_at > since,
    )
    if task_id is not None:
        query = query.filter(models.Notification.task_id == task_id)
    else:
        query = query.filter(
            models.Notification.brief_id == brief_id,
            models.Notification.task_id.is_(None),
        )
    return query.first() is not None


def check_deadlines(db: Session, now: datetime | None = None) -> int:
    """Stage deadline reminders and return how many were created.

    The caller commits.
    """
    now = as_utc(now) or utcnow()
    created = 0

    tasks = (
        db.query(models.Task)
        .filter(models.Task.deadline.isnot(None), models.Task.status != "done")
        .all()
    )
    for task in tasks:
        deadline = as_utc(task.deadline)
        if now < deadline <= now + DUE_SOON:
            if not _recently_reminded(
                db, task.assignee_id, now - TASK_REMINDER_WINDOW, task_id=task.id
            ):
                reminder = notify(
                    db,
                    task.assignee_id,
                    "deadline_reminder",
                    "Task deadline approaching",
                    f'"{task.title}" is due in less than 24 hours',
                    brief_id=task.brief_id,
                    task_id=task.id,
                    triggered_by=task.assigned_by,
                )
                reminder.created_at = now
                db.flush()
                created += 1
        if deadline < now:
            manager_id = task.brief.assigned_manager_id if task.brief else None
            if manager_id and not _recently_reminded(
                db, manager_id, now - OVERDUE_REMINDER_WINDOW, task_id=task.id
            ):
                reminder = notify(
                    db,
                    manager_id,
                    "deadline_reminder",
                    "Task overdue",
                    f'"{task.title}" is past its deadline',
                    brief_id=task.brief_id,
                    task_id=task.id,
                    triggered_by=task.assignee_id,
                )
                reminder.created_at = now
                db.flush()
                created += 1

    admin_ids = [row[0] for row in db.query(models.User.id).filter(models.User.role == "admin")]
    briefs = (
        db.query(models.Brief)
        .filter(
            models.Brief.deadline.isnot(None),
            models.Brief.status.notin_(("completed", "archived")),
        )
        .all()
    )
    for brief in briefs:
        if as_utc(brief.deadline) >= now:
            continue
        for admin_id in admin_ids:
            if _recently_reminded(db, admin_id, now - OVERDUE_REMINDER_WINDOW, brief_id=brief.id):
                continue
            reminder = notify(
                db,
                admin_id,
                "deadline_reminder",
                "Brief overdue",
                f'Brief "{brief.title}" has passed its deadline',
                brief_id=brief.id,
                triggered_by=brief.created_by,
            )
            reminder.created_at = now
            db.flush()
            created += 1

    logger.info("deadline sweep at %s staged %d reminders", now.isoformat(), created)
    return created
