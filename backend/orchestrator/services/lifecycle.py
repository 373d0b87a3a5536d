from __future__ import annotations

import logging
from typing import Iterable, Mapping
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..activity import log_activity
from ..database import utcnow
from ..notify import notify

# purpose: brief and task state transitions shared by tasks, deliverables and client requests

logger = logging.getLogger(__name__)

SORT_STEP = 1000


def next_global_priority(db: Session) -> int:
    current = db.query(func.max(models.Brief.global_priority)).scalar()
    return (current or 0) + 1


def next_sort_order(db: Session, assignee_id: UUID) -> int:
    current = (
        db.query(func.max(models.Task.sort_order))
        .filter(models.Task.assignee_id == assignee_id)
        .scalar()
    )
    return (current or 0) + SORT_STEP


def ensure_can_change_status(user: models.User, task: models.Task, new_status: str) -> None:
    brief = task.brief
    allowed = (
        task.assignee_id == user.id
        or user.role == "admin"
        or (user.role == "manager" and brief is not None and brief.assigned_manager_id == user.id)
    )
    if not allowed:
        raise HTTPException(status_code=403, detail="Not authorized")
    if new_status == "done" and user.role not in ("admin", "manager"):
        raise HTTPException(
            status_code=403,
            detail="Employees cannot mark tasks as done. Submit a deliverable for review.",
        )


def sync_brief_review(
    db: Session,
    brief: models.Brief,
    actor_id: UUID,
    overrides: Mapping[UUID, str] | None = None,
) -> bool:
    """Move ``brief`` to review once every task is done.

    ``overrides`` carries statuses decided in this transaction that must win
    over whatever the stored rows say.
    """
    if brief.status in ("archived", "review"):
        return False
    overrides = overrides or {}
    tasks = db.query(models.Task).filter(models.Task.brief_id == brief.id).all()
    if not tasks:
        return False
    if not all(overrides.get(t.id, t.status) == "done" for t in tasks):
        return False
    brief.status = "review"
    logger.info("brief %s moved to review, all %d tasks done", brief.id, len(tasks))
    if brief.assigned_manager_id and brief.assigned_manager_id != actor_id:
        notify(
            db,
            brief.assigned_manager_id,
            "brief_completed",
            "Brief ready for review",
            f"All tasks in {brief.title} are done",
            brief_id=brief.id,
            triggered_by=actor_id,
        )
    return True


def set_task_status(
    db: Session,
    task: models.Task,
    new_status: str,
    actor: models.User,
    *,
    sync_brief: bool = True,
) -> None:
    """Apply a status change with its notification, activity row and roll-up."""
    task.status = new_status
    if new_status == "done":
        task.completed_at = utcnow()
    if task.assigned_by and task.assigned_by != actor.id:
        notify(
            db,
            task.assigned_by,
            "task_status_changed",
            "Task status changed",
            f"{task.title} → {new_status}",
            brief_id=task.brief_id,
            task_id=task.id,
            triggered_by=actor.id,
        )
    log_activity(
        db,
        task.brief_id,
        actor.id,
        "changed_status",
        task_id=task.id,
        details={"status": new_status},
    )
    if sync_brief and task.brief is not None:
        sync_brief_review(db, task.brief, actor.id, {task.id: new_status})


def validate_blockers(db: Session, task: models.Task, blocked_by: Iterable[UUID]) -> list[UUID]:
    """Check existence, self-reference and cycles for a new blocker set."""
    wanted = list(dict.fromkeys(blocked_by))
    if task.id in wanted:
        raise HTTPException(status_code=400, detail="A task cannot block itself")
    if not wanted:
        return []
    found = {
        row[0]
        for row in db.query(models.Task.id).filter(models.Task.id.in_(wanted)).all()
    }
    missing = [str(tid) for tid in wanted if tid not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Task not found: {', '.join(missing)}")

    graph: dict[UUID, list[UUID]] = {}
    for tid, deps in db.query(models.Task.id, models.Task.blocked_by).all():
        graph[tid] = [UUID(str(d)) for d in (deps or [])]
    graph[task.id] = wanted

    # walk the blockers; reaching task.id again means a cycle
    stack = list(wanted)
    seen: set[UUID] = set()
    while stack:
        current = stack.pop()
        if current == task.id:
            raise HTTPException(status_code=400, detail="Task dependencies would create a cycle")
        if current in seen:
            continue
        seen.add(current)
        stack.extend(graph.get(current, []))
    return wanted


def delete_task_rows(db: Session, task_ids: list[UUID]) -> list[str]:
    """Delete tasks and everything hanging off them. Returns attachment blob paths."""
    if not task_ids:
        return []
    comment_ids = select(models.Comment.id).where(
        models.Comment.parent_type == "task", models.Comment.parent_id.in_(task_ids)
    )
    db.query(models.CommentReaction).filter(
        models.CommentReaction.comment_id.in_(comment_ids)
    ).delete(synchronize_session=False)
    db.query(models.Comment).filter(
        models.Comment.parent_type == "task", models.Comment.parent_id.in_(task_ids)
    ).delete(synchronize_session=False)
    attachments = (
        db.query(models.Attachment)
        .filter(models.Attachment.parent_type == "task", models.Attachment.parent_id.in_(task_ids))
        .all()
    )
    paths = [a.storage_path for a in attachments]
    for attachment in attachments:
        db.delete(attachment)
    db.query(models.Deliverable).filter(models.Deliverable.task_id.in_(task_ids)).delete(
        synchronize_session=False
    )
    db.query(models.TimeEntry).filter(models.TimeEntry.task_id.in_(task_ids)).delete(
        synchronize_session=False
    )
    db.query(models.Notification).filter(models.Notification.task_id.in_(task_ids)).delete(
        synchronize_session=False
    )
    db.query(models.JsrClientTask).filter(
        models.JsrClientTask.linked_task_id.in_(task_ids)
    ).update({models.JsrClientTask.linked_task_id: None}, synchronize_session=False)
    db.query(models.Task).filter(models.Task.id.in_(task_ids)).delete(synchronize_session=False)
    return paths


def delete_brief_rows(db: Session, brief_ids: list[UUID]) -> list[str]:
    """Cascade-delete briefs. Returns attachment blob paths to remove after commit."""
    if not brief_ids:
        return []
    task_ids = [
        row[0]
        for row in db.query(models.Task.id).filter(models.Task.brief_id.in_(brief_ids)).all()
    ]
    paths = delete_task_rows(db, task_ids)

    comment_ids = select(models.Comment.id).where(
        models.Comment.parent_type == "brief", models.Comment.parent_id.in_(brief_ids)
    )
    db.query(models.CommentReaction).filter(
        models.CommentReaction.comment_id.in_(comment_ids)
    ).delete(synchronize_session=False)
    db.query(models.Comment).filter(
        models.Comment.parent_type == "brief", models.Comment.parent_id.in_(brief_ids)
    ).delete(synchronize_session=False)
    attachments = (
        db.query(models.Attachment)
        .filter(models.Attachment.parent_type == "brief", models.Attachment.parent_id.in_(brief_ids))
        .all()
    )
    paths.extend(a.storage_path for a in attachments)
    for attachment in attachments:
        db.delete(attachment)

    db.query(models.BriefTeam).filter(models.BriefTeam.brief_id.in_(brief_ids)).delete(
        synchronize_session=False
    )
    db.query(models.ActivityLog).filter(models.ActivityLog.brief_id.in_(brief_ids)).delete(
        synchronize_session=False
    )
    db.query(models.Notification).filter(models.Notification.brief_id.in_(brief_ids)).delete(
        synchronize_session=False
    )
    db.query(models.CommentReadReceipt).filter(
        models.CommentReadReceipt.brief_id.in_(brief_ids)
    ).delete(synchronize_session=False)
    db.query(models.Brief).filter(models.Brief.id.in_(brief_ids)).delete(synchronize_session=False)
    return paths


# nullable columns that keep their row and just lose the user reference
_USER_REFERENCES = (
    models.Task.assigned_by,
    models.Brief.assigned_manager_id,
    models.Brief.created_by,
    models.Brief.archived_by,
    models.Deliverable.reviewed_by,
    models.Comment.pinned_by,
    models.Team.lead_id,
    models.Brand.created_by,
    models.BriefTemplate.created_by,
    models.Invite.created_by,
    models.JsrLink.created_by,
    models.Notification.triggered_by,
    models.ActivityLog.user_id,
)


def remove_user_rows(db: Session, user: models.User, successor: models.User) -> list[str]:
    """Clear every reference to ``user`` ahead of deleting it.

    Open work moves to ``successor``. Rows the user authored are removed and
    nullable references are cleared. Returns attachment blob paths to remove
    after commit.
    """
    tasks = (
        db.query(models.Task)
        .filter(models.Task.assignee_id == user.id)
        .order_by(models.Task.sort_order)
        .all()
    )
    for task in tasks:
        task.assignee_id = successor.id
        task.sort_order = next_sort_order(db, successor.id)
        db.flush()
        log_activity(
            db,
            task.brief_id,
            successor.id,
            "reassigned_task",
            task_id=task.id,
            details={"to": str(successor.id), "reason": "user_deleted"},
        )
    if tasks:
        logger.info("moved %d tasks from deleted user %s to %s", len(tasks), user.id, successor.id)

    own_comments = select(models.Comment.id).where(models.Comment.user_id == user.id)
    db.query(models.CommentReaction).filter(
        or_(
            models.CommentReaction.user_id == user.id,
            models.CommentReaction.comment_id.in_(own_comments),
        )
    ).delete(synchronize_session=False)
    db.query(models.Comment).filter(models.Comment.user_id == user.id).delete(
        synchronize_session=False
    )
    db.query(models.CommentReadReceipt).filter_by(user_id=user.id).delete(synchronize_session=False)

    attachments = db.query(models.Attachment).filter_by(uploaded_by=user.id).all()
    paths = [a.storage_path for a in attachments]
    for attachment in attachments:
        db.delete(attachment)

    db.query(models.Deliverable).filter_by(submitted_by=user.id).delete(synchronize_session=False)
    db.query(models.TimeEntry).filter_by(user_id=user.id).delete(synchronize_session=False)
    db.query(models.DirectMessage).filter(
        or_(models.DirectMessage.sender_id == user.id, models.DirectMessage.recipient_id == user.id)
    ).delete(synchronize_session=False)
    db.query(models.BrandManager).filter_by(manager_id=user.id).delete(synchronize_session=False)

    for column in _USER_REFERENCES:
        db.query(column.class_).filter(column == user.id).update(
            {column: None}, synchronize_session=False
        )
    return paths


def progress_of(tasks: list[models.Task]) -> tuple[int, int, int]:
    """Return ``(task_count, done_count, percent_done)``."""
    total = len(tasks)
    done = sum(1 for t in tasks if t.status == "done")
    return total, done, round(done * 100 / total) if total else 0


def brief_summary(brief: models.Brief) -> schemas.BriefSummary:
    total, done, progress = progress_of(brief.tasks)
    return schemas.BriefSummary(
        **schemas.BriefOut.model_validate(brief).model_dump(),
        manager_name=brief.assigned_manager.display_name if brief.assigned_manager else None,
        team_names=[link.team.name for link in brief.team_links if link.team],
        task_count=total,
        done_count=done,
        progress=progress,
    )


def notify_assigned(db: Session, task: models.Task, assignee_id: UUID, actor_id: UUID) -> None:
    notify(
        db,
        assignee_id,
        "task_assigned",
        "Task assigned",
        f"You were assigned: {task.title}",
        brief_id=task.brief_id,
        task_id=task.id,
        triggered_by=actor_id,
    )


def notify_unassigned(
    db: Session, task: models.Task, old_assignee_id: UUID, actor_id: UUID, title: str
) -> None:
    notify(
        db,
        old_assignee_id,
        "task_status_changed",
        title,
        f'Task "{task.title}" was reassigned',
        brief_id=task.brief_id,
        task_id=task.id,
        triggered_by=actor_id,
    )


def create_task(
    db: Session, brief: models.Brief, actor: models.User, assignee_id: UUID, **fields
) -> models.Task:
    """Insert a pending task at the bottom of the assignee's queue."""
    task = models.Task(
        brief_id=brief.id,
        assignee_id=assignee_id,
        assigned_by=actor.id,
        status="pending",
        sort_order=next_sort_order(db, assignee_id),
        **fields,
    )
    db.add(task)
    db.flush()
    notify_assigned(db, task, assignee_id, actor.id)
    log_activity(
        db,
        brief.id,
        actor.id,
        "created_task",
        task_id=task.id,
        details={"title": task.title, "assignee_id": assignee_id},
    )
    return task
