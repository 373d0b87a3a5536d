"""Client share links: token issue, the public brand projection and client requests."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..activity import log_activity
from ..database import as_utc
from ..notify import notify_many
from . import lifecycle

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 24
RECENT_ACTIVITY_LIMIT = 6
CLIENT_REQUESTS_GROUP = "Client Requests"

# client request status -> internal task status
CLIENT_TO_TASK_STATUS = {
    "accepted": "pending",
    "in_progress": "in-progress",
    "completed": "done",
}

_ACTIVITY_LABELS = {
    "reassigned_task": "Task reassigned",
    "updated_task": "Task updated",
    "deleted_task": "Task removed",
}


def generate_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def active_link(db: Session, token: str) -> models.JsrLink | None:
    link = db.query(models.JsrLink).filter(models.JsrLink.token == token).first()
    if link is None or not link.is_active:
        return None
    return link


def _latest(values) -> datetime | None:
    present = [as_utc(v) for v in values if v is not None]
    return max(present) if present else None


def _activity_label(entry: models.ActivityLog) -> str:
    details = entry.details or {}
    if entry.action == "changed_status" and "status" in details:
        return f"Status → {details['status']}"
    if entry.action == "created_task":
        title = details.get("title")
        return f"Task created: {title}" if title else "Task created"
    return _ACTIVITY_LABELS.get(entry.action, entry.action)


def client_task_row(task: models.JsrClientTask) -> dict:
    linked = task.linked_task
    return {
        "id": task.id,
        "jsr_link_id": task.jsr_link_id,
        "brand_id": task.brand_id,
        "title": task.title,
        "description": task.description,
        "client_name": task.client_name,
        "proposed_deadline": task.proposed_deadline,
        "final_deadline": task.final_deadline,
        "status": task.status,
        "linked_task_id": task.linked_task_id,
        "created_at": task.created_at,
        "assignee_id": linked.assignee_id if linked else None,
        "assignee_name": linked.assignee.display_name if linked and linked.assignee else None,
    }


def build_share_view(db: Session, link: models.JsrLink) -> dict | None:
    """Anonymised status projection of one brand for its share link."""
    brand = db.get(models.Brand, link.brand_id)
    if brand is None:
        return None

    briefs = (
        db.query(models.Brief)
        .filter(models.Brief.brand_id == brand.id, models.Brief.status != "archived")
        .order_by(models.Brief.global_priority)
        .all()
    )
    briefs_by_id = {b.id: b for b in briefs}
    internal_tasks = (
        db.query(models.Task)
        .filter(models.Task.brief_id.in_(list(briefs_by_id)))
        .order_by(models.Task.sort_order)
        .all()
        if briefs_by_id
        else []
    )

    internal_deadline = _latest(t.deadline for t in internal_tasks)
    counts = {"pending": 0, "in-progress": 0, "review": 0, "done": 0}
    for task in internal_tasks:
        counts[task.status] = counts.get(task.status, 0) + 1

    groups: dict[UUID, dict] = {}
    task_list = []
    for task in internal_tasks:
        brief = briefs_by_id[task.brief_id]
        group = groups.setdefault(
            brief.id,
            {"brief_title": brief.title, "brief_status": brief.status, "tasks": []},
        )
        group["tasks"].append({"id": task.id, "title": task.title, "status": task.status})
        task_list.append(
            {"id": task.id, "title": task.title, "status": task.status, "brief_title": brief.title}
        )
    tasks_by_brief = list(groups.values())

    activity = (
        db.query(models.ActivityLog)
        .filter(models.ActivityLog.brief_id.in_(list(briefs_by_id)))
        .order_by(models.ActivityLog.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
        if briefs_by_id
        else []
    )
    recent_activity = [
        {
            "label": _activity_label(entry),
            "brief_title": briefs_by_id[entry.brief_id].title,
            "timestamp": entry.created_at,
        }
        for entry in activity
    ]

    client_tasks = (
        db.query(models.JsrClientTask)
        .filter(models.JsrClientTask.brand_id == brand.id)
        .order_by(models.JsrClientTask.created_at)
        .all()
    )
    unlinked_active = [
        t for t in client_tasks if t.linked_task_id is None and t.status in CLIENT_TO_TASK_STATUS
    ]
    for client_task in unlinked_active:
        counts[CLIENT_TO_TASK_STATUS[client_task.status]] += 1
    if unlinked_active:
        tasks_by_brief.append(
            {
                "brief_title": CLIENT_REQUESTS_GROUP,
                "brief_status": "active",
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "status": CLIENT_TO_TASK_STATUS[t.status],
                    }
                    for t in unlinked_active
                ],
            }
        )

    client_deadline = _latest(t.final_deadline for t in client_tasks)
    return {
        "brand": {"name": brand.name, "color": brand.color, "description": brand.description},
        "internal_summary": {
            "total": len(internal_tasks) + len(unlinked_active),
            "pending": counts["pending"],
            "in_progress": counts["in-progress"],
            "review": counts["review"],
            "done": counts["done"],
            "internal_deadline": internal_deadline,
        },
        "tasks_by_brief": tasks_by_brief,
        "task_list": task_list,
        "recent_activity": recent_activity,
        "last_updated": activity[0].created_at if activity else None,
        "client_tasks": [schemas.PublicClientTask.model_validate(t) for t in client_tasks],
        "client_tasks_deadline": client_deadline,
        "overall_deadline": _latest([internal_deadline, client_deadline]),
    }


def submit_client_task(
    db: Session,
    link: models.JsrLink,
    *,
    title: str,
    description: str | None = None,
    proposed_deadline: datetime | None = None,
    client_name: str | None = None,
) -> models.JsrClientTask:
    client_task = models.JsrClientTask(
        jsr_link_id=link.id,
        brand_id=link.brand_id,
        title=title,
        description=description,
        proposed_deadline=proposed_deadline,
        client_name=client_name,
        status="pending_review",
    )
    db.add(client_task)

    brand = db.get(models.Brand, link.brand_id)
    brand_name = brand.name if brand else "Unknown"
    admin_ids = [row[0] for row in db.query(models.User.id).filter(models.User.role == "admin")]
    manager_ids = [
        row[0]
        for row in db.query(models.BrandManager.manager_id).filter(
            models.BrandManager.brand_id == link.brand_id
        )
    ]
    requester = f" ({client_name})" if client_name else ""
    notify_many(
        db,
        admin_ids + manager_ids,
        "jsr_task_added",
        "New client request",
        f'Client{requester} added a task "{title}" for {brand_name}',
        triggered_by=link.created_by,
    )
    logger.info("client request %r submitted for brand %s", title, link.brand_id)
    return client_task


def _client_requests_brief(
    db: Session, client_task: models.JsrClientTask, actor: models.User
) -> models.Brief:
    brand = db.get(models.Brand, client_task.brand_id)
    brand_name = brand.name if brand else "Unknown"
    title = f"{brand_name} - Client Requests"
    brief = (
        db.query(models.Brief)
        .filter(
            models.Brief.brand_id == client_task.brand_id,
            models.Brief.title == title,
            models.Brief.status != "archived",
        )
        .first()
    )
    if brief:
        return brief
    brief = models.Brief(
        title=title,
        description=f"Consolidated brief for client requests from {brand_name}",
        status="active",
        created_by=actor.id,
        assigned_manager_id=actor.id,
        global_priority=lifecycle.next_global_priority(db),
        deadline=client_task.final_deadline,
        brand_id=client_task.brand_id,
    )
    db.add(brief)
    db.flush()
    log_activity(db, brief.id, actor.id, "created_brief", details={"title": title})
    return brief


def change_client_task_status(
    db: Session, client_task: models.JsrClientTask, status: str, actor: models.User
) -> None:
    was_linked = client_task.linked_task_id is not None
    client_task.status = status

    if status == "accepted" and not was_linked:
        brief = _client_requests_brief(db, client_task, actor)
        task = models.Task(
            brief_id=brief.id,
            title=client_task.title,
            description=client_task.description,
            assignee_id=actor.id,
            assigned_by=actor.id,
            status="pending",
            sort_order=lifecycle.next_sort_order(db, actor.id),
            duration="2 Hours",
            duration_minutes=120,
            deadline=client_task.final_deadline,
        )
        db.add(task)
        db.flush()
        client_task.linked_task_id = task.id
        log_activity(
            db,
            brief.id,
            actor.id,
            "created_task",
            task_id=task.id,
            details={"title": task.title, "source": "client_request"},
        )
        return

    if was_linked and status in CLIENT_TO_TASK_STATUS:
        task = db.get(models.Task, client_task.linked_task_id)
        if task is not None:
            lifecycle.set_task_status(db, task, CLIENT_TO_TASK_STATUS[status], actor)


def reassign_client_task(
    db: Session, client_task: models.JsrClientTask, assignee: models.User, actor: models.User
) -> models.Task:
    if client_task.linked_task_id is None:
        raise HTTPException(status_code=400, detail="Accept the client request before assigning it")
    task = db.get(models.Task, client_task.linked_task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    old_assignee_id = task.assignee_id
    task.assignee_id = assignee.id
    task.sort_order = lifecycle.next_sort_order(db, assignee.id)
    if old_assignee_id != assignee.id:
        lifecycle.notify_unassigned(db, task, old_assignee_id, actor.id, "Task removed")
    lifecycle.notify_assigned(db, task, assignee.id, actor.id)
    log_activity(
        db,
        task.brief_id,
        actor.id,
        "reassigned_task",
        task_id=task.id,
        details={"to": str(assignee.id)},
    )
    return task
