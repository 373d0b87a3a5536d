import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, notify, storage
from ..activity import log_activity
from ..services import lifecycle
from .users import task_with_brief, user_workload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

UNASSIGNED_GROUP = "Unassigned"


def _task_and_brief(db: Session, task_id: UUID) -> tuple[models.Task, models.Brief]:
    task = rbac.get_or_404(db, models.Task, task_id, "Task")
    return task, task.brief


@router.get("/brief/{brief_id}")
async def list_tasks_for_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_visible(db, user, brief)
    brief_teams = {link.team_id: link.team for link in brief.team_links}
    memberships: dict[UUID, UUID] = {}
    if brief_teams:
        rows = db.query(models.UserTeam).filter(models.UserTeam.team_id.in_(list(brief_teams))).all()
        for membership in rows:
            memberships.setdefault(membership.user_id, membership.team_id)

    tasks = sorted(brief.tasks, key=lambda t: t.sort_order)
    by_team: dict[str, list] = {}
    for task in tasks:
        team_id = memberships.get(task.assignee_id)
        team = brief_teams.get(team_id) if team_id else None
        name = team.name if team else UNASSIGNED_GROUP
        by_team.setdefault(name, []).append(task_with_brief(task))
    return {"tasks": [task_with_brief(t) for t in tasks], "by_team": by_team}


@router.get("/user/{user_id}", response_model=List[schemas.TaskWithBrief])
async def list_tasks_for_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return user_workload(db, user_id)


@router.post("/", response_model=schemas.TaskOut)
async def create_task(
    payload: schemas.TaskCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, payload.brief_id, "Brief")
    rbac.ensure_brief_manager(user, brief, "Not authorized to create tasks")
    rbac.get_or_404(db, models.User, payload.assignee_id, "User")
    fields = payload.model_dump(exclude={"brief_id", "assignee_id"})
    task = lifecycle.create_task(db, brief, user, payload.assignee_id, **fields)
    db.commit()
    await notify.publish_pending(db)
    db.refresh(task)
    return task


@router.post("/reorder", status_code=204)
async def reorder_tasks(
    payload: schemas.TaskReorder,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    is_self = payload.user_id == user.id
    if not is_self and user.role not in ("admin", "manager"):
        raise HTTPException(status_code=403, detail="Not authorized to reorder")
    for index, task_id in enumerate(payload.task_ids):
        task = rbac.get_or_404(db, models.Task, task_id, "Task")
        if task.assignee_id != payload.user_id:
            raise HTTPException(status_code=400, detail="Task is not assigned to this user")
        task.sort_order = (index + 1) * lifecycle.SORT_STEP
    if not is_self:
        notify.notify(
            db,
            payload.user_id,
            "priority_changed",
            "Task priorities updated",
            "Your task priorities have been reordered",
            triggered_by=user.id,
        )
    db.commit()
    await notify.publish_pending(db)
    return Response(status_code=204)


@router.post("/bulk-status")
async def bulk_update_status(
    payload: schemas.BulkStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    updated: list[UUID] = []
    briefs: dict[UUID, models.Brief] = {}
    for task_id in dict.fromkeys(payload.task_ids):
        task = db.get(models.Task, task_id)
        if task is None:
            continue
        try:
            lifecycle.ensure_can_change_status(user, task, payload.status)
        except HTTPException:
            continue
        lifecycle.set_task_status(db, task, payload.status, user, sync_brief=False)
        updated.append(task.id)
        briefs[task.brief_id] = task.brief
    db.flush()
    for brief in briefs.values():
        lifecycle.sync_brief_review(db, brief, user.id)
    db.commit()
    await notify.publish_pending(db)
    return {"updated": updated, "skipped": len(payload.task_ids) - len(updated)}


@router.get("/{task_id}")
async def get_task_detail(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, brief = _task_and_brief(db, task_id)
    rbac.ensure_brief_visible(db, user, brief)
    deliverables = (
        db.query(models.Deliverable)
        .filter_by(task_id=task.id)
        .order_by(models.Deliverable.submitted_at.desc())
        .all()
    )
    return {
        "task": task_with_brief(task),
        "brief": schemas.BriefOut.model_validate(brief),
        "assignee": schemas.UserOut.model_validate(task.assignee) if task.assignee else None,
        "assigner": schemas.UserOut.model_validate(task.assigner) if task.assigner else None,
        "deliverables": [schemas.DeliverableOut.model_validate(d) for d in deliverables],
    }


@router.patch("/{task_id}", response_model=schemas.TaskOut)
async def update_task(
    task_id: UUID,
    payload: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, brief = _task_and_brief(db, task_id)
    rbac.ensure_brief_manager(user, brief, "Only admins or assigned managers can edit tasks")
    updates = payload.model_dump(exclude_unset=True)
    clear_deadline = updates.pop("clear_deadline", False)
    if clear_deadline:
        updates["deadline"] = None
    new_assignee = updates.pop("assignee_id", None)
    if new_assignee is not None and new_assignee != task.assignee_id:
        rbac.get_or_404(db, models.User, new_assignee, "User")
        old_assignee = task.assignee_id
        updates["assignee_id"] = new_assignee
        updates["sort_order"] = lifecycle.next_sort_order(db, new_assignee)
    for k, v in updates.items():
        setattr(task, k, v)
    if "assignee_id" in updates:
        lifecycle.notify_unassigned(db, task, old_assignee, user.id, "Task reassigned")
        lifecycle.notify_assigned(db, task, new_assignee, user.id)
    if updates:
        log_activity(
            db,
            brief.id,
            user.id,
            "updated_task",
            task_id=task.id,
            details={"fields": sorted(updates)},
        )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(task)
    return task


@router.put("/{task_id}/status", response_model=schemas.TaskOut)
async def update_task_status(
    task_id: UUID,
    payload: schemas.TaskStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, _ = _task_and_brief(db, task_id)
    lifecycle.ensure_can_change_status(user, task, payload.status)
    lifecycle.set_task_status(db, task, payload.status, user)
    db.commit()
    await notify.publish_pending(db)
    db.refresh(task)
    return task


@router.put("/{task_id}/assignee", response_model=schemas.TaskOut)
async def reassign_task(
    task_id: UUID,
    payload: schemas.TaskReassign,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, brief = _task_and_brief(db, task_id)
    rbac.ensure_brief_manager(user, brief)
    rbac.get_or_404(db, models.User, payload.assignee_id, "User")
    old_assignee = task.assignee_id
    task.assignee_id = payload.assignee_id
    if old_assignee != payload.assignee_id:
        task.sort_order = lifecycle.next_sort_order(db, payload.assignee_id)
        lifecycle.notify_unassigned(db, task, old_assignee, user.id, "Task removed")
    lifecycle.notify_assigned(db, task, payload.assignee_id, user.id)
    log_activity(
        db,
        brief.id,
        user.id,
        "reassigned_task",
        task_id=task.id,
        details={"from": old_assignee, "to": payload.assignee_id},
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(task)
    return task


@router.put("/{task_id}/blockers", response_model=schemas.TaskOut)
async def update_task_blockers(
    task_id: UUID,
    payload: schemas.BlockersUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, brief = _task_and_brief(db, task_id)
    rbac.ensure_brief_manager(user, brief)
    blockers = lifecycle.validate_blockers(db, task, payload.blocked_by)
    task.blocked_by = [str(b) for b in blockers]
    db.commit()
    db.refresh(task)
    return task


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    task, brief = _task_and_brief(db, task_id)
    rbac.ensure_brief_manager(user, brief)
    log_activity(
        db, brief.id, user.id, "deleted_task", task_id=task.id, details={"title": task.title}
    )
    blob_paths = lifecycle.delete_task_rows(db, [task_id])
    db.commit()
    for path in blob_paths:
        storage.delete_binary_payload(path)
    return Response(status_code=204)
