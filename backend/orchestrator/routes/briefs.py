import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..auth import get_current_user
from .. import models, schemas, rbac, notify, storage
from ..activity import log_activity
from ..services import lifecycle
from .users import task_with_brief

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/briefs", tags=["briefs"])


def _team_ids(db: Session, brief_id: UUID) -> list[UUID]:
    return [row[0] for row in db.query(models.BriefTeam.team_id).filter_by(brief_id=brief_id)]


@router.get("/", response_model=List[schemas.BriefSummary])
async def list_briefs(
    status: Optional[schemas.BriefStatus] = Query(None),
    manager_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = rbac.visible_briefs(db, user)
    if status:
        query = query.filter(models.Brief.status == status)
    else:
        query = query.filter(models.Brief.status != "archived")
    if manager_id:
        query = query.filter(models.Brief.assigned_manager_id == manager_id)
    briefs = query.order_by(models.Brief.global_priority).all()
    return [lifecycle.brief_summary(b) for b in briefs]


@router.post("/", response_model=schemas.BriefOut)
async def create_brief(
    payload: schemas.BriefCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user, "Only admins and managers can create briefs")
    if payload.brand_id:
        rbac.get_or_404(db, models.Brand, payload.brand_id, "Brand")
    manager_id = payload.assigned_manager_id
    if manager_id is None and user.role == "manager":
        manager_id = user.id
    brief = models.Brief(
        title=payload.title,
        description=payload.description,
        status="draft",
        assigned_manager_id=manager_id,
        created_by=user.id,
        brand_id=payload.brand_id,
        deadline=payload.deadline,
        global_priority=lifecycle.next_global_priority(db),
    )
    db.add(brief)
    db.flush()
    log_activity(db, brief.id, user.id, "created_brief", details={"title": brief.title})
    if manager_id and manager_id != user.id:
        notify.notify(
            db,
            manager_id,
            "brief_assigned",
            "Brief assigned",
            f"You have been assigned to {brief.title}",
            brief_id=brief.id,
            triggered_by=user.id,
        )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(brief)
    return brief


@router.get("/archived")
async def get_archived_briefs(
    db: Session = Depends(get_db), user: models.User = Depends(get_current_user)
):
    rbac.require_staff(user)
    briefs = (
        db.query(models.Brief)
        .filter(models.Brief.status == "archived")
        .order_by(models.Brief.archived_at.desc())
        .all()
    )
    return [
        {
            **lifecycle.brief_summary(b).model_dump(),
            "archived_by_name": b.archiver.display_name if b.archiver else None,
        }
        for b in briefs
    ]


@router.get("/{brief_id}")
async def get_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_visible(db, user, brief)
    tasks = sorted(brief.tasks, key=lambda t: t.sort_order)
    return {
        **lifecycle.brief_summary(brief).model_dump(),
        "manager": schemas.UserOut.model_validate(brief.assigned_manager)
        if brief.assigned_manager
        else None,
        "teams": [schemas.TeamOut.model_validate(link.team) for link in brief.team_links if link.team],
        "tasks": [task_with_brief(t) for t in tasks],
    }


@router.patch("/{brief_id}", response_model=schemas.BriefOut)
async def update_brief(
    brief_id: UUID,
    payload: schemas.BriefUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    if user.role == "employee":
        raise HTTPException(status_code=403, detail="Employees cannot update briefs")
    if user.role == "manager" and brief.assigned_manager_id != user.id:
        raise HTTPException(status_code=403, detail="Not assigned to this brief")
    updates = payload.model_dump(exclude_unset=True)
    new_status = updates.get("status")
    if new_status and new_status != brief.status and "archived" in (new_status, brief.status):
        raise HTTPException(
            status_code=400,
            detail="Use the archive or restore endpoint to change an archived brief's status",
        )
    if updates.get("brand_id"):
        rbac.get_or_404(db, models.Brand, updates["brand_id"], "Brand")
    if updates.get("assigned_manager_id"):
        rbac.get_or_404(db, models.User, updates["assigned_manager_id"], "User")
    for k, v in updates.items():
        setattr(brief, k, v)
    if updates:
        log_activity(db, brief.id, user.id, "updated_brief", details=updates)
    db.commit()
    db.refresh(brief)
    return brief


@router.put("/{brief_id}/manager", response_model=schemas.BriefOut)
async def assign_manager_to_brief(
    brief_id: UUID,
    payload: schemas.ManagerAssign,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can assign managers")
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    manager = rbac.get_or_404(db, models.User, payload.manager_id, "User")
    brief.assigned_manager_id = manager.id
    log_activity(db, brief.id, user.id, "assigned_manager", details={"manager_id": manager.id})
    notify.notify(
        db,
        manager.id,
        "brief_assigned",
        "Brief assigned",
        f"You have been assigned to {brief.title}",
        brief_id=brief.id,
        triggered_by=user.id,
    )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(brief)
    return brief


@router.get("/{brief_id}/teams", response_model=List[schemas.TeamOut])
async def get_teams_for_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    return [link.team for link in brief.team_links if link.team]


@router.put("/{brief_id}/teams", response_model=List[schemas.TeamOut])
async def assign_teams_to_brief(
    brief_id: UUID,
    payload: schemas.TeamsAssign,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_manager(user, brief)
    team_ids = list(dict.fromkeys(payload.team_ids))
    teams = [rbac.get_or_404(db, models.Team, tid, "Team") for tid in team_ids]
    db.query(models.BriefTeam).filter_by(brief_id=brief_id).delete(synchronize_session=False)
    for team in teams:
        db.add(models.BriefTeam(brief_id=brief_id, team_id=team.id))
    for team in teams:
        if team.lead_id:
            notify.notify(
                db,
                team.lead_id,
                "team_added",
                "Team added to brief",
                f"Your team {team.name} was added to {brief.title}",
                brief_id=brief.id,
                triggered_by=user.id,
            )
    log_activity(db, brief.id, user.id, "assigned_teams", details={"team_ids": team_ids})
    db.commit()
    await notify.publish_pending(db)
    return teams


@router.delete("/{brief_id}/teams/{team_id}", status_code=204)
async def remove_team_from_brief(
    brief_id: UUID,
    team_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_manager(user, brief)
    removed = (
        db.query(models.BriefTeam)
        .filter_by(brief_id=brief_id, team_id=team_id)
        .delete(synchronize_session=False)
    )
    if removed:
        log_activity(db, brief.id, user.id, "removed_team", details={"team_id": team_id})
    db.commit()
    return Response(status_code=204)


@router.get("/{brief_id}/graph")
async def get_brief_graph_data(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    tasks = brief.tasks
    teams = []
    for link in brief.team_links:
        if link.team is None:
            continue
        members = []
        for membership in link.team.members:
            member_tasks = [t for t in tasks if t.assignee_id == membership.user_id]
            minutes = sum(t.duration_minutes or 0 for t in member_tasks)
            members.append(
                {
                    "user": schemas.UserOut.model_validate(membership.user),
                    "task_count": len(member_tasks),
                    "total_hours": minutes / 60,
                }
            )
        teams.append({"team": schemas.TeamOut.model_validate(link.team), "members": members})
    return {"brief": schemas.BriefOut.model_validate(brief), "teams": teams}


@router.post("/{brief_id}/archive", response_model=schemas.BriefOut)
async def archive_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    rbac.ensure_brief_manager(user, brief)
    brief.status = "archived"
    brief.archived_at = utcnow()
    brief.archived_by = user.id
    log_activity(db, brief.id, user.id, "archived_brief")
    db.commit()
    db.refresh(brief)
    return brief


@router.post("/{brief_id}/restore", response_model=schemas.BriefOut)
async def restore_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can restore briefs")
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    brief.status = "draft"
    brief.archived_at = None
    brief.archived_by = None
    log_activity(db, brief.id, user.id, "restored_brief")
    db.commit()
    db.refresh(brief)
    return brief


@router.delete("/{brief_id}", status_code=204)
async def delete_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can delete briefs")
    rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    blob_paths = lifecycle.delete_brief_rows(db, [brief_id])
    db.commit()
    for path in blob_paths:
        storage.delete_binary_payload(path)
    logger.info("brief %s deleted by %s", brief_id, user.id)
    return Response(status_code=204)
