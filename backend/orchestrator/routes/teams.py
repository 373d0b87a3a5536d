from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac

router = APIRouter(prefix="/api/teams", tags=["teams"])

INACTIVE_BRIEF_STATUSES = ("archived", "completed")


def team_summary(db: Session, team: models.Team) -> dict:
    member_count = (
        db.query(func.count(models.UserTeam.id)).filter(models.UserTeam.team_id == team.id).scalar()
    )
    return {
        **schemas.TeamOut.model_validate(team).model_dump(),
        "lead_name": team.lead.display_name if team.lead else None,
        "member_count": member_count,
    }


@router.get("/")
async def list_teams(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    teams = db.query(models.Team).order_by(models.Team.name).all()
    return [team_summary(db, t) for t in teams]


@router.post("/", response_model=schemas.TeamOut)
async def create_team(
    team: schemas.TeamCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can create teams")
    rbac.get_or_404(db, models.User, team.lead_id, "User")
    db_team = models.Team(**team.model_dump())
    db.add(db_team)
    db.commit()
    db.refresh(db_team)
    return db_team


@router.get("/user/{user_id}", response_model=List[schemas.TeamOut])
async def get_teams_for_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return (
        db.query(models.Team)
        .join(models.UserTeam, models.UserTeam.team_id == models.Team.id)
        .filter(models.UserTeam.user_id == user_id)
        .all()
    )


@router.put("/{team_id}", response_model=schemas.TeamOut)
async def update_team(
    team_id: UUID,
    payload: schemas.TeamUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can update teams")
    team = rbac.get_or_404(db, models.Team, team_id, "Team")
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(team, k, v)
    db.commit()
    db.refresh(team)
    return team


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can delete teams")
    team = rbac.get_or_404(db, models.Team, team_id, "Team")
    active = (
        db.query(models.BriefTeam)
        .join(models.Brief, models.Brief.id == models.BriefTeam.brief_id)
        .filter(
            models.BriefTeam.team_id == team_id,
            models.Brief.status.notin_(INACTIVE_BRIEF_STATUSES),
        )
        .count()
    )
    if active:
        raise HTTPException(
            status_code=400,
            detail=f"Remove team from active briefs before deleting. {active} active brief(s) assigned.",
        )
    db.query(models.BriefTeam).filter_by(team_id=team_id).delete(synchronize_session=False)
    db.query(models.Invite).filter_by(team_id=team_id).update(
        {models.Invite.team_id: None}, synchronize_session=False
    )
    db.delete(team)
    db.commit()
    return Response(status_code=204)


@router.get("/{team_id}/members", response_model=List[schemas.UserOut])
async def get_team_members(
    team_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.get_or_404(db, models.Team, team_id, "Team")
    return (
        db.query(models.User)
        .join(models.UserTeam, models.UserTeam.user_id == models.User.id)
        .filter(models.UserTeam.team_id == team_id)
        .order_by(models.User.name)
        .all()
    )


@router.post("/{team_id}/members", status_code=204)
async def add_user_to_team(
    team_id: UUID,
    member: schemas.TeamMemberAdd,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    rbac.get_or_404(db, models.Team, team_id, "Team")
    rbac.get_or_404(db, models.User, member.user_id, "User")
    existing = db.query(models.UserTeam).filter_by(team_id=team_id, user_id=member.user_id).first()
    if existing is None:
        db.add(models.UserTeam(team_id=team_id, user_id=member.user_id))
        db.commit()
    return Response(status_code=204)


@router.delete("/{team_id}/members/{user_id}", status_code=204)
async def remove_user_from_team(
    team_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can remove team members")
    db.query(models.UserTeam).filter_by(team_id=team_id, user_id=user_id).delete(
        synchronize_session=False
    )
    db.commit()
    return Response(status_code=204)
