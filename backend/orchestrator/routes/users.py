import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas, auth, notify, rbac, storage
from ..services import jsr, lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

INVITE_TOKEN_LENGTH = 32


def user_with_teams(user: models.User) -> schemas.UserWithTeams:
    base = schemas.UserOut.model_validate(user).model_dump()
    teams = [schemas.TeamTag.model_validate(m.team) for m in user.teams if m.team]
    return schemas.UserWithTeams(**base, teams=teams)


def task_with_brief(task: models.Task) -> schemas.TaskWithBrief:
    out = schemas.TaskWithBrief.model_validate(task, from_attributes=True)
    if task.brief is not None:
        out.brief_title = task.brief.title
        out.brief_status = task.brief.status
    if task.assignee is not None:
        out.assignee_name = task.assignee.display_name
    return out


def user_workload(db: Session, user_id: UUID) -> list[schemas.TaskWithBrief]:
    tasks = (
        db.query(models.Task)
        .join(models.Brief, models.Brief.id == models.Task.brief_id)
        .filter(models.Task.assignee_id == user_id, models.Brief.status != "archived")
        .order_by(models.Task.sort_order)
        .all()
    )
    return [task_with_brief(t) for t in tasks]


@router.get("/me", response_model=schemas.UserOut)
async def read_profile(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.put("/me", response_model=schemas.UserOut)
async def update_profile(
    update: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/", response_model=list[schemas.UserWithTeams])
async def list_all_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    rbac.require_staff(current_user)
    users = db.query(models.User).order_by(models.User.name).all()
    return [user_with_teams(u) for u in users]


@router.get("/employees", response_model=list[schemas.UserOut])
async def list_employees(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return db.query(models.User).filter(models.User.role == "employee").order_by(models.User.name).all()


@router.get("/managers", response_model=list[schemas.UserOut])
async def list_managers(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return db.query(models.User).filter(models.User.role == "manager").order_by(models.User.name).all()


@router.post("/invites", response_model=schemas.InviteOut)
async def create_invite(
    payload: schemas.InviteCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    rbac.require_admin(current_user, "Only admins can invite users")
    if payload.team_id:
        rbac.get_or_404(db, models.Team, payload.team_id, "Team")
    invite = models.Invite(
        **payload.model_dump(),
        token=jsr.generate_token(INVITE_TOKEN_LENGTH),
        created_by=current_user.id,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    notify.send_email(
        invite.email,
        "You're invited to The Orchestrator",
        f"Hi {invite.name}, finish signing up at {notify.APP_BASE_URL}/invite/{invite.token}",
    )
    logger.info("invite created for %s as %s", invite.email, invite.role)
    return invite


@router.get("/invites/{token}", response_model=schemas.InviteOut | None)
async def get_invite_by_token(token: str, db: Session = Depends(get_db)):
    invite = db.query(models.Invite).filter(models.Invite.token == token).first()
    if invite is None or invite.used:
        return None
    return invite


@router.put("/{user_id}/role", response_model=schemas.UserOut)
async def update_user_role(
    user_id: UUID,
    payload: schemas.RoleUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    rbac.require_admin(current_user, "Only admins can change roles")
    target = rbac.get_or_404(db, models.User, user_id, "User")
    if target.role == "admin" and payload.role != "admin":
        rbac.ensure_other_admin_exists(db, target, "Cannot demote the last admin")
    target.role = payload.role
    db.commit()
    db.refresh(target)
    return target


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    rbac.require_admin(current_user, "Only admins can delete users")
    target = rbac.get_or_404(db, models.User, user_id, "User")
    if target.id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    rbac.ensure_other_admin_exists(db, target, "Cannot delete the last admin")
    blob_paths = lifecycle.remove_user_rows(db, target, current_user)
    # memberships and received notifications cascade from the relationship
    db.delete(target)
    db.commit()
    for path in blob_paths:
        storage.delete_binary_payload(path)
    logger.info("user %s deleted by %s", user_id, current_user.id)
    return Response(status_code=204)


@router.get("/{user_id}/workload", response_model=list[schemas.TaskWithBrief])
async def get_user_workload(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    rbac.get_or_404(db, models.User, user_id, "User")
    return user_workload(db, user_id)
