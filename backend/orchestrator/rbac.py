from __future__ import annotations

from typing import Iterable, Type, TypeVar
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Query, Session

from . import models

# purpose: centralize role and ownership gates shared by every router

ModelT = TypeVar("ModelT")


def get_or_404(db: Session, model: Type[ModelT], obj_id: UUID | None, label: str) -> ModelT:
    obj = db.get(model, obj_id) if obj_id else None
    if obj is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def require_role(user: models.User, roles: Iterable[str], detail: str = "Not authorized") -> None:
    if user.role not in tuple(roles):
        raise HTTPException(status_code=403, detail=detail)


def require_admin(user: models.User, detail: str = "Not authorized") -> None:
    require_role(user, ("admin",), detail)


def require_staff(user: models.User, detail: str = "Not authorized") -> None:
    """Admins and managers pass, employees are rejected."""
    require_role(user, ("admin", "manager"), detail)


def is_brief_manager(user: models.User, brief: models.Brief) -> bool:
    return user.role == "manager" and brief.assigned_manager_id == user.id


def can_manage_brief(user: models.User, brief: models.Brief) -> bool:
    return user.role == "admin" or is_brief_manager(user, brief)


def ensure_brief_manager(
    user: models.User, brief: models.Brief, detail: str = "Not authorized"
) -> None:
    """Admin, or the manager assigned to ``brief``."""
    if not can_manage_brief(user, brief):
        raise HTTPException(status_code=403, detail=detail)


def is_brand_manager(db: Session, user: models.User, brand_id: UUID | None) -> bool:
    if brand_id is None or user.role != "manager":
        return False
    return (
        db.query(models.BrandManager)
        .filter_by(brand_id=brand_id, manager_id=user.id)
        .first()
        is not None
    )


def visible_briefs(db: Session, user: models.User) -> Query:
    """Return a brief query narrowed to what ``user`` may see."""
    query = db.query(models.Brief)
    if user.role == "admin":
        return query
    if user.role == "manager":
        return query.filter(
            or_(
                models.Brief.assigned_manager_id == user.id,
                models.Brief.created_by == user.id,
            )
        )
    own_briefs = select(models.Task.brief_id).where(models.Task.assignee_id == user.id)
    return query.filter(models.Brief.id.in_(own_briefs))


def ensure_brief_visible(db: Session, user: models.User, brief: models.Brief) -> None:
    if user.role == "admin":
        return
    if user.role == "manager" and user.id in (brief.assigned_manager_id, brief.created_by):
        return
    held = (
        db.query(models.Task.id)
        .filter_by(brief_id=brief.id, assignee_id=user.id)
        .first()
    )
    if held is None:
        raise HTTPException(status_code=403, detail="Not authorized")


def ensure_other_admin_exists(db: Session, user: models.User, detail: str) -> None:
    """Reject an action that would leave the system without an admin."""
    if user.role != "admin":
        return
    admins = db.query(models.User).filter(models.User.role == "admin").count()
    if admins <= 1:
        raise HTTPException(status_code=400, detail=detail)
