import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, storage
from ..services import lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/brands", tags=["brands"])

INACTIVE_BRIEF_STATUSES = ("archived", "completed")


def _managers(brand: models.Brand) -> list[models.User]:
    return [link.manager for link in brand.managers if link.manager]


def _brand_briefs(db: Session, brand_id: UUID) -> list[models.Brief]:
    return (
        db.query(models.Brief)
        .filter(models.Brief.brand_id == brand_id)
        .order_by(models.Brief.global_priority)
        .all()
    )


def _status_counts(tasks: list[models.Task]) -> dict[str, int]:
    counts = {"pending": 0, "in-progress": 0, "review": 0, "done": 0}
    for task in tasks:
        counts[task.status] = counts.get(task.status, 0) + 1
    return counts


def brand_summary(db: Session, brand: models.Brand) -> dict:
    managers = _managers(brand)
    briefs = _brand_briefs(db, brand.id)
    return {
        **schemas.BrandOut.model_validate(brand).model_dump(),
        "manager_ids": [m.id for m in managers],
        "manager_count": len(managers),
        "manager_names": [m.display_name for m in managers],
        "brief_count": len(briefs),
        "active_brief_count": sum(1 for b in briefs if b.status not in INACTIVE_BRIEF_STATUSES),
    }


@router.get("/")
async def list_brands(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    if user.role == "employee":
        return []
    query = db.query(models.Brand)
    if user.role == "manager":
        query = query.join(models.BrandManager, models.BrandManager.brand_id == models.Brand.id).filter(
            models.BrandManager.manager_id == user.id
        )
    return [brand_summary(db, b) for b in query.order_by(models.Brand.name).all()]


@router.post("/", response_model=schemas.BrandOut)
async def create_brand(
    payload: schemas.BrandCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_staff(user)
    brand = models.Brand(**payload.model_dump(), created_by=user.id)
    db.add(brand)
    db.commit()
    db.refresh(brand)
    return brand


@router.get("/overview")
async def get_brand_overview(
    db: Session = Depends(get_db), user: models.User = Depends(get_current_user)
):
    rbac.require_staff(user)
    overview = []
    for brand in db.query(models.Brand).order_by(models.Brand.name).all():
        briefs = _brand_briefs(db, brand.id)
        tasks = [t for b in briefs for t in b.tasks]
        _, _, progress = lifecycle.progress_of(tasks)
        overview.append(
            {
                **brand_summary(db, brand),
                "managers": [
                    {"id": m.id, "name": m.name, "email": m.email} for m in _managers(brand)
                ],
                "employee_count": len({t.assignee_id for t in tasks}),
                "total_tasks": len(tasks),
                "task_status_counts": _status_counts(tasks),
                "progress": progress,
            }
        )
    return overview


@router.get("/{brand_id}")
async def get_brand(
    brand_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brand = rbac.get_or_404(db, models.Brand, brand_id, "Brand")
    if user.role == "employee":
        raise HTTPException(status_code=403, detail="Not authorized")
    briefs = _brand_briefs(db, brand.id)
    tasks = [t for b in briefs for t in b.tasks]
    employees = {t.assignee.id: t.assignee for t in tasks if t.assignee}
    return {
        **brand_summary(db, brand),
        "managers": [schemas.UserOut.model_validate(m) for m in _managers(brand)],
        "briefs": [lifecycle.brief_summary(b) for b in briefs],
        "employees": [schemas.UserOut.model_validate(u) for u in employees.values()],
        "task_status_counts": _status_counts(tasks),
    }


@router.put("/{brand_id}", response_model=schemas.BrandOut)
async def update_brand(
    brand_id: UUID,
    payload: schemas.BrandUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can update brands")
    brand = rbac.get_or_404(db, models.Brand, brand_id, "Brand")
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(brand, k, v)
    db.commit()
    db.refresh(brand)
    return brand


@router.delete("/{brand_id}", status_code=204)
async def delete_brand(
    brand_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brand = rbac.get_or_404(db, models.Brand, brand_id, "Brand")
    if user.role != "admin" and not rbac.is_brand_manager(db, user, brand_id):
        raise HTTPException(status_code=403, detail="Not authorized")
    briefs = _brand_briefs(db, brand_id)
    active = [b for b in briefs if b.status != "archived"]
    if active:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete brand with {len(active)} active briefs",
        )
    blob_paths = lifecycle.delete_brief_rows(db, [b.id for b in briefs])
    db.query(models.JsrClientTask).filter_by(brand_id=brand_id).delete(synchronize_session=False)
    db.query(models.JsrLink).filter_by(brand_id=brand_id).delete(synchronize_session=False)
    # manager links cascade from the relationship
    db.delete(brand)
    db.commit()
    for path in blob_paths:
        storage.delete_binary_payload(path)
    logger.info("brand %s deleted with %d archived briefs", brand_id, len(briefs))
    return Response(status_code=204)


@router.post("/{brand_id}/managers", status_code=204)
async def assign_manager_to_brand(
    brand_id: UUID,
    payload: schemas.BrandManagerAssign,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can assign brand managers")
    rbac.get_or_404(db, models.Brand, brand_id, "Brand")
    manager = rbac.get_or_404(db, models.User, payload.manager_id, "User")
    if manager.role not in ("admin", "manager"):
        raise HTTPException(status_code=400, detail="User is not a manager")
    existing = db.query(models.BrandManager).filter_by(brand_id=brand_id, manager_id=manager.id).first()
    if existing is None:
        db.add(models.BrandManager(brand_id=brand_id, manager_id=manager.id))
        db.commit()
    return Response(status_code=204)


@router.delete("/{brand_id}/managers/{manager_id}", status_code=204)
async def remove_manager_from_brand(
    brand_id: UUID,
    manager_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user, "Only admins can remove brand managers")
    db.query(models.BrandManager).filter_by(brand_id=brand_id, manager_id=manager_id).delete(
        synchronize_session=False
    )
    db.commit()
    return Response(status_code=204)
