from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas

router = APIRouter(prefix="/api/search", tags=["search"])


def _matches(column, term: str):
    return func.lower(column).contains(term, autoescape=True)


@router.get("/", response_model=schemas.SearchResults)
async def global_search(
    q: str = Query(""),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    term = q.strip().lower()
    if not term:
        return schemas.SearchResults()
    staff = user.role in ("admin", "manager")

    briefs = db.query(models.Brief).filter(
        or_(_matches(models.Brief.title, term), _matches(models.Brief.description, term))
    )
    if user.role == "manager":
        briefs = briefs.filter(models.Brief.assigned_manager_id == user.id)
    elif user.role == "employee":
        own = select(models.Task.brief_id).where(models.Task.assignee_id == user.id)
        briefs = briefs.filter(models.Brief.id.in_(own))

    tasks = db.query(models.Task).filter(_matches(models.Task.title, term))
    if user.role == "employee":
        tasks = tasks.filter(models.Task.assignee_id == user.id)

    results = schemas.SearchResults(
        briefs=[
            {"id": b.id, "title": b.title, "status": b.status, "type": "brief"}
            for b in briefs.limit(5)
        ],
        tasks=[
            {"id": t.id, "title": t.title, "status": t.status, "brief_id": t.brief_id, "type": "task"}
            for t in tasks.limit(5)
        ],
    )
    if staff:
        results.brands = [
            {"id": b.id, "name": b.name, "type": "brand"}
            for b in db.query(models.Brand).filter(_matches(models.Brand.name, term)).limit(3)
        ]
        results.teams = [
            {"id": t.id, "name": t.name, "type": "team"}
            for t in db.query(models.Team).filter(_matches(models.Team.name, term)).limit(3)
        ]
        users = db.query(models.User).filter(
            or_(_matches(models.User.name, term), _matches(models.User.email, term))
        )
        results.users = [
            {"id": u.id, "name": u.display_name, "role": u.role, "type": "user"}
            for u in users.limit(3)
        ]
    return results
