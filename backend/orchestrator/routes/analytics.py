from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, rbac
from ..services import analytics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/dashboard")
def dashboard_analytics(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    rbac.require_staff(user)
    return analytics.dashboard(db)
