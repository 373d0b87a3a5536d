import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_password_hash, verify_password, create_access_token
from ..ratelimit import rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=schemas.Token)
@rate_limit("5/minute")
async def register(request: Request, user: schemas.UserCreate, db: Session = Depends(get_db)):
    existing = db.query(models.User).filter(models.User.email == user.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    is_first = db.query(models.User.id).first() is None
    db_user = models.User(
        email=user.email,
        hashed_password=get_password_hash(user.password),
        name=user.name,
        role="admin" if is_first else "employee",
    )
    db.add(db_user)
    db.flush()

    invite = (
        db.query(models.Invite)
        .filter(models.Invite.email == user.email, models.Invite.used == False)
        .first()
    )
    if invite and not is_first:
        db_user.role = invite.role
        db_user.name = db_user.name or invite.name
        db_user.designation = invite.designation
        if invite.team_id and db.get(models.Team, invite.team_id):
            db.add(models.UserTeam(user_id=db_user.id, team_id=invite.team_id))
        invite.used = True
        logger.info("invite %s redeemed by %s", invite.id, user.email)
    db.commit()
    token = create_access_token({"sub": db_user.email})
    return schemas.Token(access_token=token)


@router.post("/login", response_model=schemas.Token)
@rate_limit("10/minute")
async def login(request: Request, user: schemas.LoginRequest, db: Session = Depends(get_db)):
    db_user = db.query(models.User).filter(models.User.email == user.email).first()
    if not db_user or not verify_password(user.password, db_user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({"sub": db_user.email})
    return schemas.Token(access_token=token)
