import re
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..auth import get_current_user
from .. import models, schemas, rbac, notify

router = APIRouter(prefix="/api/comments", tags=["comments"])

MENTION_RE = re.compile(r"@\[user:([^:\]]+):[^\]]*\]")


def parse_mentions(content: str) -> list[UUID]:
    """Return the distinct user ids mentioned as ``@[user:<id>:<name>]``."""
    found: dict[UUID, None] = {}
    for raw in MENTION_RE.findall(content):
        try:
            found.setdefault(UUID(raw), None)
        except ValueError:
            continue
    return list(found)


def comment_row(comment: models.Comment, task_name: str | None = None) -> schemas.CommentOut:
    out = schemas.CommentOut.model_validate(comment)
    if comment.author is not None:
        out.user_name = comment.author.display_name
        out.user_role = comment.author.role
    out.task_name = task_name
    return out


def _resolve_brief(db: Session, parent_type: str, parent_id: UUID) -> models.Brief:
    if parent_type == "brief":
        return rbac.get_or_404(db, models.Brief, parent_id, "Brief")
    task = rbac.get_or_404(db, models.Task, parent_id, "Task")
    return task.brief


@router.get("/", response_model=List[schemas.CommentOut])
async def get_comments(
    parent_type: schemas.ParentType,
    parent_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    comments = (
        db.query(models.Comment)
        .filter_by(parent_type=parent_type, parent_id=parent_id)
        .order_by(models.Comment.created_at)
        .all()
    )
    return [comment_row(c) for c in comments]


@router.get("/brief/{brief_id}", response_model=List[schemas.CommentOut])
async def get_comments_for_brief(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    task_names = {t.id: t.title for t in brief.tasks}
    rows = [
        comment_row(c)
        for c in db.query(models.Comment).filter_by(parent_type="brief", parent_id=brief_id)
    ]
    if task_names:
        task_comments = (
            db.query(models.Comment)
            .filter(
                models.Comment.parent_type == "task",
                models.Comment.parent_id.in_(list(task_names)),
            )
            .all()
        )
        rows.extend(comment_row(c, task_names.get(c.parent_id)) for c in task_comments)
    rows.sort(key=lambda c: c.created_at)
    return rows


@router.post("/", response_model=schemas.CommentOut)
async def add_comment(
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    brief = _resolve_brief(db, payload.parent_type, payload.parent_id)
    mentioned = [
        uid for uid in parse_mentions(payload.content) if db.get(models.User, uid) is not None
    ]
    comment = models.Comment(
        parent_type=payload.parent_type,
        parent_id=payload.parent_id,
        user_id=user.id,
        content=payload.content,
        mentions=[str(uid) for uid in mentioned],
    )
    db.add(comment)
    author = user.name or "Someone"
    notify.notify_many(
        db,
        mentioned,
        "comment",
        "You were mentioned",
        f'{author} mentioned you in "{brief.title}"',
        skip=user.id,
        brief_id=brief.id,
        triggered_by=user.id,
    )
    manager_id = brief.assigned_manager_id
    if (
        payload.parent_type == "brief"
        and manager_id
        and manager_id != user.id
        and manager_id not in mentioned
    ):
        notify.notify(
            db,
            manager_id,
            "comment",
            "New comment on brief",
            f'{author} commented on "{brief.title}"',
            brief_id=brief.id,
            triggered_by=user.id,
        )
    db.commit()
    await notify.publish_pending(db)
    db.refresh(comment)
    return comment_row(comment)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    comment = rbac.get_or_404(db, models.Comment, comment_id, "Comment")
    if comment.user_id != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")
    db.query(models.CommentReaction).filter_by(comment_id=comment.id).delete(
        synchronize_session=False
    )
    db.delete(comment)
    db.commit()
    return Response(status_code=204)


def _set_pinned(db: Session, user: models.User, comment_id: UUID, pinned: bool) -> models.Comment:
    rbac.require_staff(user, "Only admins and managers can pin comments")
    comment = rbac.get_or_404(db, models.Comment, comment_id, "Comment")
    comment.is_pinned = pinned
    comment.pinned_by = user.id if pinned else None
    db.commit()
    db.refresh(comment)
    return comment


@router.post("/{comment_id}/pin", response_model=schemas.CommentOut)
async def pin_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return comment_row(_set_pinned(db, user, comment_id, True))


@router.post("/{comment_id}/unpin", response_model=schemas.CommentOut)
async def unpin_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return comment_row(_set_pinned(db, user, comment_id, False))


@router.post("/{comment_id}/reactions")
async def toggle_reaction(
    comment_id: UUID,
    payload: schemas.ReactionToggle,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.get_or_404(db, models.Comment, comment_id, "Comment")
    existing = (
        db.query(models.CommentReaction)
        .filter_by(comment_id=comment_id, user_id=user.id, emoji=payload.emoji)
        .first()
    )
    if existing:
        db.delete(existing)
        active = False
    else:
        db.add(models.CommentReaction(comment_id=comment_id, user_id=user.id, emoji=payload.emoji))
        active = True
    db.commit()
    return {"emoji": payload.emoji, "active": active}


@router.get("/reactions")
async def get_reactions_for_comments(
    comment_ids: List[UUID] = Query(default=[]),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    if not comment_ids:
        return {}
    reactions = (
        db.query(models.CommentReaction)
        .filter(models.CommentReaction.comment_id.in_(comment_ids))
        .all()
    )
    grouped: dict[str, dict[str, dict]] = {}
    for reaction in reactions:
        per_emoji = grouped.setdefault(str(reaction.comment_id), {})
        entry = per_emoji.setdefault(
            reaction.emoji, {"emoji": reaction.emoji, "count": 0, "my_reaction": False}
        )
        entry["count"] += 1
        if reaction.user_id == user.id:
            entry["my_reaction"] = True
    return {cid: list(per_emoji.values()) for cid, per_emoji in grouped.items()}


@router.get("/unread")
async def get_unread_counts(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    receipts = {
        r.brief_id: r.last_read_at
        for r in db.query(models.CommentReadReceipt).filter_by(user_id=user.id)
    }
    briefs = rbac.visible_briefs(db, user).filter(models.Brief.status != "archived").all()
    counts: dict[str, int] = {}
    for brief in briefs:
        query = db.query(models.Comment).filter(
            models.Comment.parent_type == "brief",
            models.Comment.parent_id == brief.id,
            models.Comment.user_id != user.id,
        )
        last_read = receipts.get(brief.id)
        if last_read is not None:
            query = query.filter(models.Comment.created_at > last_read)
        unread = query.count()
        if unread:
            counts[str(brief.id)] = unread
    return counts


@router.post("/brief/{brief_id}/read", status_code=204)
async def mark_brief_read(
    brief_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.get_or_404(db, models.Brief, brief_id, "Brief")
    receipt = db.query(models.CommentReadReceipt).filter_by(user_id=user.id, brief_id=brief_id).first()
    if receipt is None:
        db.add(models.CommentReadReceipt(user_id=user.id, brief_id=brief_id, last_read_at=utcnow()))
    else:
        receipt.last_read_at = utcnow()
    db.commit()
    return Response(status_code=204)
