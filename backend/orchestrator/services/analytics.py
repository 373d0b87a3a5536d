from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from .. import models
from ..database import as_utc, utcnow

VELOCITY_WEEKS = 8
RECENT_ACTIVITY_LIMIT = 20


def _count_by(rows, attr: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for row in rows:
        key = getattr(row, attr)
        counts[key] = counts.get(key, 0) + 1
    return counts


def dashboard(db: Session, now: datetime | None = None) -> dict:
    """Aggregate workspace figures for the admin and manager dashboard."""
    now = as_utc(now) or utcnow()
    briefs = db.query(models.Brief).all()
    tasks = db.query(models.Task).all()
    users = db.query(models.User).all()
    entries = db.query(models.TimeEntry).all()

    done = [t for t in tasks if t.status == "done"]
    overdue = [
        t for t in tasks if t.deadline and as_utc(t.deadline) < now and t.status != "done"
    ]
    durations = [
        (as_utc(t.completed_at) - as_utc(t.created_at)).total_seconds()
        for t in done
        if t.completed_at and t.created_at
    ]
    avg_hours = round(sum(durations) / len(durations) / 3600) if durations else 0

    employee_stats = []
    for emp in (u for u in users if u.role == "employee"):
        own = [t for t in tasks if t.assignee_id == emp.id]
        tracked = sum(e.duration_minutes or 0 for e in entries if e.user_id == emp.id)
        estimated = sum(t.duration_minutes or 0 for t in own)
        employee_stats.append(
            {
                "id": emp.id,
                "name": emp.display_name,
                "total_tasks": len(own),
                "done_tasks": sum(1 for t in own if t.status == "done"),
                "tracked_hours": round(tracked / 60, 1),
                "estimated_hours": round(estimated / 60, 1),
            }
        )

    weekly_velocity = []
    for i in range(VELOCITY_WEEKS - 1, -1, -1):
        week_end = now - timedelta(weeks=i)
        week_start = week_end - timedelta(weeks=1)
        count = sum(
            1 for t in done if t.completed_at and week_start <= as_utc(t.completed_at) < week_end
        )
        weekly_velocity.append({"week": week_end.strftime("%b %d"), "count": count})

    titles = {b.id: b.title for b in briefs}
    recent = (
        db.query(models.ActivityLog)
        .order_by(models.ActivityLog.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    recent_activity = [
        {
            "id": entry.id,
            "brief_id": entry.brief_id,
            "task_id": entry.task_id,
            "action": entry.action,
            "details": entry.details or {},
            "created_at": entry.created_at,
            "user_name": entry.user.display_name if entry.user else "Unknown",
            "brief_title": titles.get(entry.brief_id, "Unknown"),
        }
        for entry in recent
    ]

    return {
        "total_briefs": len(briefs),
        "total_tasks": len(tasks),
        "total_users": len(users),
        "total_teams": db.query(models.Team).count(),
        "total_brands": db.query(models.Brand).count(),
        "briefs_by_status": _count_by(briefs, "status"),
        "tasks_by_status": _count_by(tasks, "status"),
        "overdue_tasks": len(overdue),
        "avg_completion_hours": avg_hours,
        "employee_stats": employee_stats,
        "weekly_velocity": weekly_velocity,
        "recent_activity": recent_activity,
    }
