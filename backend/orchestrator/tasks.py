import asyncio
import os

from celery import Celery
from celery.schedules import crontab
from celery.utils.log import get_task_logger

from .database import SessionLocal
from . import notify
from .services import reminders

logger = get_task_logger(__name__)

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "memory://")
celery_app = Celery("orchestrator", broker=CELERY_BROKER_URL)
celery_app.conf.task_always_eager = (
    CELERY_BROKER_URL == "memory://" or os.getenv("TESTING") == "1"
)

celery_app.conf.beat_schedule = {
    "check-deadlines": {
        "task": "orchestrator.tasks.check_deadlines",
        "schedule": crontab(minute=0),
    },
}


@celery_app.task(name="orchestrator.tasks.check_deadlines")
def check_deadlines():
    db = SessionLocal()
    try:
        created = reminders.check_deadlines(db)
        db.commit()
        if created:
            asyncio.run(notify.publish_pending(db))
        logger.info("deadline reminders sent: %d", created)
        return created
    finally:
        db.close()
