"""
Celery worker and beat schedule for periodic workflow jobs.
"""
import logging

from celery import Celery
from celery.schedules import crontab

from .config import settings
from .database import SessionLocal
from .use_cases.deadlines import check_deadlines_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "orderflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


@celery_app.task(name="check_deadlines")
def check_deadlines():
    """Same sweep as GET /api/cron/deadlines, for deployments running beat."""
    db = SessionLocal()
    try:
        result = check_deadlines_use_case(db=db)
    except Exception:
        db.rollback()
        logger.error("Deadline sweep failed", exc_info=True)
        raise
    finally:
        db.close()
    return result.as_dict()


# Schedule periodic processing
celery_app.conf.beat_schedule = {
    'check-deadlines-daily': {
        'task': 'check_deadlines',
        'schedule': crontab(hour=8, minute=0),
    },
}
