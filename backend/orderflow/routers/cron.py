"""Scheduler-triggered endpoints, authenticated with the shared cron secret."""
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas import DeadlineSweepResponse
from ..use_cases.deadlines import check_deadlines_use_case

router = APIRouter(prefix="/api/cron", tags=["cron"])
logger = logging.getLogger(__name__)


def verify_cron_secret(request: Request) -> None:
    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; refusing cron call")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CRON_SECRET не настроен",
        )
    expected = f"Bearer {settings.CRON_SECRET}"
    provided = request.headers.get("authorization") or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


@router.get("/deadlines", response_model=DeadlineSweepResponse, dependencies=[Depends(verify_cron_secret)])
def check_deadlines(db: Session = Depends(get_db)):
    """Notify staff about milestones and tasks due within the window."""
    return check_deadlines_use_case(db=db).as_dict()
