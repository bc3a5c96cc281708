"""System settings endpoints (admin)."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models import User
from ..schemas import NumberingSettingsResponse, NumberingSettingsUpdate
from ..services.numbering import get_numbering_settings, update_numbering_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/numbering", response_model=NumberingSettingsResponse)
def get_numbering(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_numbering_settings(db)


@router.patch("/numbering", response_model=NumberingSettingsResponse)
def update_numbering(
    data: NumberingSettingsUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Change document prefixes; counters keep running."""
    return update_numbering_settings(db, **data.model_dump(exclude_unset=True))
