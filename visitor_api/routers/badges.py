# visitor_api/routers/badges.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..badges import BadgeInventory
from ..database import get_db, unit_of_work
from ..models import BadgeStatus, BadgeType

router = APIRouter(prefix="/badges", tags=["Badges"])


@router.get("/stats", response_model=schemas.BadgeStats)
def badge_stats(db: Session = Depends(get_db)):
    with unit_of_work(db):
        return BadgeInventory(db).stats()


@router.get("", response_model=List[schemas.BadgeResponse])
def list_badges(
    badge_type: Optional[BadgeType] = None,
    status: Optional[BadgeStatus] = None,
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        return BadgeInventory(db).list(badge_type=badge_type, status=status)


@router.post("/{badge_id}/release", response_model=schemas.BadgeResponse)
def release_badge(badge_id: str, db: Session = Depends(get_db)):
    """Manual return to the pool, e.g. a badge handed back at the desk."""
    with unit_of_work(db):
        badge = BadgeInventory(db).release(badge_id)
    return badge


@router.post("/{badge_id}/mark", response_model=schemas.BadgeResponse)
def mark_badge(badge_id: str, body: schemas.BadgeMark, db: Session = Depends(get_db)):
    with unit_of_work(db):
        badge = BadgeInventory(db).mark(badge_id, BadgeStatus(body.status), notes=body.notes)
    return badge


@router.post("/{badge_id}/restore", response_model=schemas.BadgeResponse)
def restore_badge(badge_id: str, db: Session = Depends(get_db)):
    with unit_of_work(db):
        badge = BadgeInventory(db).restore(badge_id)
    return badge
