# visitor_api/routers/visitors.py
from datetime import date
from io import BytesIO
from typing import List, Optional

import qrcode
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .. import schemas
from ..coordinator import Coordinator, TransitionResult
from ..database import get_db, unit_of_work
from ..models import BadgeType, VisitorStatus
from ..visitors import VisitorFilter, VisitorRepository

router = APIRouter(tags=["Visitors"])


def parse_status_filter(value: Optional[str]) -> Optional[VisitorStatus]:
    """'all' (or nothing) means no status constraint."""
    if value is None or value.strip() in ("", "all"):
        return None
    try:
        return VisitorStatus(value.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown status '{value}'. Use one of: all, {', '.join(s.value for s in VisitorStatus)}",
        )


def to_transition_response(result: TransitionResult) -> schemas.TransitionResponse:
    visitor = schemas.VisitorResponse.model_validate(result.visitor)
    return schemas.TransitionResponse(
        **visitor.model_dump(),
        outcome=result.outcome.value,
        warnings=result.warnings,
    )

# --- REGISTRATION ---

@router.post("/visitors", response_model=schemas.VisitorResponse, status_code=status.HTTP_201_CREATED)
def create_visitor(draft: schemas.VisitorCreate, db: Session = Depends(get_db)):
    """Walk-in (pending) or invited (pre_registered) visitor."""
    with unit_of_work(db):
        visitor = VisitorRepository(db).create(draft.model_dump(exclude_none=True))
    return visitor

# --- QUERIES ---

@router.get("/visitors", response_model=List[schemas.VisitorResponse])
def list_visitors(
    status_filter: Optional[str] = Query(None, alias="status"),
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    host_id: Optional[str] = None,
    date_filter: Optional[date] = Query(None, alias="date"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    filters = VisitorFilter(
        status=parse_status_filter(status_filter),
        tenant_id=tenant_id,
        host_id=host_id,
        date_from=date_filter or date_from,
        date_to=date_filter or date_to,
        limit=limit,
    )
    with unit_of_work(db):
        return VisitorRepository(db).list(filters)


@router.get("/visitors/on-site", response_model=List[schemas.VisitorResponse])
def visitors_on_site(db: Session = Depends(get_db)):
    """Evacuation roll call: everyone currently checked in."""
    with unit_of_work(db):
        return VisitorRepository(db).on_site()


@router.get("/visitor/{code}", response_model=schemas.VisitorResponse)
def get_visitor_by_code(code: str, db: Session = Depends(get_db)):
    with unit_of_work(db):
        visitor = VisitorRepository(db).find_by_code(code)
    if not visitor:
        raise HTTPException(status_code=404, detail="Visitor not found")
    return visitor


@router.patch("/visitors/{id}", response_model=schemas.VisitorResponse)
def update_visitor(id: str, changes: schemas.VisitorUpdate, db: Session = Depends(get_db)):
    with unit_of_work(db):
        visitor = VisitorRepository(db).update(id, changes.model_dump(exclude_unset=True))
    return visitor


@router.get("/visitors/{id}/qr")
def visitor_qr_code(id: str, db: Session = Depends(get_db)):
    """PNG QR code carrying the guest code, for printing on the badge slip."""
    with unit_of_work(db):
        visitor = VisitorRepository(db).get(id)
        guest_code = visitor.guest_code

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4,
    )
    qr.add_data(guest_code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return StreamingResponse(buffer, media_type="image/png")

# --- CHECK-IN / CHECK-OUT ---

@router.post("/visitors/{id}/checkin", response_model=schemas.TransitionResponse)
def check_in_visitor(id: str, badge_type: Optional[BadgeType] = None, db: Session = Depends(get_db)):
    result = Coordinator(db).check_in(id, badge_type=badge_type)
    return to_transition_response(result)


@router.post("/visitors/{id}/checkout", response_model=schemas.TransitionResponse)
def check_out_visitor(id: str, db: Session = Depends(get_db)):
    result = Coordinator(db).check_out(id)
    return to_transition_response(result)


@router.post("/visitors/{id}/cancel", response_model=schemas.VisitorResponse)
def cancel_visitor(id: str, db: Session = Depends(get_db)):
    return Coordinator(db).cancel(id)
