# visitor_api/routers/hosts.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models import Host

router = APIRouter(prefix="/hosts", tags=["Hosts"])


@router.get("", response_model=List[schemas.HostResponse])
def list_hosts(tenant_id: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Host)
    if tenant_id:
        query = query.filter(Host.tenant_id == tenant_id)
    return query.order_by(Host.name).all()
