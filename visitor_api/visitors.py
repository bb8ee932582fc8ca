# visitor_api/visitors.py
import datetime
import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .errors import NotFound, ValidationError
from .models import Host, Visitor, VisitorStatus

logger = logging.getLogger(__name__)

GUEST_CODE_ALPHABET = string.ascii_uppercase + string.digits
GUEST_CODE_LENGTH = 8

REQUIRED_FIELDS = ("name", "email", "phone", "host_id", "host_name", "tenant_id", "visitor_id", "purpose")
CREATE_STATUSES = (VisitorStatus.pending, VisitorStatus.pre_registered)
UPDATABLE_FIELDS = {
    "name", "email", "phone", "company", "purpose", "host_id", "host_name",
    "tenant_id", "floor", "scheduled_at",
}
DRAFT_FIELDS = UPDATABLE_FIELDS | {"visitor_id", "guest_code", "status"}
# changed only by Coordinator
LIFECYCLE_FIELDS = {"status", "check_in_time", "check_out_time", "badge_id", "badge_number"}


def generate_guest_code() -> str:
    """8 characters drawn uniformly from A-Z0-9."""
    return "".join(secrets.choice(GUEST_CODE_ALPHABET) for _ in range(GUEST_CODE_LENGTH))


def generate_visitor_id() -> str:
    # uuid1 embeds the creation timestamp
    return f"vis_{uuid.uuid1().hex}"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_status(value: Any) -> VisitorStatus:
    try:
        return VisitorStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown visitor status '{value}'")


def _as_naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class VisitorFilter:
    """Conjunctive filter; a field left as None places no constraint."""
    status: Optional[VisitorStatus] = None
    tenant_id: Optional[str] = None
    host_id: Optional[str] = None
    date_from: Optional[datetime.date] = None
    date_to: Optional[datetime.date] = None
    limit: Optional[int] = None


class VisitorRepository:
    def __init__(self, db: Session):
        self.db = db

    # --- CREATE ---

    def _resolve_host(self, draft: Dict[str, Any]) -> None:
        """Fill host_name/tenant_id/floor from the host record when the draft leaves them out."""
        host_id = draft.get("host_id")
        if _is_blank(host_id):
            return
        if not _is_blank(draft.get("host_name")) and not _is_blank(draft.get("tenant_id")):
            return
        host = self.db.get(Host, host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")
        if _is_blank(draft.get("host_name")):
            draft["host_name"] = host.name
        if _is_blank(draft.get("tenant_id")):
            draft["tenant_id"] = host.tenant_id
        if _is_blank(draft.get("floor")) and host.floor:
            draft["floor"] = host.floor

    def _unique_guest_code(self) -> str:
        while True:
            code = generate_guest_code()
            if not self.db.query(Visitor.id).filter(Visitor.guest_code == code).first():
                return code
            logger.info("Guest code collision on %s, regenerating", code)

    def create(self, draft: Dict[str, Any]) -> Visitor:
        draft = {k: v for k, v in draft.items() if v is not None}

        unknown = set(draft) - DRAFT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown visitor fields: {', '.join(sorted(unknown))}")

        if _is_blank(draft.get("visitor_id")):
            draft["visitor_id"] = generate_visitor_id()
        self._resolve_host(draft)

        missing = [f for f in REQUIRED_FIELDS if _is_blank(draft.get(f))]
        if missing:
            raise ValidationError("Missing required visitor fields", missing_fields=missing)

        status = _parse_status(draft.get("status", VisitorStatus.pending))
        if status not in CREATE_STATUSES:
            raise ValidationError(f"New visitors must be pending or pre_registered, not '{status.value}'")
        draft["status"] = status
        if isinstance(draft.get("scheduled_at"), datetime.datetime):
            draft["scheduled_at"] = _as_naive_utc(draft["scheduled_at"])

        if self.db.query(Visitor.id).filter(Visitor.visitor_id == draft["visitor_id"]).first():
            raise ValidationError(f"visitor_id {draft['visitor_id']} already exists")

        if _is_blank(draft.get("guest_code")):
            draft["guest_code"] = self._unique_guest_code()
        else:
            draft["guest_code"] = draft["guest_code"].strip().upper()
            if self.db.query(Visitor.id).filter(Visitor.guest_code == draft["guest_code"]).first():
                raise ValidationError(f"guest_code {draft['guest_code']} already exists")

        visitor = Visitor(**draft)
        self.db.add(visitor)
        self.db.flush()
        logger.info("Registered visitor %s (%s) as %s", visitor.id, visitor.guest_code, status.value)
        return visitor

    # --- READ ---

    def get(self, id: str) -> Visitor:
        visitor = self.db.get(Visitor, id)
        if visitor is None:
            raise NotFound(f"Visitor {id} not found")
        return visitor

    def find_by_code(self, code: str) -> Optional[Visitor]:
        """Resolve either the system visitor_id or the human-facing guest code."""
        code = (code or "").strip()
        if not code:
            return None
        return (
            self.db.query(Visitor)
            .filter(or_(
                Visitor.visitor_id == code,
                Visitor.guest_code == code.upper(),
                Visitor.id == code,
            ))
            .first()
        )

    def list(self, filters: Optional[VisitorFilter] = None) -> List[Visitor]:
        filters = filters or VisitorFilter()
        query = self.db.query(Visitor)
        if filters.status is not None:
            query = query.filter(Visitor.status == VisitorStatus(filters.status))
        if filters.tenant_id:
            query = query.filter(Visitor.tenant_id == filters.tenant_id)
        if filters.host_id:
            query = query.filter(Visitor.host_id == filters.host_id)
        if filters.date_from:
            query = query.filter(Visitor.created_at >= datetime.datetime.combine(filters.date_from, datetime.time.min))
        if filters.date_to:
            end = datetime.datetime.combine(filters.date_to + datetime.timedelta(days=1), datetime.time.min)
            query = query.filter(Visitor.created_at < end)
        query = query.order_by(Visitor.created_at.desc(), Visitor.id)
        if filters.limit:
            query = query.limit(filters.limit)
        return query.all()

    def on_site(self) -> List[Visitor]:
        """Everyone currently checked in, oldest arrival first (evacuation roll call)."""
        return (
            self.db.query(Visitor)
            .filter(Visitor.status == VisitorStatus.checked_in)
            .order_by(Visitor.check_in_time)
            .all()
        )

    # --- UPDATE ---

    def update(self, id: str, fields: Dict[str, Any]) -> Visitor:
        """Field-level patch of descriptive fields, last write wins."""
        lifecycle = set(fields) & LIFECYCLE_FIELDS
        if lifecycle:
            raise ValidationError(
                f"{', '.join(sorted(lifecycle))} can only change through check-in, check-out or cancel"
            )
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown visitor fields: {', '.join(sorted(unknown))}")

        visitor = self.get(id)
        for key, value in fields.items():
            if isinstance(value, datetime.datetime):
                value = _as_naive_utc(value)
            setattr(visitor, key, value)
        self.db.flush()
        return visitor
