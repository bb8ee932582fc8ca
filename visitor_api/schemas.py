from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional, Literal
from datetime import datetime

from .models import BadgeStatus, BadgeType, VisitorStatus

# --- HELPER FUNCTIONS ---

def strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    return v or None

# --- VISITOR SCHEMAS ---

class VisitorCreate(BaseModel):
    # Required-field checks happen in VisitorRepository.create so that the
    # error lists every missing field at once, including host-derived ones.
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9+\-\s()]+$")
    company: Optional[str] = None
    purpose: Optional[str] = None
    host_id: Optional[str] = None
    host_name: Optional[str] = None
    tenant_id: Optional[str] = None
    floor: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    visitor_id: Optional[str] = None
    guest_code: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9]{4,12}$")
    status: Optional[Literal["pending", "pre_registered"]] = None

    @field_validator("name", "email", "company", "purpose", "host_id", "host_name", "tenant_id", "floor", "visitor_id")
    def clean_text(cls, v):
        return strip_or_none(v)

    model_config = ConfigDict(json_schema_extra={"example": {
        "name": "Jane Doe", "email": "jane@x.com", "phone": "555-0100",
        "host_id": "H1", "purpose": "Meeting",
    }})


class VisitorUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9+\-\s()]+$")
    company: Optional[str] = None
    purpose: Optional[str] = None
    host_id: Optional[str] = None
    host_name: Optional[str] = None
    tenant_id: Optional[str] = None
    floor: Optional[str] = None
    scheduled_at: Optional[datetime] = None

    # status and badge fields move only through check-in/check-out/cancel
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"purpose": "Interview", "floor": "3rd Floor"}},
    )


class VisitorResponse(BaseModel):
    id: str
    visitor_id: str
    guest_code: str
    name: str
    email: str
    phone: str
    company: Optional[str] = None
    purpose: str
    host_id: str
    host_name: str
    tenant_id: str
    floor: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    status: VisitorStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    badge_id: Optional[str] = None
    badge_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransitionResponse(VisitorResponse):
    """Visitor after check-in/out plus what happened to the badge."""
    outcome: Literal["success", "partial"]
    warnings: List[str] = []

# --- BADGE SCHEMAS ---

class BadgeResponse(BaseModel):
    id: str
    badge_number: str
    badge_type: BadgeType
    status: BadgeStatus
    current_visitor_id: Optional[str] = None
    last_issued_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BadgeMark(BaseModel):
    status: Literal["lost", "damaged"]
    notes: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(json_schema_extra={"example": {"status": "lost", "notes": "Not returned by visitor"}})


class BadgeTypeCounts(BaseModel):
    total: int
    available: int
    issued: int
    lost: int
    damaged: int


class BadgeStats(BadgeTypeCounts):
    by_type: Dict[str, BadgeTypeCounts]

# --- HOST SCHEMAS ---

class HostResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    company: Optional[str] = None
    tenant_id: str
    floor: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
