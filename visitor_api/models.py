import datetime
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Text, Index

from .database import Base


def utcnow() -> datetime.datetime:
    # Stored naive; every timestamp in the database is UTC.
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# --- ENUMS ---

class VisitorStatus(str, enum.Enum):
    pending = "pending"
    pre_registered = "pre_registered"
    checked_in = "checked_in"
    checked_out = "checked_out"
    cancelled = "cancelled"


class BadgeType(str, enum.Enum):
    visitor = "visitor"
    contractor = "contractor"
    vip = "vip"
    delivery = "delivery"


class BadgeStatus(str, enum.Enum):
    available = "available"
    issued = "issued"
    lost = "lost"
    damaged = "damaged"


# --- TABLES ---

class Host(Base):
    __tablename__ = "hosts"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255))
    company = Column(String(100))
    tenant_id = Column(String(36), nullable=False, index=True)
    floor = Column(String(50))


class Badge(Base):
    __tablename__ = "badges"

    id = Column(String(36), primary_key=True, default=new_id)
    badge_number = Column(String(20), unique=True, nullable=False)
    badge_type = Column(Enum(BadgeType), nullable=False, default=BadgeType.visitor)
    status = Column(Enum(BadgeStatus), nullable=False, default=BadgeStatus.available)
    current_visitor_id = Column(String(36), ForeignKey("visitors.id"), nullable=True)
    last_issued_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (Index("ix_badges_type_status", "badge_type", "status"),)


class Visitor(Base):
    __tablename__ = "visitors"

    id = Column(String(36), primary_key=True, default=new_id)
    visitor_id = Column(String(64), unique=True, nullable=False, index=True)
    guest_code = Column(String(8), unique=True, nullable=False, index=True)

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    company = Column(String(100))
    purpose = Column(String(255), nullable=False)

    host_id = Column(String(36), nullable=False, index=True)
    host_name = Column(String(100), nullable=False)
    tenant_id = Column(String(36), nullable=False, index=True)
    floor = Column(String(50))
    scheduled_at = Column(DateTime, nullable=True)

    status = Column(Enum(VisitorStatus), nullable=False, default=VisitorStatus.pending, index=True)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)

    # Denormalised badge linkage; badges.current_visitor_id points the other way.
    badge_id = Column(String(36), nullable=True)
    badge_number = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
