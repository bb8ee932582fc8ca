# visitor_api/coordinator.py
"""Check-in / check-out sequencing across the visitor and badge tables.

Check-in must not be blocked by badge scarcity: when no badge can be claimed
the visitor is still checked in and the result carries a warning instead.
Both steps of a transition share one transaction.
"""
import datetime
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from . import models
from .badges import BadgeInventory
from .config import get_settings
from .database import unit_of_work
from .errors import BadgeUnavailable, CheckInNotAllowed, InvalidStateTransition, NotFound
from .models import Badge, BadgeType, Visitor, VisitorStatus
from .visitors import VisitorRepository

logger = logging.getLogger(__name__)

CHECK_IN_FROM = (VisitorStatus.pending, VisitorStatus.pre_registered)
CHECK_OUT_FROM = (VisitorStatus.checked_in,)
CANCEL_FROM = CHECK_IN_FROM


class Outcome(str, enum.Enum):
    success = "success"
    partial = "partial"


@dataclass
class TransitionResult:
    visitor: Visitor
    badge: Optional[Badge] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def outcome(self) -> Outcome:
        return Outcome.partial if self.warnings else Outcome.success


class CheckInResult(TransitionResult):
    pass


class CheckOutResult(TransitionResult):
    pass


class Coordinator:
    def __init__(
        self,
        db: Session,
        visitors: Optional[VisitorRepository] = None,
        badges: Optional[BadgeInventory] = None,
        early_minutes: Optional[int] = None,
        clock: Callable[[], datetime.datetime] = models.utcnow,
    ):
        settings = get_settings()
        self.db = db
        self.visitors = visitors or VisitorRepository(db)
        self.badges = badges or BadgeInventory(db)
        self.early_minutes = settings.checkin_early_minutes if early_minutes is None else early_minutes
        self.default_badge_type = BadgeType(settings.default_badge_type)
        self.clock = clock

    def _guard_schedule(self, visitor: Visitor, now: datetime.datetime) -> None:
        if visitor.scheduled_at is None:
            return
        opens_at = visitor.scheduled_at - datetime.timedelta(minutes=self.early_minutes)
        if now < opens_at:
            raise CheckInNotAllowed(
                f"Visit is scheduled for {visitor.scheduled_at.isoformat(timespec='minutes')}; "
                f"check-in opens at {opens_at.isoformat(timespec='minutes')}"
            )

    def check_in(self, id: str, badge_type: Optional[BadgeType] = None) -> CheckInResult:
        badge_type = BadgeType(badge_type) if badge_type else self.default_badge_type
        with unit_of_work(self.db):
            visitor = self.visitors.get(id)
            if visitor.status not in CHECK_IN_FROM:
                raise InvalidStateTransition(f"visitor {visitor.id}", visitor.status.value, "check in")

            now = self.clock()
            self._guard_schedule(visitor, now)

            result = CheckInResult(visitor=visitor)
            try:
                result.badge = self.badges.claim(badge_type, visitor.id)
            except BadgeUnavailable as exc:
                logger.warning("Checking in visitor %s without a badge: %s", visitor.id, exc.message)
                result.warnings.append(exc.message)

            visitor.status = VisitorStatus.checked_in
            visitor.check_in_time = now
            visitor.check_out_time = None
            visitor.badge_id = result.badge.id if result.badge else None
            visitor.badge_number = result.badge.badge_number if result.badge else None

        logger.info("Visitor %s checked in (badge %s)", visitor.id, visitor.badge_number or "none")
        return result

    def check_out(self, id: str) -> CheckOutResult:
        with unit_of_work(self.db):
            visitor = self.visitors.get(id)
            if visitor.status not in CHECK_OUT_FROM:
                raise InvalidStateTransition(f"visitor {visitor.id}", visitor.status.value, "check out")

            result = CheckOutResult(visitor=visitor)
            if visitor.badge_id:
                try:
                    badge = self.badges.get(visitor.badge_id)
                except NotFound as exc:
                    logger.warning("Could not release badge for visitor %s: %s", visitor.id, exc.message)
                    result.warnings.append(exc.message)
                else:
                    if badge.current_visitor_id not in (None, visitor.id):
                        msg = f"Badge {badge.badge_number} is held by another visitor; not released"
                        logger.warning("Visitor %s: %s", visitor.id, msg)
                        result.warnings.append(msg)
                    else:
                        result.badge = self.badges.release(badge.id)

            visitor.badge_id = None
            visitor.badge_number = None
            visitor.status = VisitorStatus.checked_out
            visitor.check_out_time = self.clock()

        logger.info("Visitor %s checked out", visitor.id)
        return result

    def cancel(self, id: str) -> Visitor:
        """Withdraw a visit that has not started yet."""
        with unit_of_work(self.db):
            visitor = self.visitors.get(id)
            if visitor.status not in CANCEL_FROM:
                raise InvalidStateTransition(f"visitor {visitor.id}", visitor.status.value, "cancel")
            visitor.status = VisitorStatus.cancelled

        logger.info("Visitor %s cancelled", visitor.id)
        return visitor
