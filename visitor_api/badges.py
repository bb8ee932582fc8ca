# visitor_api/badges.py
import logging
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from . import models
from .errors import BadgeUnavailable, InvalidStateTransition, NotFound, ValidationError
from .models import Badge, BadgeStatus, BadgeType

logger = logging.getLogger(__name__)

RETIRED_STATUSES = (BadgeStatus.lost, BadgeStatus.damaged)


class BadgeInventory:
    """Finite pool of physical badges.

    Methods only flush; the caller owns the transaction (see
    ``database.unit_of_work``) so a badge claim and the visitor update that
    follows it commit together.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- READS ---

    def get(self, badge_id: str) -> Badge:
        badge = self.db.get(Badge, badge_id)
        if badge is None:
            raise NotFound(f"Badge {badge_id} not found")
        return badge

    def _available_query(self, badge_type: BadgeType):
        # length first so "V-9" sorts before "V-10"
        return (
            self.db.query(Badge)
            .filter(Badge.badge_type == badge_type, Badge.status == BadgeStatus.available)
            .order_by(func.length(Badge.badge_number), Badge.badge_number)
        )

    def find_available(self, badge_type: BadgeType = BadgeType.visitor) -> Optional[Badge]:
        """Lowest-numbered available badge of the given type, or None."""
        return self._available_query(BadgeType(badge_type)).first()

    def list(self, badge_type: Optional[BadgeType] = None, status: Optional[BadgeStatus] = None) -> List[Badge]:
        query = self.db.query(Badge)
        if badge_type:
            query = query.filter(Badge.badge_type == badge_type)
        if status:
            query = query.filter(Badge.status == status)
        return query.order_by(Badge.badge_type, func.length(Badge.badge_number), Badge.badge_number).all()

    def stats(self) -> Dict:
        counts = {s.value: 0 for s in BadgeStatus}
        by_type = {t.value: {s.value: 0 for s in BadgeStatus} for t in BadgeType}

        rows = (
            self.db.query(Badge.badge_type, Badge.status, func.count(Badge.id))
            .group_by(Badge.badge_type, Badge.status)
            .all()
        )
        for badge_type, status, n in rows:
            counts[status.value] += n
            by_type[badge_type.value][status.value] += n

        for per_type in by_type.values():
            per_type["total"] = sum(per_type.values())
        return {"total": sum(counts.values()), **counts, "by_type": by_type}

    # --- WRITES ---

    def issue(self, badge_id: str, visitor_id: str) -> Badge:
        """Hand one badge to a visitor.

        Conditional update: only a row that is still ``available`` is touched,
        so two receptionists racing for the same badge cannot both win.
        """
        self.db.flush()
        result = self.db.execute(
            update(Badge)
            .where(Badge.id == badge_id, Badge.status == BadgeStatus.available)
            .values(
                status=BadgeStatus.issued,
                current_visitor_id=visitor_id,
                last_issued_at=models.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        badge = self.db.get(Badge, badge_id, populate_existing=True)
        if badge is None:
            raise NotFound(f"Badge {badge_id} not found")
        if result.rowcount == 0:
            raise BadgeUnavailable(f"Badge {badge.badge_number} is {badge.status.value}")
        logger.info("Badge %s issued to visitor %s", badge.badge_number, visitor_id)
        return badge

    def claim(self, badge_type: BadgeType, visitor_id: str) -> Badge:
        """Issue the lowest available badge of a type, skipping rows lost to a concurrent claim."""
        badge_type = BadgeType(badge_type)
        lost_races = set()
        while True:
            query = self._available_query(badge_type)
            if lost_races:
                query = query.filter(Badge.id.notin_(list(lost_races)))
            candidate = query.with_entities(Badge.id).first()
            if candidate is None:
                raise BadgeUnavailable(f"No {badge_type.value} badge available")
            try:
                return self.issue(candidate.id, visitor_id)
            except (BadgeUnavailable, NotFound):
                logger.info("Badge %s was claimed concurrently, trying next", candidate.id)
                lost_races.add(candidate.id)

    def _detach_holder(self, badge: Badge) -> None:
        """Clear the visitor-side linkage of whoever still points at this badge."""
        if not badge.current_visitor_id:
            return
        holder = self.db.get(models.Visitor, badge.current_visitor_id)
        if holder is not None and holder.badge_id == badge.id:
            holder.badge_id = None
            holder.badge_number = None
            logger.info("Detached badge %s from visitor %s", badge.badge_number, holder.id)

    def release(self, badge_id: str) -> Badge:
        """Return a badge to the pool and detach it from its holder. Safe to call twice."""
        badge = self.get(badge_id)
        self._detach_holder(badge)
        if badge.status == BadgeStatus.issued:
            badge.status = BadgeStatus.available
        elif badge.status in RETIRED_STATUSES:
            logger.warning("Badge %s is %s; leaving it out of the pool", badge.badge_number, badge.status.value)
        badge.current_visitor_id = None
        self.db.flush()
        return badge

    def mark(self, badge_id: str, status: BadgeStatus, notes: Optional[str] = None) -> Badge:
        """Retire a badge as lost or damaged and detach it from whoever holds it."""
        status = BadgeStatus(status)
        if status not in RETIRED_STATUSES:
            raise ValidationError(f"Badges can only be marked {', '.join(s.value for s in RETIRED_STATUSES)}")

        badge = self.get(badge_id)
        self._detach_holder(badge)
        badge.status = status
        badge.current_visitor_id = None
        if notes:
            badge.notes = notes
        self.db.flush()
        logger.warning("Badge %s marked %s", badge.badge_number, status.value)
        return badge

    def restore(self, badge_id: str) -> Badge:
        """Administrative reset of a lost/damaged badge."""
        badge = self.get(badge_id)
        if badge.status == BadgeStatus.issued:
            raise InvalidStateTransition(f"badge {badge.badge_number}", badge.status.value, "restore")
        badge.status = BadgeStatus.available
        badge.current_visitor_id = None
        self.db.flush()
        return badge
