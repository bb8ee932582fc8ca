# visitor_api/seed.py
"""Provision hosts and the physical badge pool.

    python -m visitor_api.seed
"""
import logging

from faker import Faker

from .config import get_settings
from .database import SessionLocal, init_db, unit_of_work
from .models import Badge, BadgeType, Host

logger = logging.getLogger(__name__)

BADGE_PREFIXES = {
    BadgeType.visitor: "V",
    BadgeType.contractor: "C",
    BadgeType.vip: "P",
    BadgeType.delivery: "D",
}

DEFAULT_HOSTS = [
    {"id": "H1", "name": "John Smith", "email": "john@techcorp.com", "company": "TechCorp Ltd", "tenant_id": "T1", "floor": "15th Floor"},
    {"id": "H2", "name": "Sarah Johnson", "email": "sarah@designstudio.com", "company": "Design Studio Inc", "tenant_id": "T2", "floor": "22nd Floor"},
    {"id": "H3", "name": "Mike Wilson", "email": "mike@consulting.com", "company": "Wilson Consulting", "tenant_id": "T3", "floor": "8th Floor"},
]


def badge_number(badge_type: BadgeType, n: int) -> str:
    return f"{BADGE_PREFIXES[badge_type]}-{n:03d}"


def seed_hosts(db, extra: int = 0, faker_seed: int = 42) -> int:
    created = 0
    for h in DEFAULT_HOSTS:
        if db.get(Host, h["id"]) is None:
            db.add(Host(**h))
            created += 1

    fake = Faker()
    fake.seed_instance(faker_seed)
    for i in range(extra):
        host_id = f"H{len(DEFAULT_HOSTS) + i + 1}"
        name, company = fake.name(), fake.company()
        if db.get(Host, host_id) is None:
            db.add(Host(
                id=host_id, name=name, email=fake.company_email(), company=company,
                tenant_id=f"T{len(DEFAULT_HOSTS) + i + 1}", floor=f"Floor {fake.random_int(1, 30)}",
            ))
            created += 1
    db.flush()
    return created


def seed_badges(db, per_type: int) -> int:
    existing = {n for (n,) in db.query(Badge.badge_number)}
    created = 0
    for badge_type in BadgeType:
        for n in range(1, per_type + 1):
            number = badge_number(badge_type, n)
            if number in existing:
                continue
            db.add(Badge(badge_number=number, badge_type=badge_type))
            created += 1
    db.flush()
    return created


def seed_data(extra_hosts: int = 5):
    init_db()
    db = SessionLocal()
    try:
        with unit_of_work(db):
            hosts = seed_hosts(db, extra=extra_hosts)
            badges = seed_badges(db, get_settings().seed_badges_per_type)
        logger.info("Seeding complete: %d hosts, %d badges added", hosts, badges)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=get_settings().log_level)
    seed_data()
