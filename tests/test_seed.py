from visitor_api.badges import BadgeInventory
from visitor_api.models import Host
from visitor_api.seed import seed_badges, seed_hosts


def test_seed_badges_is_idempotent(db):
    assert seed_badges(db, per_type=3) == 12
    db.commit()
    assert seed_badges(db, per_type=3) == 0
    assert seed_badges(db, per_type=4) == 4
    db.commit()

    stats = BadgeInventory(db).stats()
    assert stats["total"] == 16
    assert stats["by_type"]["vip"]["available"] == 4
    assert BadgeInventory(db).find_available().badge_number == "V-001"


def test_seed_hosts_adds_faker_extras_once(db):
    # the db fixture already seeded the three default hosts
    assert seed_hosts(db, extra=2) == 2
    db.commit()
    assert seed_hosts(db, extra=2) == 0
    assert db.query(Host).count() == 5
    assert db.get(Host, "H5").tenant_id == "T5"
