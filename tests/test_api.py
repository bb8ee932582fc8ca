import pytest

from visitor_api.models import BadgeType, Visitor

JANE = {"name": "Jane Doe", "email": "jane@x.com", "phone": "555-0100", "host_id": "H1", "purpose": "Meeting"}


def create_visitor(client, **overrides):
    response = client.post("/visitors", json={**JANE, **overrides})
    assert response.status_code == 201, response.text
    return response.json()

# ==========================================
# 1. REGISTRATION
# ==========================================

def test_create_visitor(client):
    data = create_visitor(client)
    assert data["status"] == "pending"
    assert data["host_name"] == "John Smith"
    assert data["tenant_id"] == "T1"
    assert len(data["guest_code"]) == 8
    assert data["badge_id"] is None


def test_create_visitor_missing_fields(client):
    response = client.post("/visitors", json={"name": "Nobody"})
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "ValidationError"
    assert "email" in detail["missing_fields"]
    assert "host_id" in detail["missing_fields"]


def test_create_visitor_unknown_host(client):
    response = client.post("/visitors", json={**JANE, "host_id": "H404"})
    assert response.status_code == 404


def test_create_visitor_bad_phone(client):
    response = client.post("/visitors", json={**JANE, "phone": "call me"})
    assert response.status_code == 422

# ==========================================
# 2. LOOKUP & LISTING
# ==========================================

def test_get_visitor_by_either_code(client):
    created = create_visitor(client)
    for code in (created["visitor_id"], created["guest_code"], created["guest_code"].lower()):
        response = client.get(f"/visitor/{code}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]


def test_get_visitor_not_found(client):
    assert client.get("/visitor/ZZZZ9999").status_code == 404


def test_status_all_is_no_filter(client):
    create_visitor(client)
    create_visitor(client, name="Pre", status="pre_registered")
    checked = create_visitor(client, name="In")
    client.post(f"/visitors/{checked['id']}/checkin")

    everyone = client.get("/visitors").json()
    assert len(everyone) == 3
    assert {v["id"] for v in client.get("/visitors", params={"status": "all"}).json()} == {v["id"] for v in everyone}

    pending = client.get("/visitors", params={"status": "pending"}).json()
    assert [v["name"] for v in pending] == ["Jane Doe"]


def test_list_rejects_unknown_status(client):
    assert client.get("/visitors", params={"status": "gone"}).status_code == 422


def test_list_by_tenant_and_date(client):
    created = create_visitor(client)
    create_visitor(client, host_id="H2")
    day = created["created_at"][:10]

    by_tenant = client.get("/visitors", params={"tenantId": "T1"}).json()
    assert [v["id"] for v in by_tenant] == [created["id"]]
    assert len(client.get("/visitors", params={"date": day}).json()) == 2
    assert client.get("/visitors", params={"date": "2000-01-01"}).json() == []


def test_patch_visitor(client):
    created = create_visitor(client)
    response = client.patch(f"/visitors/{created['id']}", json={"purpose": "Interview"})
    assert response.status_code == 200
    assert response.json()["purpose"] == "Interview"
    assert response.json()["name"] == "Jane Doe"


def test_visitor_qr_code(client):
    created = create_visitor(client)
    response = client.get(f"/visitors/{created['id']}/qr")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content[:8] == b"\x89PNG\r\n\x1a\n"

# ==========================================
# 3. CHECK-IN / CHECK-OUT FLOW
# ==========================================

def test_full_flow_with_single_badge(client, add_badges):
    add_badges(1)
    jane = create_visitor(client)
    john = create_visitor(client, name="John Roe", email="john@x.com")

    r = client.post(f"/visitors/{jane['id']}/checkin")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "checked_in"
    assert body["badge_number"] == "V-001"
    assert body["outcome"] == "success"

    r = client.post(f"/visitors/{john['id']}/checkin")
    body = r.json()
    assert r.status_code == 200
    assert body["status"] == "checked_in"
    assert body["badge_id"] is None
    assert body["outcome"] == "partial"
    assert body["warnings"]

    on_site = client.get("/visitors/on-site").json()
    assert {v["id"] for v in on_site} == {jane["id"], john["id"]}

    r = client.post(f"/visitors/{jane['id']}/checkout")
    body = r.json()
    assert body["status"] == "checked_out"
    assert body["badge_id"] is None
    assert body["check_out_time"] is not None

    stats = client.get("/badges/stats").json()
    assert stats["available"] == 1
    assert stats["issued"] == 0


def test_invalid_transitions_conflict(client):
    visitor = create_visitor(client)
    r = client.post(f"/visitors/{visitor['id']}/checkout")
    assert r.status_code == 409
    assert r.json()["detail"]["current_status"] == "pending"

    client.post(f"/visitors/{visitor['id']}/checkin")
    assert client.post(f"/visitors/{visitor['id']}/checkin").status_code == 409


def test_check_in_unknown_visitor(client):
    assert client.post("/visitors/missing/checkin").status_code == 404


def test_check_in_with_badge_type(client, add_badges):
    add_badges(1, badge_type=BadgeType.vip)
    visitor = create_visitor(client)
    r = client.post(f"/visitors/{visitor['id']}/checkin", params={"badge_type": "vip"})
    assert r.json()["badge_number"] == "P-001"


def test_manual_release_never_leaves_two_holders(client, db, add_badges):
    (badge,) = add_badges(1)
    jane = create_visitor(client)
    john = create_visitor(client, name="John Roe", email="john@x.com")

    client.post(f"/visitors/{jane['id']}/checkin")
    r = client.post(f"/badges/{badge.id}/release")
    assert r.json()["status"] == "available"
    assert client.get(f"/visitor/{jane['guest_code']}").json()["badge_id"] is None

    assert client.post(f"/visitors/{john['id']}/checkin").json()["badge_id"] == badge.id

    db.expire_all()
    holders = db.query(Visitor).filter(Visitor.badge_id == badge.id).all()
    assert [v.id for v in holders] == [john["id"]]

    # jane leaves without a badge; john's badge stays issued
    assert client.post(f"/visitors/{jane['id']}/checkout").json()["outcome"] == "success"
    assert client.get("/badges/stats").json()["issued"] == 1


@pytest.mark.parametrize("changes", [
    {"status": "checked_out"},
    {"status": "pending"},
    {"badge_id": None},
])
def test_patch_cannot_change_lifecycle(client, add_badges, changes):
    add_badges(1)
    visitor = create_visitor(client)
    client.post(f"/visitors/{visitor['id']}/checkin")

    assert client.patch(f"/visitors/{visitor['id']}", json=changes).status_code == 422

    r = client.post(f"/visitors/{visitor['id']}/checkout")
    assert r.status_code == 200
    assert r.json()["status"] == "checked_out"
    assert client.get("/badges/stats").json()["available"] == 1


def test_cancel_visitor(client):
    visitor = create_visitor(client, status="pre_registered")
    r = client.post(f"/visitors/{visitor['id']}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    assert client.post(f"/visitors/{visitor['id']}/checkin").status_code == 409
    assert client.post(f"/visitors/{visitor['id']}/cancel").status_code == 409

# ==========================================
# 4. BADGES, HOSTS, HEALTH
# ==========================================

def test_badge_admin_endpoints(client, add_badges):
    badge, spare = add_badges(2)

    listed = client.get("/badges", params={"badge_type": "visitor"}).json()
    assert [b["badge_number"] for b in listed] == ["V-001", "V-002"]

    r = client.post(f"/badges/{badge.id}/mark", json={"status": "lost", "notes": "left the building"})
    assert r.status_code == 200
    assert r.json()["status"] == "lost"

    stats = client.get("/badges/stats").json()
    assert stats["lost"] == 1
    assert stats["by_type"]["visitor"]["available"] == 1

    assert client.post(f"/badges/{badge.id}/restore").json()["status"] == "available"
    assert client.post(f"/badges/{spare.id}/release").json()["status"] == "available"
    assert client.post("/badges/missing/release").status_code == 404


@pytest.mark.parametrize("status", ["issued", "available"])
def test_badge_mark_rejects_non_retired_status(client, add_badges, status):
    (badge,) = add_badges(1)
    assert client.post(f"/badges/{badge.id}/mark", json={"status": status}).status_code == 422


def test_list_hosts(client):
    hosts = client.get("/hosts").json()
    assert {h["id"] for h in hosts} == {"H1", "H2", "H3"}
    assert [h["id"] for h in client.get("/hosts", params={"tenant_id": "T2"}).json()] == ["H2"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["database"] == "connected"
