import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from visitor_api.database import build_engine, get_db, init_db
from visitor_api.main import app
from visitor_api.models import Badge, BadgeType
from visitor_api.seed import badge_number, seed_hosts

# --- 1. SETUP FIXTURES ---

@pytest.fixture
def engine(tmp_path):
    # file-backed so that several threads/sessions see the same database
    eng = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def TestingSessionLocal(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(TestingSessionLocal):
    session = TestingSessionLocal()
    seed_hosts(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def client(db, TestingSessionLocal):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def add_badges(db):
    """Provision `count` badges of a type, numbered from `start`."""
    def _add(count, badge_type=BadgeType.visitor, start=1):
        badges = [
            Badge(badge_number=badge_number(badge_type, n), badge_type=badge_type)
            for n in range(start, start + count)
        ]
        db.add_all(badges)
        db.commit()
        return badges
    return _add


@pytest.fixture
def visitor_draft():
    def _draft(**overrides):
        draft = {
            "name": "Jane Doe",
            "email": "jane@x.com",
            "phone": "555-0100",
            "host_id": "H1",
            "purpose": "Meeting",
        }
        draft.update(overrides)
        return draft
    return _draft
