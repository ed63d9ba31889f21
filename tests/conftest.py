import os
import tempfile

# app.database가 import 시점에 엔진을 만들기 때문에 import 전에 설정
_DB_DIR = tempfile.mkdtemp(prefix="tablemate-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["AUTO_MIGRATE"] = "0"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.base import Base  # noqa: E402
from app.models.user import User  # noqa: E402
from app.routers import meetups as meetups_router  # noqa: E402
from app.services import participant_registry  # noqa: E402


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def published(monkeypatch):
    """Redis 발행 대신 이벤트를 리스트에 기록."""
    events = []

    async def fake_participants_updated(meetup_id, current_participants, max_participants, status):
        events.append(
            {
                "type": "participants_updated",
                "meetup_id": meetup_id,
                "current_participants": current_participants,
                "max_participants": max_participants,
                "status": status,
            }
        )

    async def fake_status_changed(meetup_id, status):
        events.append({"type": "meetup_status_changed", "meetup_id": meetup_id, "status": status})

    monkeypatch.setattr(meetups_router, "publish_participants_updated", fake_participants_updated)
    monkeypatch.setattr(meetups_router, "publish_meetup_status_changed", fake_status_changed)
    return events


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(user_id=None, username=None, **fields):
        counter["n"] += 1
        name = username or f"diner{counter['n']}"
        user = User(id=user_id, username=name, email=f"{name}@example.com", **fields)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_meetup(db, make_user):
    def _make(creator=None, meetup_type="group", title="Friday dinner", **fields):
        creator = creator or make_user()
        data = {"title": title, "meetup_type": meetup_type, **fields}
        return participant_registry.create_meetup(db, creator.id, data)

    return _make
