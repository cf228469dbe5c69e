import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert

from pairing import models
from pairing.database import Base, SessionLocal, engine
from pairing.services.rate_limit import limiter

NOW = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_member(db):
    def _make(member_id: str | None = None, **overrides):
        values = {
            "id": member_id or str(uuid.uuid4()),
            "username": None,
            "is_active": True,
            "last_active_at": NOW - timedelta(hours=2),
            "flake_streak": 0,
            "blocked_ids": [],
            "global_feed_opt_in": True,
            "priority_next_pairing": False,
        }
        values.update(overrides)
        db.execute(insert(models.Member.__table__).values(**values))
        db.commit()
        return values["id"]

    return _make


@pytest.fixture
def make_pairing(db):
    def _make(member_a: str = "alice", member_b: str = "bob", **overrides):
        values = {
            "id": str(uuid.uuid4()),
            "pairing_date": NOW.date(),
            "expires_at": NOW + timedelta(hours=4),
            "member_a": member_a,
            "member_b": member_b,
            "status": "pending",
            "companion_conversation_id": str(uuid.uuid4()),
            "is_artificial_completion": False,
            "is_private": False,
        }
        values.update(overrides)
        db.execute(insert(models.Pairing.__table__).values(**values))
        db.commit()
        return values["id"]

    return _make
