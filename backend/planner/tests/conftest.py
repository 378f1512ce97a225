"""
Shared fixtures: an in-memory database and a TestClient bound to it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from planner.db.base import Base
from planner.db.session import get_db
from planner.main import app
from planner.schemas.group import GroupCreate, MemberCreate, PermissionFlags
from planner.services import group_service
import planner.models  # noqa: F401

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ACCESS_CODE = "secret-code"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    app.state.group_cache.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def group_with_members(db):
    """Group 'Iceland' with adventurer Alice, and Bob and Carol who may create and modify."""
    group, alice = group_service.create_group(db, GroupCreate(
        name="Iceland", access_code=ACCESS_CODE, traveler_name="Alice"
    ))
    full = PermissionFlags(read=True, create=True, modify=True)
    bob = group_service.add_member(db, group.id, MemberCreate(traveler_name="Bob", permissions=full))
    carol = group_service.add_member(db, group.id, MemberCreate(traveler_name="Carol", permissions=full))
    return group, alice, bob, carol


@pytest.fixture
def login(client):
    """Log the test client in as a traveler; cookies stay on the client."""
    def _login(group_id, traveler_name, device_fingerprint=None, **extra):
        payload = {
            "group_id": group_id,
            "access_code": ACCESS_CODE,
            "traveler_name": traveler_name,
            "device_fingerprint": device_fingerprint,
        }
        payload.update(extra)
        return client.post("/api/auth/login", json=payload)
    return _login
