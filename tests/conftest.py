import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test_secret_key"
os.environ["R2_ENDPOINT"] = ""

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient

from penpal.core.security import create_access_token
from penpal.core.storage import blob_storage
from penpal.db.base import Base
from penpal.db.session import SessionLocal, engine, get_db
from penpal.modules.friendships.models.friendship import Friendship
from penpal.modules.user_management.models.user import User


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def deleted_blobs(monkeypatch):
    """Keys passed to the blob store for deletion, in call order"""
    deleted = []

    def record(key):
        if not key:
            return False
        deleted.append(key)
        return True

    monkeypatch.setattr(blob_storage, "delete_object", record)
    return deleted


@pytest.fixture
def make_user(db):
    def _make_user(name="User", is_admin=False, profile_picture=None, birth_date=date(2000, 1, 1)):
        user_id = str(uuid.uuid4())
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            user_name=f"user_{user_id[:8]}",
            name=name,
            gender="other",
            birth_date=birth_date,
            country="NL",
            profile_picture=profile_picture,
            is_admin=is_admin,
            is_active=True,
        )
        db.add(user)
        db.commit()
        return user.id
    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")


@pytest.fixture
def befriend(db):
    """Insert both friendship rows directly"""
    def _befriend(user_a, user_b):
        db.add(Friendship(id=str(uuid.uuid4()), user_id=user_a, friend_id=user_b))
        db.add(Friendship(id=str(uuid.uuid4()), user_id=user_b, friend_id=user_a))
        db.commit()
    return _befriend


@pytest.fixture
def client(db):
    from penpal.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _auth_headers
