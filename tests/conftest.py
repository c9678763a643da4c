import os
import uuid

# Point settings at SQLite before anything under opschat is imported, so the
# Secrets Manager lookup in opschat.core.config is skipped.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.database import Base, get_db
from opschat.model.operator import Operator
from opschat.session import create_session, session_layer

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class InMemoryRedis:
    """Just the calls the session layer makes."""

    def __init__(self):
        self.store = {}

    def setex(self, key, ttl, value):
        self.store[key] = value

    def get(self, key):
        return self.store.get(key)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def redis_store(monkeypatch):
    fake = InMemoryRedis()
    monkeypatch.setattr(session_layer, "_redis_client", fake)
    return fake


@pytest.fixture
def client(db, redis_store):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_operator(db):
    def _make(username, role_name="Operator", status="active"):
        operator = Operator(
            id=uuid.uuid4(),
            username=username,
            email=f"{username}@example.com",
            role_name=role_name,
            status=status,
        )
        db.add(operator)
        db.commit()
        db.refresh(operator)
        return operator

    return _make


@pytest.fixture
def super_admin(make_operator):
    return make_operator("root", "Super Admin")


@pytest.fixture
def admin(make_operator):
    return make_operator("bea", "Admin")


@pytest.fixture
def member(make_operator):
    return make_operator("alice")


@pytest.fixture
def other_member(make_operator):
    return make_operator("carl")


def context_for(operator) -> OperatorContext:
    return OperatorContext(
        operator_id=operator.id,
        role=OperatorRole.from_role_name(operator.role_name),
    )


@pytest.fixture
def ctx():
    return context_for


@pytest.fixture
def auth(redis_store):
    """Issue a session token for an operator and return the Authorization header."""

    def _auth(operator):
        token = uuid.uuid4().hex
        create_session(
            token,
            {
                "operator_id": str(operator.id),
                "username": operator.username,
                "email": operator.email,
                "role": operator.role_name,
            },
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth
