"""Shared fixtures: in-memory database per test and a throwaway encryption key."""

import os
import tempfile

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "development"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="field-encryption-logs-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from Security.key_management import generate_key
from app import models  # noqa: F401
from app.database import Base, get_db
from app.main import app


@pytest.fixture
def encryption_key(monkeypatch) -> str:
    key = generate_key()
    monkeypatch.setenv("ENCRYPTION_KEY", key)
    monkeypatch.delenv("DECRYPTION_KEYS", raising=False)
    return key


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="client")
def client_fixture(session_factory, encryption_key):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
