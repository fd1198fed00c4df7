"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests.
Every test gets its own user id, so tests sharing the database never
see each other's rows.
"""
import itertools
import os

SQLITE_URL = "sqlite:///./test_vitalstudy.db"
os.environ.setdefault("DATABASE_URL", SQLITE_URL)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vitalstudy.db.base import Base, get_db
from vitalstudy.main import app
import vitalstudy.models  # noqa: F401

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_user_ids = itertools.count(1000)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user_id():
    return next(_user_ids)


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth(user_id):
    return {"X-User-Id": str(user_id)}
