# Pytest configuration for the API tests.
# Forces a local SQLite DB, disables Redis, removes the assistant's typing delay, and pins the JWT secret.
import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Test-time environment; must be set before the application modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RENTWISE_JWT_SECRET", "test-secret")
os.environ.setdefault("ASSISTANT_REPLY_DELAY_SECONDS", "0")

import sys
# Ensure the repo root is on sys.path so 'rentwise' resolves when running pytest without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from rentwise.main import app  # noqa: E402
from rentwise.db import Base, engine  # noqa: E402
from rentwise.redis_client import reset_redis  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db() -> Iterator[None]:
    """
    Session-level database bootstrap using a local SQLite file.

    Drops and recreates the schema once per test session, and drops it again at the end.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_db() -> Iterator[None]:
    """
    Function-level isolation: drop and recreate the schema before each test.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_redis()
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """
    FastAPI TestClient bound to the application for HTTP-level tests.
    """
    with TestClient(app) as c:
        yield c
