import os

# The app module builds its engine at import time; keep it off the real database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from tournament_engine.cache.standings_cache import TTLMemoryCache  # noqa: E402
from tournament_engine.database import get_session  # noqa: E402
from tournament_engine.main import app  # noqa: E402
from tournament_engine.storage.sql import SqlModelStore  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share one database
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Models are imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped after every test so each test starts empty
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="engine")
def engine_fixture():
    return test_engine


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    from tournament_engine.models.bracket import Bracket  # noqa: F401
    from tournament_engine.models.game import Game  # noqa: F401
    from tournament_engine.models.pool import Pool  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="store")
def store_fixture(session: Session) -> SqlModelStore:
    return SqlModelStore(session)


@pytest.fixture(name="cache")
def cache_fixture() -> TTLMemoryCache:
    return TTLMemoryCache()


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session and an empty standings cache"""
    app.dependency_overrides[get_session] = override_get_session
    app.state.standings_cache = TTLMemoryCache()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
