import os
import pathlib
import sys
import tempfile

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


def pytest_configure():
    if os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL"):
        return
    temp_dir = tempfile.mkdtemp(prefix="restaurant-sim-tests-")
    db_path = pathlib.Path(temp_dir) / "pytest.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"


@pytest.fixture(scope="session")
def sqlite_engine():
    from restaurant_sim.app import models  # noqa: F401
    from restaurant_sim.app.db import Base, engine
    from restaurant_sim.app.sim import models as sim_models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sqlite_session(sqlite_engine):
    from restaurant_sim.app.db import Base, SessionLocal

    session = SessionLocal()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(sqlite_session):
    from restaurant_sim.app.services.setup_state_service import SetupStateStore

    return SetupStateStore(sqlite_session)


@pytest.fixture()
def gateway():
    from restaurant_sim.app.integrations.memory_stub import InMemoryGateway

    return InMemoryGateway()


@pytest.fixture()
def sink():
    from restaurant_sim.app.sim.events import RecordingEventSink

    return RecordingEventSink()


@pytest.fixture()
def stub_settings():
    from restaurant_sim.app.config import Settings

    return Settings(use_stub_gateway=True, seed=7)


@pytest.fixture()
def api_client(sqlite_engine, sqlite_session, gateway, stub_settings):
    from restaurant_sim.app.api.deps import get_remote_gateway, get_settings
    from restaurant_sim.app.db import get_db
    from restaurant_sim.app.main import app
    from fastapi.testclient import TestClient

    def _get_test_db():
        yield sqlite_session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_settings] = lambda: stub_settings
    app.dependency_overrides[get_remote_gateway] = lambda: gateway
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_settings, None)
        app.dependency_overrides.pop(get_remote_gateway, None)
