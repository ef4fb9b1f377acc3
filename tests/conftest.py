# tests/conftest.py
"""
Pytest configuration for the servicehub core.

Every test gets its own SQLite file database under ``tmp_path`` so that
separate sessions see each other's commits.
"""

import os

# Set testing mode BEFORE any servicehub imports
os.environ["is_testing"] = "true"
os.environ.setdefault("DATABASE_URL", "sqlite:///./servicehub-test.db")
os.environ["DISPATCH_NOTIFICATIONS_INLINE"] = "true"

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from servicehub.database import create_db_engine, init_db
from servicehub.services.booking_lifecycle_service import BookingLifecycleService

from .factories import Parties, RecordingDispatcher, create_parties


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'servicehub.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def parties(db) -> Parties:
    return create_parties(db)


@pytest.fixture
def recorder() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def lifecycle(db, recorder) -> BookingLifecycleService:
    return BookingLifecycleService(db, notification_dispatcher=recorder, dispatch_inline=True)


@pytest.fixture
def app(session_factory, recorder):
    """Application wired to the per-test database and the recording dispatcher."""
    from servicehub.api.dependencies.services import get_notification_dispatcher
    from servicehub.database import get_db
    from servicehub.main import create_app

    application = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_notification_dispatcher] = lambda: recorder
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    # Not used as a context manager so the lifespan (init_db on the default engine) does not run
    return TestClient(app)
