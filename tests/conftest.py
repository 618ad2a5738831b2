import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db, configure_sqlite_locking
from models import Gender
from core.room_manager import RoomManager
from core.sheet_manager import SheetManager
from api.websocket import get_notifier
from main import app


class RecordingNotifier:
    """Collects broadcast events instead of emitting them."""

    def __init__(self) -> None:
        self.events = []

    def broadcast(self, event, payload) -> None:
        self.events.append((event, payload))

    def names(self):
        return [event for event, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_locking(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sheet(db):
    return SheetManager.create_sheet(db, "Dormitory A")


@pytest.fixture
def make_room(db, sheet):
    def _make_room(name="Room 1", capacity=2, gender=Gender.MALE, sheet_id=None):
        return RoomManager.create_room(db, name, capacity, gender, sheet_id or sheet.id)
    return _make_room
