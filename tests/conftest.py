import pytest
from fastapi.testclient import TestClient

from edupresence.config import Settings
from edupresence.database.sql_store import SqlStore
from edupresence.main import create_app
from edupresence.models import ClassStudent, SchoolClass, User
from edupresence.services.notifications import ConnectionHub
from edupresence.utils.tokens import SessionTokenCodec

TEST_SECRET = "test-secret-key-for-session-tokens-0001"


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def seed(store: SqlStore) -> None:
    with store.SessionLocal() as db:
        db.add_all([
            User(id="T1", name="Ada Teacher"),
            User(id="T2", name="Other Teacher"),
            User(id="S1", name="Sam Student", enrollment_no="E-001"),
            User(id="S2", name="Sky Student", enrollment_no="E-002"),
        ])
        db.flush()
        db.add_all([
            SchoolClass(id="C1", name="Physics 101", teacher_id="T1"),
            SchoolClass(id="C2", name="Chemistry 201", teacher_id="T2"),
        ])
        db.flush()
        db.add_all([
            ClassStudent(class_id="C1", student_id="S1"),
            ClassStudent(class_id="C2", student_id="S1"),
            ClassStudent(class_id="C2", student_id="S2"),
        ])
        db.commit()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1000.0)


@pytest.fixture
def store() -> SqlStore:
    sql_store = SqlStore("sqlite://")
    seed(sql_store)
    return sql_store


@pytest.fixture
def codec() -> SessionTokenCodec:
    return SessionTokenCodec(TEST_SECRET)


@pytest.fixture
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture
def app(store, hub, clock):
    return create_app(settings=Settings(jwt_secret=TEST_SECRET), store=store, hub=hub, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
