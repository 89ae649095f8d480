from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from database import Base  # noqa: E402
from models import User  # noqa: E402
from store import RecordStore  # noqa: E402


def memory_session_factory():
    """Single in-memory engine shared by every session a test opens."""
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def unavailable_session():
    raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))


@pytest.fixture()
def store() -> RecordStore:
    return RecordStore(memory_session_factory())


@pytest.fixture()
def broken_store() -> RecordStore:
    return RecordStore(unavailable_session)


@pytest.fixture()
def manager() -> User:
    return User(id=1, username="Ahmed.Ihsaan", name="Ahmed Ihsaan", role="Front Office Manager", initials="AI")


@pytest.fixture()
def agent() -> User:
    return User(id=2, username="Aishath.Rasha", name="Aishath Rasha", role="GSA", initials="AR")


class FixedClock:
    """Callable clock that tests can move forward by hand."""

    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)
