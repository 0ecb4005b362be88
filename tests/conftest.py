"""Pytest fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_sos_dispatch.db")
os.environ.setdefault("BOOTSTRAP_ADMIN_EMAIL", "admin@test.com")
os.environ.setdefault("BOOTSTRAP_ADMIN_PASSWORD", "adminpass")

import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import select  # noqa: E402

from sos_dispatch.core.broadcaster import Broadcaster  # noqa: E402
from sos_dispatch.core.identity import Identity, Role  # noqa: E402
from sos_dispatch.core.security import hash_password  # noqa: E402
from sos_dispatch.core.ws_manager import SubscriberRegistry  # noqa: E402
from sos_dispatch.db.base import Base  # noqa: E402
from sos_dispatch.db.session import SessionLocal, engine  # noqa: E402
from sos_dispatch.main import app  # noqa: E402
from sos_dispatch.models import Admin, Volunteer, VolunteerStatus  # noqa: E402

ADMIN_EMAIL = os.environ["BOOTSTRAP_ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["BOOTSTRAP_ADMIN_PASSWORD"]


class RecordingBroadcaster(Broadcaster):
    """Broadcaster that keeps published events instead of delivering them."""

    def __init__(self) -> None:
        super().__init__(SubscriberRegistry())
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name.value for e in self.events]


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(setup_db):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def client(setup_db):
    """Test client; entering it runs the lifespan (bootstrap admin, broadcaster)."""
    with TestClient(app) as c:
        yield c


def make_volunteer(db, status=VolunteerStatus.APPROVED, name="Vol") -> Volunteer:
    volunteer = Volunteer(
        name=name,
        email=f"vol_{uuid.uuid4().hex[:8]}@test.com",
        password_hash=hash_password("pass"),
        status=status.value,
    )
    db.add(volunteer)
    db.commit()
    db.refresh(volunteer)
    return volunteer


def volunteer_identity(volunteer: Volunteer) -> Identity:
    return Identity(subject_id=volunteer.id, role=Role.VOLUNTEER, name=volunteer.name)


@pytest.fixture
def admin_identity(db) -> Identity:
    admin = db.execute(select(Admin).where(Admin.email == "svc_admin@test.com")).scalar_one_or_none()
    if admin is None:
        admin = Admin(name="Svc Admin", email="svc_admin@test.com", password_hash=hash_password("pass"))
        db.add(admin)
        db.commit()
        db.refresh(admin)
    return Identity(subject_id=admin.id, role=Role.ADMIN, name=admin.name)
