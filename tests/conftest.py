import os
import sys
import tempfile
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# The module-level engine is built at import time; keep it away from the working tree.
_IMPORT_DB_DIR = tempfile.mkdtemp(prefix="presentations-db-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_IMPORT_DB_DIR}/import.db")

from app import app as gateway_app  # noqa: E402
from database import get_db, init_database  # noqa: E402
from services.auth import create_access_token  # noqa: E402
from services.presentations.app import app as presentations_app  # noqa: E402
from services.presentations.repository import PresentationRepository  # noqa: E402
from shared.enums import UserRole  # noqa: E402
from shared.models import Identity  # noqa: E402
from shared.utils import config as service_config  # noqa: E402

SERVICE_APPS = [presentations_app, gateway_app]

FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class FixedClock:
    """Settable clock injected into components under test."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker:
    """Create a SQLite session factory backed by a fresh database file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    init_database(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(db_session: Session) -> PresentationRepository:
    return PresentationRepository(db_session)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(autouse=True)
def test_environment(tmp_path: Path, session_factory: sessionmaker) -> Generator:
    """Configure dependency overrides and storage paths per-test."""
    upload_root = tmp_path / "uploads"
    original_upload_root = service_config.get("upload_root")
    service_config.set("upload_root", str(upload_root))

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    for service_app in SERVICE_APPS:
        service_app.dependency_overrides[get_db] = _get_test_db

    try:
        yield
    finally:
        for service_app in SERVICE_APPS:
            service_app.dependency_overrides.pop(get_db, None)
        service_config.set("upload_root", original_upload_root)


@pytest.fixture
def faculty() -> Identity:
    return Identity(id="faculty-1", role=UserRole.FACULTY, email="prof.ada@university.edu", name="Ada Lovelace")


@pytest.fixture
def other_faculty() -> Identity:
    return Identity(id="faculty-2", role=UserRole.FACULTY, email="prof.alan@university.edu", name="Alan Turing")


@pytest.fixture
def admin() -> Identity:
    return Identity(id="admin-1", role=UserRole.ADMIN, email="registrar@university.edu", name="Registrar")


@pytest.fixture
def student() -> Identity:
    return Identity(id="student-1", role=UserRole.STUDENT, email="grace@university.edu", name="Grace Hopper")


@pytest.fixture
def student_two() -> Identity:
    return Identity(id="student-2", role=UserRole.STUDENT, email="linus@university.edu", name="Linus Pauling")


@pytest.fixture
def student_three() -> Identity:
    return Identity(id="student-3", role=UserRole.STUDENT, email="marie@university.edu", name="Marie Curie")


def auth_headers(identity: Identity) -> dict[str, str]:
    token = create_access_token(
        {"sub": identity.id, "role": identity.role.value, "email": identity.email, "name": identity.name}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def presentation_payload() -> Callable[..., dict[str, Any]]:
    """Build a create payload whose registration window is open at ``FIXED_NOW``."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": "Capstone Presentations",
            "description": "Final year project presentations",
            "venue": "Room 101",
            "registration_period": {
                "start": (FIXED_NOW - timedelta(days=7)).isoformat(),
                "end": (FIXED_NOW + timedelta(days=7)).isoformat(),
            },
            "presentation_period": {
                "start": date(2025, 3, 20).isoformat(),
                "end": date(2025, 3, 20).isoformat(),
            },
            "participation_type": "individual",
            "slot_config": {
                "start_time": "09:00",
                "end_time": "10:00",
                "duration_minutes": 30,
                "buffer_minutes": 0,
            },
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def live_payload(presentation_payload: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Create payload anchored on the real clock, for requests through the HTTP apps."""

    def _build(**overrides: Any) -> dict[str, Any]:
        now = datetime.now(UTC)
        start_day = (now + timedelta(days=10)).date()
        base = presentation_payload(
            registration_period={
                "start": (now - timedelta(days=1)).isoformat(),
                "end": (now + timedelta(days=5)).isoformat(),
            },
            presentation_period={"start": start_day.isoformat(), "end": start_day.isoformat()},
        )
        base.update(overrides)
        return base

    return _build
