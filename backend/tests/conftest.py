"""Pytest fixtures for the vault test suite.

Provides reusable test fixtures for:
- A fresh SQLite database per test (file-backed, foreign keys on)
- A controllable clock
- Audit writer, local blob store and service instances
- Test users with different roles (ADMIN, BANK_OFFICER, USER)
- Authenticated test clients with JWT tokens

Usage:
    def test_list_documents(auth_client, alice):
        response = auth_client(alice).get("/api/v1/documents")
        assert response.status_code == 200
"""

import sys
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Generator

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("OTP_DELIVERY", "response")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from securevault.audit.service import AuditService
from securevault.auth.jwt import create_access_token
from securevault.auth.password import hash_password
from securevault.database import build_engine, get_db
from securevault.dependencies import get_clock, get_session_factory, get_storage
from securevault.infrastructure.storage.local_storage_adapter import LocalBlobStorageAdapter
from securevault.models import Base, User


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite database, created empty for each test."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'vault.db'}")
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture(scope="function")
def audit(session_factory, clock) -> AuditService:
    return AuditService(session_factory, clock=clock)


@pytest.fixture(scope="function")
def storage(tmp_path) -> LocalBlobStorageAdapter:
    """Local blob store in a ready upload directory (the app lifespan does not run under TestClient)."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    return LocalBlobStorageAdapter(str(upload_dir))


@pytest.fixture(scope="function")
def samples() -> SimpleNamespace:
    """Minimal byte payloads carrying each supported magic signature."""
    return SimpleNamespace(
        pdf=b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n",
        png=b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 32,
        jpeg=b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32,
        docx=b"PK\x03\x04\x14\x00\x06\x00" + b"\x00" * 22 + b"[Content_Types].xml" + b"\x00" * 64,
        doc=b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64,
        gif=b"GIF89a\x01\x00\x01\x00\x00\x00\x00" + b"\x00" * 16,
        text=b"just some plain text, no signature at all",
    )


def _create_user(
    session: Session,
    email: str,
    password: str,
    role: str = "USER",
    first_name: str = "Test",
    last_name: str = "User",
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope="function")
def create_user(db_session: Session) -> Callable[..., User]:
    """Factory for additional users: create_user("x@test.com", "Secret1!", role="USER")."""
    def _factory(email: str, password: str = "UserP@ss123", **kwargs) -> User:
        return _create_user(db_session, email, password, **kwargs)

    return _factory


@pytest.fixture(scope="function")
def alice(db_session: Session) -> User:
    """Create a USER who owns documents in most tests."""
    return _create_user(db_session, "alice@test.com", "AliceP@ss123", first_name="Alice", last_name="Owner")


@pytest.fixture(scope="function")
def bob(db_session: Session) -> User:
    """Create a second USER, usually the share recipient."""
    return _create_user(db_session, "bob@test.com", "BobP@ss123", first_name="Bob", last_name="Grantee")


@pytest.fixture(scope="function")
def officer_user(db_session: Session) -> User:
    """Create a BANK_OFFICER user for testing."""
    return _create_user(
        db_session, "officer@test.com", "OfficerP@ss123",
        role="BANK_OFFICER", first_name="Olga", last_name="Officer",
    )


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    """Create an ADMIN user for testing."""
    return _create_user(
        db_session, "admin@test.com", "AdminP@ss123",
        role="ADMIN", first_name="Ada", last_name="Admin",
    )


@pytest.fixture(scope="function")
def app(session_factory, storage, clock):
    """FastAPI app wired to the per-test database, blob store and clock."""
    from securevault.main import app as fastapi_app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    fastapi_app.dependency_overrides[get_clock] = lambda: clock

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Unauthenticated test client."""
    return TestClient(app)


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_client(app) -> Callable[[User], TestClient]:
    """Factory for a test client carrying a bearer token for the given user."""
    def _factory(user: User) -> TestClient:
        return TestClient(app, headers=auth_headers(user))

    return _factory
