"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite database per test
- A seeded church and staff users of every role
- HTTPX AsyncClient with session cookie and CSRF header
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Must be set before tracker modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["GEMINI_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.core.deps import COOKIE_NAME, get_ai_provider, get_db
from tracker.core.security import create_session_token, hash_password
from tracker.db.base import Base
from tracker.db.enums import Pathway, Role
from tracker.db.models import Church, Stage, User
from tracker.main import app
from tracker.schemas.auth import UserSession
from tracker.services import auth_service, pipeline_service

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def church(db: Session) -> Church:
    """A church with both default pathways seeded."""
    church = auth_service.create_church(db, "Grace Church", email="office@gracechurch.org")
    db.commit()
    db.refresh(church)
    return church


@pytest.fixture(scope="function")
def newcomer_stages(db: Session, church: Church) -> list[Stage]:
    return pipeline_service.list_stages(db, church.id, Pathway.NEWCOMER)


@pytest.fixture(scope="function")
def believer_stages(db: Session, church: Church) -> list[Stage]:
    return pipeline_service.list_stages(db, church.id, Pathway.NEW_BELIEVER)


# =============================================================================
# Users and sessions
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session, church: Church):
    """Factory for staff users. Only users given a password can log in."""
    def _make(
        role: Role = Role.VOLUNTEER,
        email: str | None = None,
        password: str | None = None,
        church_id: uuid.UUID | None = None,
    ) -> User:
        user = User(
            church_id=church_id or church.id,
            email=email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@gracechurch.org",
            first_name=role.value.replace("_", " ").title(),
            last_name="Tester",
            role=role.value,
            password_hash=hash_password(password) if password else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def session_for(user: User) -> UserSession:
    return UserSession(
        user_id=user.id,
        church_id=user.church_id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


@pytest.fixture(scope="function")
def admin_user(make_user) -> User:
    return make_user(Role.ADMIN)


@pytest.fixture(scope="function")
def volunteer_user(make_user) -> User:
    return make_user(Role.VOLUNTEER)


@pytest.fixture(scope="function")
def admin(admin_user: User) -> UserSession:
    return session_for(admin_user)


@pytest.fixture(scope="function")
def volunteer(volunteer_user: User) -> UserSession:
    return session_for(volunteer_user)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class AuthContext:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME

    @property
    def bearer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def auth_for(user: User) -> AuthContext:
    token = create_session_token(
        user_id=user.id,
        church_id=user.church_id,
        role=user.role,
        token_version=user.token_version,
    )
    return AuthContext(user=user, token=token)


@pytest.fixture(scope="function")
def admin_auth(admin_user: User) -> AuthContext:
    return auth_for(admin_user)


@pytest.fixture(scope="function")
def volunteer_auth(volunteer_user: User) -> AuthContext:
    return auth_for(volunteer_user)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_provider] = lambda: None
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(override_db) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def authed_client(
    override_db,
    admin_auth: AuthContext,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient authenticated as an ADMIN via session cookie and CSRF header.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={admin_auth.cookie_name: admin_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c


@pytest.fixture(scope="function")
def as_session():
    """UserSession builder for service-level calls."""
    return session_for


@pytest.fixture(scope="function")
def as_auth():
    """Token builder for any user."""
    return auth_for
