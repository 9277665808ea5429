"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["CORS_ORIGINS"] = '["http://localhost:5173"]'
os.environ.pop("JWT_AUDIENCE", None)
os.environ.pop("SENTRY_DSN", None)

from authentication.auth import create_access_token  # noqa: E402
from models.roles import Role, Visibility  # noqa: E402
from repositories.database import Base, get_db  # noqa: E402
import models.schemas as schemas  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "user-owner"
ADMIN_ID = "user-admin"
MEMBER_ID = "user-member"
VIEWER_ID = "user-viewer"
OUTSIDER_ID = "user-outsider"


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with overridden database dependency."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# Factories


def make_project(
    db, name: str = "Acme App", owner_id: str = OWNER_ID, **settings
) -> db_models.Project:
    """Create a project through the service, optionally overriding settings."""
    from services.project_service import ProjectService

    project = ProjectService.create_project(
        db, schemas.ProjectCreate(name=name), owner_id=owner_id
    )
    if settings:
        project.settings = {**project.settings, **settings}
        db.commit()
        db.refresh(project)
    return project


def add_member(
    db, project: db_models.Project, user_id: str, role: Role
) -> db_models.Membership:
    membership = db_models.Membership(
        project_id=project.id, user_id=user_id, email=f"{user_id}@example.com", role=role
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def make_feedback(
    db,
    project: db_models.Project,
    title: str = "Crash on login",
    type: db_models.FeedbackType = db_models.FeedbackType.FEATURE,
    visibility: Optional[Visibility] = Visibility.COMMUNITY,
    author_id: Optional[str] = MEMBER_ID,
    **kwargs,
) -> db_models.Feedback:
    from services.feedback_service import FeedbackService

    return FeedbackService.create_feedback(
        db,
        project,
        title=title,
        description=kwargs.pop("description", "Steps to reproduce..."),
        type=type,
        visibility=visibility,
        author_id=author_id,
        **kwargs,
    )


def make_sdk_user(
    db,
    project: db_models.Project,
    external_id: str = "alice-ios",
    email: Optional[str] = "alice@example.com",
) -> db_models.SdkUser:
    from services.sdk_identity_service import SdkIdentityService

    return SdkIdentityService.identify(db, project.id, external_id, email=email)


def auth_headers_for(
    user_id: str, email: Optional[str] = None, email_verified: bool = False
) -> dict:
    token = create_access_token(user_id, email=email, email_verified=email_verified)
    return {"Authorization": f"Bearer {token}"}


# Fixtures


@pytest.fixture
def project(db_session) -> db_models.Project:
    """Project owned by OWNER_ID with an admin, a member and a viewer."""
    project = make_project(db_session)
    add_member(db_session, project, ADMIN_ID, Role.ADMIN)
    add_member(db_session, project, MEMBER_ID, Role.MEMBER)
    add_member(db_session, project, VIEWER_ID, Role.VIEWER)
    return project


@pytest.fixture
def memberships(db_session, project) -> dict[str, db_models.Membership]:
    """Memberships of the project fixture keyed by user ID."""
    rows = (
        db_session.query(db_models.Membership)
        .filter(db_models.Membership.project_id == project.id)
        .all()
    )
    return {row.user_id: row for row in rows}


@pytest.fixture
def feature(db_session, project) -> db_models.Feedback:
    """Public feature request in the project fixture."""
    return make_feedback(db_session, project, title="Dark mode")


@pytest.fixture
def owner_headers() -> dict:
    return auth_headers_for(OWNER_ID, email="owner@example.com", email_verified=True)


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers_for(ADMIN_ID, email="admin@example.com", email_verified=True)


@pytest.fixture
def member_headers() -> dict:
    return auth_headers_for(MEMBER_ID, email="member@example.com", email_verified=True)


@pytest.fixture
def viewer_headers() -> dict:
    return auth_headers_for(VIEWER_ID, email="viewer@example.com", email_verified=True)


@pytest.fixture
def outsider_headers() -> dict:
    return auth_headers_for(OUTSIDER_ID, email="outsider@example.com")
