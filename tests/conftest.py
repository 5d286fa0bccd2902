import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"

from konfi.core.security import hash_password
from konfi.db.base import Base
from konfi.db.seeds.seed_permissions import seed_permissions
from konfi.db.session import get_db
from konfi.main import app
from konfi.models import Role, User
from konfi.services.organization_service import organization_service

PASSWORD = "password123"

# Test database setup
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_org(db_session, slug, admin_username):
    result = organization_service.create_organization(
        db_session,
        name=slug.replace("-", " ").title(),
        slug=slug,
        display_name=f"Gemeinde {slug}",
        admin_username=admin_username,
        admin_password=PASSWORD,
        admin_display_name=f"{admin_username} (Org Admin)",
    )
    return result["organization"]


@pytest.fixture
def org(db_session):
    """Organization with system roles, default settings and org admin 'orgadmin'."""
    seed_permissions(db_session)
    return _create_org(db_session, "st-marien", "orgadmin")


@pytest.fixture
def other_org(db_session, org):
    """A second organization with org admin 'otheradmin'."""
    return _create_org(db_session, "st-paul", "otheradmin")


@pytest.fixture
def roles(db_session, org):
    """Role name -> Role for the main organization."""
    return {
        r.name: r
        for r in db_session.query(Role).filter(Role.organization_id == org.id).all()
    }


@pytest.fixture
def make_user(db_session, org):
    """Factory creating an active user with a role of the given name."""

    def _make(username, role_name, organization=None, display_name=None):
        organization = organization or org
        role = (
            db_session.query(Role)
            .filter(Role.organization_id == organization.id, Role.name == role_name)
            .one()
        )
        user = User(
            organization_id=organization.id,
            role_id=role.id,
            username=username,
            display_name=display_name or username.title(),
            password_hash=hash_password(PASSWORD),
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def login(client):
    """Log in and return Authorization headers."""

    def _login(username, password=PASSWORD):
        response = client.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def org_admin(db_session, org):
    return db_session.query(User).filter(User.username == "orgadmin").one()


@pytest.fixture
def admin_user(make_user):
    return make_user("pastor", "admin")


@pytest.fixture
def teamer_user(make_user):
    return make_user("teamer1", "teamer")


@pytest.fixture
def konfi_user(make_user):
    return make_user("konfi1", "konfi", display_name="Anna Konfi")


@pytest.fixture
def org_admin_headers(login, org):
    return login("orgadmin")


@pytest.fixture
def admin_headers(login, admin_user):
    return login("pastor")


@pytest.fixture
def teamer_headers(login, teamer_user):
    return login("teamer1")


@pytest.fixture
def konfi_headers(login, konfi_user):
    return login("konfi1")
