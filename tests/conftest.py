"""
Department Student Records - Test Configuration and Fixtures
"""
import os
import tempfile

import pytest

# Set testing environment before the package reads its configuration
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="deptrecords-test-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ALLOW_ANONYMOUS_READS"] = "false"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from deptrecords.app import app
from deptrecords.api.routes.auth import create_access_token
from deptrecords.core.database import get_session_factory
from deptrecords.models.base import Base
from deptrecords.utils.user_manager import UserManager

# One in-memory database shared by every session of a test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def session_factory():
    """Create fresh tables for each test and drop them afterwards."""
    Base.metadata.create_all(bind=test_engine)
    yield TestSessionLocal
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """Test client whose requests and background tasks use the test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory creating a user of the given type."""

    def _make_user(username: str, user_type: str = "instructor", **overrides):
        payload = {
            "username": username,
            "password": DEFAULT_PASSWORD,
            "name": username.title(),
            "email": f"{username}@ul.edu.lr",
            "userType": user_type,
        }
        payload.update(overrides)
        return UserManager(db_session).create_user(payload)

    return _make_user


def _auth_headers(user) -> dict:
    token = create_access_token({"sub": user.id, "username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", "admin")


@pytest.fixture
def chairman_user(make_user):
    return make_user("chairman", "chairman")


@pytest.fixture
def instructor_user(make_user):
    return make_user("instructor", "instructor")


@pytest.fixture
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture
def chairman_headers(chairman_user):
    return _auth_headers(chairman_user)


@pytest.fixture
def instructor_headers(instructor_user):
    return _auth_headers(instructor_user)


@pytest.fixture
def record_data():
    """Valid student record payload"""
    return {
        "studentId": "S001",
        "studentName": "Jane Doe",
        "courseCode": "PHY101",
        "courseName": "General Physics I",
        "grade": "A",
        "numericGrade": 92,
        "instructor": "Dr. Kollie",
        "yearCompleted": 2022,
        "semester": "First",
    }
