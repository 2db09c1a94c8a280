import os
import shutil
import tempfile
from pathlib import Path

import pytest

# Configure an isolated database and upload root before importing app modules.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="nyaya_mitra_pytest_"))

os.environ["DATABASE_URL"] = f"sqlite:///{_SESSION_DIR / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_SESSION_DIR / "uploads")
os.environ["JWT_SECRET_KEY"] = "test-access-secret-key-with-enough-length"
os.environ["JWT_REFRESH_SECRET_KEY"] = "test-refresh-secret-key-with-enough-length"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ANALYSIS_DELAY_SECONDS"] = "0"
os.environ["ANALYSIS_MAX_WORKERS"] = "2"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from nyaya_mitra.core.config import settings  # noqa: E402
from nyaya_mitra.core.security import get_password_hash  # noqa: E402
from nyaya_mitra.db.database import SessionLocal, drop_db, init_db  # noqa: E402
from nyaya_mitra.db.models import User, UserRole  # noqa: E402
from nyaya_mitra.main import app  # noqa: E402
from nyaya_mitra.services.analysis_service import analysis_worker_pool  # noqa: E402

PASSWORD = "Passw0rd!"


def pytest_sessionfinish(session, exitstatus):
    """Cleanup temporary test files after the test session."""
    analysis_worker_pool.shutdown(wait=True)
    shutil.rmtree(_SESSION_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts with empty tables and an empty upload directory."""
    analysis_worker_pool.shutdown(wait=True)
    drop_db()
    init_db()
    shutil.rmtree(settings.upload_path, ignore_errors=True)
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    yield
    analysis_worker_pool.shutdown(wait=True)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def register_user(client):
    """Register through the API and return the JSON body."""
    def _register(username="asha", email="asha@test.com", password=PASSWORD, full_name="Asha Rao", **extra):
        body = {
            "username": username,
            "email": email,
            "password": password,
            "fullName": full_name,
            **extra,
        }
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 201, response.text
        return response.json()
    return _register


@pytest.fixture
def auth_headers(register_user):
    data = register_user()
    return {"Authorization": f"Bearer {data['tokens']['accessToken']}"}


@pytest.fixture
def make_user(client, db_session):
    """
    Insert a user with any role directly, log in through the API and
    return (user_id, headers).
    """
    def _make(username, role=UserRole.citizen, email=None, password=PASSWORD):
        email = email or f"{username}@test.com"
        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            full_name=username.title(),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.json()["tokens"]["accessToken"]
        return user.id, {"Authorization": f"Bearer {token}"}
    return _make
