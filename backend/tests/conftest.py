import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.dialects.sqlite import base as sqlite_base
from sqlalchemy.orm import sessionmaker

import feedback_hub.models  # noqa: F401  register models with Base.metadata
from feedback_hub.core.config import settings
from feedback_hub.core.database import Base, get_db
from feedback_hub.main import app as fastapi_app
from feedback_hub.models.user import User
from feedback_hub.services.auth import create_access_token, hash_password

# ---------------------------------------------------------------------------
# SQLite compatibility for PostgreSQL-specific types (JSONB)
# ---------------------------------------------------------------------------
sqlite_base.SQLiteTypeCompiler.visit_JSONB = lambda self, type_, **kw: self.visit_JSON(type_, **kw)

# In-memory SQLite for tests, no PostgreSQL dependency needed
TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "strongpassword123"


@pytest.fixture(autouse=True)
def setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def widget_dir(tmp_path, monkeypatch):
    """Write generated widgets into a per-test directory."""
    path = tmp_path / "public"
    monkeypatch.setattr(settings, "WIDGET_DIR", str(path))
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://feedback.test")
    return path


@pytest.fixture
def db():
    """Provide a test database session."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """TestClient with overridden DB dependency."""

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def make_user(db, username="editor", email="editor@example.com", role="user", **overrides) -> User:
    """Insert a user directly into the DB and return it."""
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
        **overrides,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def admin(db):
    return make_user(db, username="admin", email="admin@example.com", role="admin")
