import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from notes_manager.api.config import Settings, get_settings  # noqa: E402
from notes_manager.api.main import app  # noqa: E402
from notes_manager.api.security import get_password_hash  # noqa: E402
from notes_manager.db.db import get_db, init_db  # noqa: E402
from notes_manager.db.models import Base, User, normalize_email  # noqa: E402

PASSWORD = "Secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    """Settings handed to the app in place of the environment-derived ones."""
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret-key",
        access_token_expire_minutes=60,
        password_min_length=8,
    )


@pytest.fixture
def client(session_factory, settings):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Insert a user straight into the store, bypassing the HTTP layer."""
    def _make_user(email="owner@example.com", first_name="Ada", last_name="Lovelace"):
        user = User(
            email=email,
            normalized_email=normalize_email(email),
            password_hash=get_password_hash(PASSWORD),
            first_name=first_name,
            last_name=last_name,
            description="",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def register(client):
    """Register through the API and return the session payload."""
    def _register(email="alice@example.com", password=PASSWORD, first_name="Alice", last_name="Smith"):
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "firstName": first_name, "lastName": last_name},
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _register


@pytest.fixture
def auth_headers(register):
    def _auth_headers(email="alice@example.com"):
        token = register(email=email)["token"]
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers
