import os

# Point the app at a throwaway database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from blog import crud  # noqa: E402
from blog.database import Base, get_db, make_engine  # noqa: E402
from blog.factories import UserFactory  # noqa: E402
from blog.main import app  # noqa: E402
from blog.models import Tag  # noqa: E402

# In-memory SQLite database shared across connections via StaticPool.
TEST_DATABASE_URL = "sqlite://"

engine_test = make_engine(TEST_DATABASE_URL, poolclass=StaticPool)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine_test,
)


@pytest.fixture()
def db_session():
    """Provide a fresh test database session for each test.

    The schema is dropped and recreated for every test function,
    ensuring complete isolation between tests.
    """
    Base.metadata.drop_all(bind=engine_test)
    Base.metadata.create_all(bind=engine_test)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session):
    """TestClient whose requests are served from the in-memory database."""

    def override_get_db():
        try:
            yield db_session
        finally:
            # Session cleanup is handled by the db_session fixture.
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def user_factory(db_session):
    """Create and commit users; every one of them logs in with "password"."""
    factory = UserFactory()

    def _create_user(**overrides):
        user = factory.create(db_session, **overrides)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture()
def tag_factory(db_session):
    def _create_tags(*labels: str) -> list[Tag]:
        return [crud.add_tag(db_session, label) for label in labels]

    return _create_tags


@pytest.fixture()
def login(client):
    """Log a user in on the shared test client."""

    def _login(user, password: str = "password"):
        response = client.post(
            "/auth/login", json={"email": user.email, "password": password}
        )
        assert response.status_code == 200
        return response

    return _login
