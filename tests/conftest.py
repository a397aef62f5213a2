import os

# Must be set before the app (and its engine) is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["BCRYPT_ROUNDS"] = "4"

import fakeredis
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.database import Base, SessionLocal, engine, get_redis

API = "/api/v1"

DEFAULT_PASSWORD = "Passw0rd"


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def client(test_db, fake_redis):
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db_session(test_db):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def register_user(client):
    """Register an account and return (user, auth headers)."""
    def _register(
        name="Alice Adult",
        email="a@x.com",
        password=DEFAULT_PASSWORD,
        user_type="adult",
    ):
        response = client.post(f"{API}/auth/register", json={
            "name": name,
            "email": email,
            "password": password,
            "userType": user_type,
        })
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def patient(register_user):
    return register_user(name="Alice Adult", email="a@x.com", user_type="adult")


@pytest.fixture
def professional(register_user):
    return register_user(
        name="Doctor Grey", email="grey@clinic.com", user_type="health_professional"
    )
