import os

# Must be set before fieldbook modules read them at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DASHBOARD_QUERY_WORKERS", "1")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from fieldbook.database import get_session, import_models  # noqa: E402
from fieldbook.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are dropped and recreated per test, so tests never see each
#    other's rows (search results depend on the whole table)
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on freshly created tables"""
    import_models()
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


PASSWORD = "Secret123"


def register(client: TestClient, email: str, role: str = "player", first_name: str = "Lionel") -> dict:
    """Register through the API and return auth headers plus the user payload"""
    response = client.post(
        "/api/auth/register",
        json={
            "first_name": first_name,
            "last_name": "Tester",
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "role": role,
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {"headers": {"Authorization": f"Bearer {body['access_token']}"}, "user": body["user"]}


@pytest.fixture
def admin(client: TestClient):
    return register(client, "owner@example.com", role="facility_admin", first_name="Diego")


@pytest.fixture
def player(client: TestClient):
    return register(client, "player@example.com")


@pytest.fixture
def complex_with_field(client: TestClient, admin):
    """One complex (08:00-23:00) with one 5-a-side synthetic field at 10000/h"""
    cx = client.post(
        "/api/complexes",
        json={"name": "La Bombonera Fútbol", "address": "Brandsen 805", "city": "Buenos Aires"},
        headers=admin["headers"],
    )
    assert cx.status_code == 201, cx.text
    field = client.post(
        f"/api/complexes/{cx.json()['id']}/fields",
        json={"name": "Cancha 1", "football_type": 5, "surface": "synthetic", "hourly_price": 10000},
        headers=admin["headers"],
    )
    assert field.status_code == 201, field.text
    return {"complex": cx.json(), "field": field.json()}
