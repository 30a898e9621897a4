import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.database import Base, get_db
from app.models.user import User
from app.routers import auth
from app.services.user_service import hash_password

TEST_DB_URL = "sqlite:///:memory:"
PASSWORD = "admin123"


@pytest.fixture(scope="function")
def session_factory():
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Ensure all connections share same in-memory DB
    )
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine)
    yield TestSession
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    auth._login_attempts.clear()

    db = session_factory()
    db.add(User(username="admin", email="admin@test.com", hashed_password=hash_password(PASSWORD), role="admin"))
    db.commit()
    db.close()

    with TestClient(app, follow_redirects=True) as c:
        c.post("/login", data={"username": "admin", "password": PASSWORD, "next": "/"})
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def add_user(session_factory):
    """Create a user with the shared test password and return its id."""
    def _add(username, role="crew", is_active=True):
        db = session_factory()
        user = User(
            username=username,
            email=f"{username}@test.com",
            hashed_password=hash_password(PASSWORD),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        user_id = user.id
        db.close()
        return user_id
    return _add


@pytest.fixture
def login(client):
    """Switch the client's session to another user."""
    def _login(username, password=PASSWORD):
        client.get("/logout", follow_redirects=False)
        return client.post("/login", data={"username": username, "password": password, "next": "/"})
    return _login


@pytest.fixture
def add_equipment(client):
    def _add(barcode, name=None, **fields):
        res = client.post("/api/equipment", json={"barcode": barcode, "name": name or f"Item {barcode}", **fields})
        assert res.status_code == 201, res.text
        return res.json()["id"]
    return _add
