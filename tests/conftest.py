import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import Base
import app.models  # noqa: F401 (registers all models)
from app.models.user import User
from app.models.equipment import Equipment, EquipmentStatus, Condition
import app.services.log_service as log_svc


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db():
    engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _clear_pending_logs():
    log_svc._pending.clear()
    yield
    log_svc._pending.clear()


@pytest.fixture
def make_user(db):
    def _make(username="u1", role="crew", is_active=True):
        user = User(
            username=username,
            email=f"{username}@test.com",
            name=username.title(),
            hashed_password="x",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_equipment(db):
    def _make(barcode, status=EquipmentStatus.AVAILABLE, condition=Condition.OK, assigned_to=None, name=None):
        item = Equipment(
            barcode=barcode,
            name=name or f"Item {barcode}",
            category="Camera",
            location="Shelf A",
            status=status,
            condition=condition,
            assigned_to=assigned_to,
        )
        db.add(item)
        db.commit()
        return item
    return _make
