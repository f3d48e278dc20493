import os

# Must be set before backend.app.* builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.api.deps import get_db
from backend.app.core.security import create_access_token, get_password_hash
from backend.app.db.base import Base
from backend.app.db.models.models_v1 import Hotel, Item, User, Vendor
from backend.app.db.models.core_types import Role
from backend.app.main import app
from backend.services import inventory

TEST_PASSWORD = "Secret123!"


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test; StaticPool keeps it on one connection."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Session:
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


# ---------- MASTER DATA ----------
@pytest.fixture
def hotel(db_session) -> Hotel:
    h = Hotel(name="Grand Palace", branch="Downtown", location="MG Road", code="GRA-DOW", is_active=True)
    db_session.add(h)
    db_session.commit()
    return h


@pytest.fixture
def other_hotel(db_session) -> Hotel:
    h = Hotel(name="Sea View", branch="Beach", location="Coast Road", code="SEA-BEA", is_active=True)
    db_session.add(h)
    db_session.commit()
    return h


@pytest.fixture
def rice(db_session) -> Item:
    i = Item(name="Rice", category="Grains", unit="kg", default_gst_percentage=Decimal("5"), last_procured_price=Decimal("0"))
    db_session.add(i)
    db_session.commit()
    return i


@pytest.fixture
def oil(db_session) -> Item:
    i = Item(name="Sunflower Oil", category="Oils", unit="l", default_gst_percentage=Decimal("12"), last_procured_price=Decimal("0"))
    db_session.add(i)
    db_session.commit()
    return i


@pytest.fixture
def vendor(db_session) -> Vendor:
    v = Vendor(name="Fresh Farms", contact_person="Ravi", is_active=True)
    db_session.add(v)
    db_session.commit()
    return v


# ---------- USERS ----------
@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role: Role, hotel: Hotel | None = None, *, active: bool = True) -> User:
        counter["n"] += 1
        u = User(
            name=f"{role.value} {counter['n']}",
            email=f"{role.value}{counter['n']}@example.com",
            password_hash=get_password_hash(TEST_PASSWORD),
            role=role,
            hotel_id=hotel.id if hotel else None,
            is_active=active,
        )
        db_session.add(u)
        db_session.commit()
        return u

    return _make


def headers_for(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value, "hotel_id": user.hotel_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def superadmin(make_user) -> User:
    return make_user(Role.superadmin)


@pytest.fixture
def md(make_user) -> User:
    return make_user(Role.md)


@pytest.fixture
def officer(make_user) -> User:
    return make_user(Role.procurement_officer)


@pytest.fixture
def store_manager(make_user) -> User:
    return make_user(Role.store_manager)


@pytest.fixture
def accounts(make_user) -> User:
    return make_user(Role.accounts)


@pytest.fixture
def hotel_manager(make_user, hotel) -> User:
    return make_user(Role.hotel_manager, hotel)


# ---------- STOCK ----------
@pytest.fixture
def receive(db_session, superadmin):
    """Put stock straight into the central store, committed."""

    def _receive(item: Item, quantity, unit: str | None = None, *, on: date | None = None):
        entry = inventory.post_inward(
            db_session,
            item_id=item.id,
            quantity=Decimal(str(quantity)),
            unit=unit or item.unit,
            entry_date=on or date(2026, 1, 1),
            source_vendor="Fresh Farms",
            created_by=superadmin.id,
        )
        db_session.commit()
        return entry

    return _receive


@pytest.fixture
def auth():
    """auth(user) -> Authorization header for that user."""
    return headers_for
