"""Pytest fixtures for the shop backend tests."""

import os

# Keep the app's own engine off disk; must run before the backend modules load
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("NOTIFY_WEBHOOK_URL", None)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from models.coupon import Coupon
from models.package import Package
from models.product import Product
from models.users import User
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine():
    """In-memory SQLite shared by the test session and the app."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def product(db):
    """Price 100, stock 10."""
    item = Product(name="Stethoscope", description="Dual head", price=Decimal("100.00"), stock=10)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def second_product(db):
    item = Product(name="Thermometer", price=Decimal("50.00"), stock=4)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def package(db, product, second_product):
    """Stock 5, contains the stethoscope and the thermometer (in that order)."""
    pkg = Package(name="Starter Kit", price=Decimal("120.00"), stock=5)
    pkg.set_included_products([product, second_product])
    db.add(pkg)
    db.commit()
    db.refresh(pkg)
    return pkg


@pytest.fixture
def make_coupon(db):
    def _make(code="HALF", percentage=50, **kwargs):
        kwargs.setdefault("used_count", 0)
        coupon = Coupon(code=code, discount_percentage=Decimal(str(percentage)), **kwargs)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return _make


@pytest.fixture
def coupon(make_coupon):
    """Unscoped 50% coupon without caps."""
    return make_coupon()


@pytest.fixture
def user(db):
    u = User(
        email="customer@example.com",
        first_name="Nour",
        last_name="Youssef",
        phone="01000000000",
        governorate="Cairo",
        city="Nasr City",
        address="12 Abbas El Akkad St",
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return {"x-role": "admin"}


@pytest.fixture
def guest_info():
    return {
        "first_name": "Mona",
        "last_name": "Adel",
        "email": "mona@example.com",
        "phone": "01111111111",
        "governorate": "Giza",
        "city": "Dokki",
        "address": "5 Tahrir St",
    }


@pytest.fixture
def reload(db):
    """Re-read an object after another session changed it."""
    def _reload(obj):
        db.expire_all()
        db.refresh(obj)
        return obj
    return _reload
