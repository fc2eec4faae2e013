# tests/conftest.py

from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.testclient import TestClient

from app.main import app
from app.core.dependencies import get_current_user, get_optional_user
from app.db.base import Base
from app.db.session import get_db
from app.helpers.utils import utc_now
from app.models import Coupon, Order, User, Vinyl
from app.schemas.order import CheckoutIn
from app.services.coupons import allocation_service
from app.services.orders import checkout_service
from app.services.points import points_service


# --- Test Database Setup ---
# One in-memory SQLite database per test. Services commit and roll back on
# their own, so tests get a fresh schema instead of an outer transaction.
@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


# --- Factories ---
@pytest.fixture
def make_user(db):
    def _make_user(account="listener", points=0, member_level="mc", is_admin=False):
        user = User(
            account=account,
            name=account.title(),
            email=f"{account}@example.com",
            member_level=member_level,
            points=0,
            is_admin=is_admin,
            is_active=True,
        )
        db.add(user)
        db.commit()
        if points:
            # Seed through the ledger so balance and entries agree
            points_service.credit(db, user.id, points, "Opening balance")
            db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_vinyl(db):
    def _make_vinyl(name="Kind of Blue", price=500, stock=5, category_id=2):
        vinyl = Vinyl(name=name, artist="Various", price=price, stock=stock, main_category_id=category_id, is_active=True)
        db.add(vinyl)
        db.commit()
        db.refresh(vinyl)
        return vinyl

    return _make_vinyl


@pytest.fixture
def make_coupon(db):
    def _make_coupon(code="SPIN100", **overrides):
        now = utc_now()
        values = dict(
            code=code,
            name=f"Coupon {code}",
            content="Test coupon",
            start_at=now - timedelta(days=1),
            end_at=now + timedelta(days=30),
            validity_days=0,
            status="active",
            total_quantity=-1,
            usage_limit=1,
            min_spend=0,
            min_items=1,
            discount_type="fixed",
            discount_value=100,
            target_type="all",
            target_value=None,
            is_valid=True,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make_coupon


@pytest.fixture
def make_order(db):
    """A bare order row, for redemption and cancellation paths that start from an existing order."""
    def _make_order(user, total_price=1000, **overrides):
        values = dict(
            user_id=user.id,
            total_price=total_price,
            amount_due=total_price,
            payment_status="pending",
            shipping_status="processing",
            recipient_name="Test Buyer",
            recipient_phone="0912345678",
        )
        values.update(overrides)
        order = Order(**values)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make_order


@pytest.fixture
def claim_coupon(db):
    def _claim_coupon(user, code):
        return allocation_service.claim(db, user.id, code)

    return _claim_coupon


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(db):
    """
    Provides a TestClient bound to the per-test database. Authentication is
    switched on per test with ``login_as``.
    """

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    def _login_as(user):
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user

    return _login_as


@pytest.fixture
def checkout_payload():
    def _checkout_payload(lines, **overrides):
        payload = dict(
            items=[{"vinyl_id": vinyl.id, "quantity": qty, "unit_price": vinyl.price} for vinyl, qty in lines],
            recipient={
                "name": "Mei Lin",
                "phone": "0912345678",
                "email": "mei@example.com",
                "address": "No. 7, Songren Rd, Xinyi Dist, Taipei",
            },
            payment_method="ECPAY",
        )
        payload.update(overrides)
        return payload

    return _checkout_payload


@pytest.fixture
def place_order(db, checkout_payload):
    def _place_order(user, lines, idempotency_key=None, **overrides):
        data = CheckoutIn(**checkout_payload(lines, **overrides))
        return checkout_service.checkout(db, user, data, idempotency_key=idempotency_key)

    return _place_order
