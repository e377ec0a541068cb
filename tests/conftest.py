import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.auth import get_current_user
from storefront.database import Base, get_db
from storefront.main import app as fastapi_app
from storefront.models import Order, OrderItem, User

# Setup test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_storefront.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Make the API treat the given user as the caller."""
    def _login(user):
        fastapi_app.dependency_overrides[get_current_user] = lambda: user
    return _login


def make_user(open_id, role="user", name="Test User", email="test@example.com"):
    db = TestingSessionLocal()
    user = User(open_id=open_id, role=role, name=name, email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    db.close()
    return user


@pytest.fixture
def customer():
    return make_user("oauth-customer", name="Max Mustermann", email="max@example.com")


@pytest.fixture
def other_customer():
    return make_user("oauth-other", name="Erika Muster", email="erika@example.com")


@pytest.fixture
def admin():
    return make_user("oauth-admin", role="admin", name="Shop Admin", email="admin@example.com")


def make_order(user_id, **overrides):
    values = {
        "user_id": user_id,
        "order_number": "ORD-1700000000000-ABCDEFGHI",
        "status": "processing",
        "total_amount": 130790,
        "shipping_cost": 990,
        "discount_amount": 0,
        "shipping_method": "standard",
        "payment_method": "card",
        "payment_status": "completed",
        "customer_email": "max@example.com",
        "shipping_address": json.dumps({
            "name": "Max Mustermann",
            "address": {"line1": "Musterstraße 123", "postal_code": "1010", "city": "Wien", "country": "AT"},
        }),
        "language": "de",
        "stripe_payment_intent_id": "pi_123",
        "stripe_checkout_session_id": "cs_123",
    }
    values.update(overrides)

    db = TestingSessionLocal()
    order = Order(**values)
    db.add(order)
    db.flush()
    db.add(OrderItem(order_id=order.id, product_name="Eiche Esstisch", price=89900, quantity=1))
    db.add(OrderItem(order_id=order.id, product_name="Stuhl Set (4 Stück)", price=39900, quantity=1))
    db.commit()
    db.refresh(order)
    db.close()
    return order
