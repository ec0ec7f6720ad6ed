"""Test configuration and fixtures."""

import base64
import os
from decimal import Decimal

# Must be in place before core.logging is imported through main
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DISABLE_TRACING", "1")

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.settings import Settings
from db.models import Base, Option, Order, OrderLineItem
from main import app
from payments.canonical import canonicalize


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "DATABASE_URL": "sqlite:///:memory:",
            "APP_NAME": "Test Paddle Checkout",
            "ENVIRONMENT": "test",
            "DISABLE_TRACING": "1",
            "SITE_URL": "http://shop.test",
            "SITE_NAME": "Test Shop",
            "STORE_CURRENCY": "USD",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        APP_NAME="Test Paddle Checkout",
        ENVIRONMENT="test",
        SITE_URL="http://shop.test",
        SITE_NAME="Test Shop",
        STORE_CURRENCY="USD",
        PADDLE_ROOT_URL="https://vendors.paddle.test/",
        PADDLE_API_TIMEOUT=5.0,
    )


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def vendor_public_key(rsa_private_key):
    return (
        rsa_private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


@pytest.fixture
def sign_fields(rsa_private_key):
    """Sign fields the way Paddle does and return them with p_signature added."""

    def _sign(fields, private_key=None):
        key = private_key or rsa_private_key
        signature = key.sign(canonicalize(fields), padding.PKCS1v15(), hashes.SHA1())
        return {**fields, "p_signature": base64.b64encode(signature).decode()}

    return _sign


@pytest.fixture
def alert_fields():
    return {
        "alert_name": "payment_succeeded",
        "checkout_id": "12345-chre53d41f940e0-58aqh94971",
        "currency": "USD",
        "customer_name": "Zoë Müller",
        "email": "buyer@example.com",
        "order_id": "987654",
        "passthrough": "W10=",
        "sale_gross": "80.00",
    }


@pytest.fixture
def test_db_engine():
    """In-memory database shared by the test session and the app."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_order(test_db_session):
    def _make(total="100.00", tax="20.00", items=(("Widget", 11),), **kwargs):
        order = Order(
            total=Decimal(total),
            total_tax=Decimal(tax),
            billing_email=kwargs.pop("billing_email", "buyer@example.com"),
            billing_country=kwargs.pop("billing_country", "GB"),
            billing_postcode=kwargs.pop("billing_postcode", "SW1A 1AA"),
            **kwargs,
        )
        order.line_items = [
            OrderLineItem(name=name, product_id=product_id) for name, product_id in items
        ]
        test_db_session.add(order)
        test_db_session.commit()
        test_db_session.refresh(order)
        return order

    return _make


@pytest.fixture
def connected_options(test_db_session, vendor_public_key):
    """Enabled gateway with credentials and a cached public key."""
    values = {
        "enabled": "yes",
        "paddle_vendor_id": "1234",
        "paddle_api_key": "secret-api-key-abcd",
        "paddle_vendor_public_key": vendor_public_key,
        "vat_included_in_price": "no",
    }
    for key, value in values.items():
        test_db_session.merge(Option(key=key, value=value))
    test_db_session.commit()
    return values


@pytest.fixture
def client(mock_settings, test_db_engine):
    """Test client wired to the in-memory database."""
    from core.dependencies import get_settings
    from db.session import get_db, reset_engines

    reset_engines()
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_db_engine
    )

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: mock_settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_engines()


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (SQLite)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")
