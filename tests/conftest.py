"""Shared fixtures: an in-memory database, a fake payment gateway and a client."""
import os

# settings are read at import time
os.environ.setdefault("POSTGRES_DSN", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_secret")

from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from restaurant.api.deps import get_db, get_gateway
from restaurant.core.config import settings
from restaurant.db.models import Address, Category, MenuItem, Role, User, now_utc
from restaurant.db.session import Base
from restaurant.main import app
from restaurant.security.utils import create_access_token, hash_password
from restaurant.services.paystack import InitializedTransaction, PaystackClient, VerifiedTransaction

PASSWORD = "correct-horse-battery"
_password_hash = None


def password_hash() -> str:
    # bcrypt is slow; hash once per session
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


class FakeGateway(PaystackClient):
    """PaystackClient with the network calls replaced; signatures stay real."""

    def __init__(self):
        super().__init__(secret_key=settings.PAYSTACK_SECRET_KEY)
        self._refs = count(1)
        self.initialized = []
        self.verify_results = {}
        self.fail_with = None

    def initialize_transaction(self, email, amount, metadata):
        if self.fail_with:
            raise self.fail_with
        ref = f"ref_{next(self._refs):04d}"
        self.initialized.append({"email": email, "amount": amount, "metadata": metadata, "reference": ref})
        return InitializedTransaction(authorization_url=f"https://checkout.paystack.com/{ref}", reference=ref)

    def verify_transaction(self, reference):
        if self.fail_with:
            raise self.fail_with
        status, amount_minor = self.verify_results[reference]
        return VerifiedTransaction(reference=reference, status=status, amount_minor=amount_minor)


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    @event.listens_for(eng, "connect")
    def _fk_on(dbapi_conn, _):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    def _override_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(db, email, role=Role.USER.value, full_name=None) -> User:
    user = User(
        email=email,
        password_hash=password_hash(),
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        created_at=now_utc(),
        updated_at=now_utc(),
    )
    db.add(user); db.commit(); db.refresh(user)
    return user


def make_address(db, user, city="Lagos", is_default=True) -> Address:
    addr = Address(
        user_id=user.id,
        street_address="12 Admiralty Way",
        city=city,
        state="Lagos",
        country="Nigeria",
        is_default=is_default,
    )
    db.add(addr); db.commit(); db.refresh(addr)
    return addr


def auth(user) -> dict:
    token, _ = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(db):
    return make_user(db, "alice@example.com")


@pytest.fixture
def bob(db):
    return make_user(db, "bob@example.com")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=Role.ADMIN.value)


@pytest.fixture
def menu(db):
    mains = Category(name="Mains")
    db.add(mains); db.flush()
    items = {
        "jollof": MenuItem(category_id=mains.id, name="Jollof Rice", price=Decimal("2500.00"), is_available=True),
        "suya": MenuItem(category_id=mains.id, name="Suya Platter", price=Decimal("1500.00"), is_available=True),
        "pepper_soup": MenuItem(category_id=mains.id, name="Pepper Soup", price=Decimal("3200.00"), is_available=False),
    }
    db.add_all(items.values()); db.commit()
    for item in items.values():
        db.refresh(item)
    return items


@pytest.fixture
def headers_for():
    return auth


@pytest.fixture
def new_user(db):
    return lambda email, role=Role.USER.value: make_user(db, email, role)


@pytest.fixture
def new_address(db):
    return lambda user, city="Lagos", is_default=True: make_address(db, user, city, is_default)


@pytest.fixture
def alice_lagos(db, alice):
    return make_address(db, alice, city="Lagos")


@pytest.fixture
def place_order(client, menu):
    """Place an order through the API; defaults to two Suya Platters for pickup."""
    def _place(user, address=None, items=None, **extra):
        body = {"items": items or [{"id": menu["suya"].id, "quantity": 2}], **extra}
        if address is not None:
            body["address_id"] = address.id
        else:
            body.setdefault("is_pickup", True)
        resp = client.post("/api/orders/", json=body, headers=auth(user))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _place
