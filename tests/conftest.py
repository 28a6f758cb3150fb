import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_TMP_DIR = tempfile.mkdtemp(prefix="supermarket-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["CSRF_ENABLED"] = "false"

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from config.database import Base, build_engine, locking_sessionmaker  # noqa: E402
from common.security import create_token  # noqa: E402
from modules.user.models import User, UserRole  # noqa: E402
from modules.catalog.models import Product  # noqa: E402
from modules.cart.models import CartItem  # noqa: E402
from modules.order.models import Order, OrderItem  # noqa: E402, F401
from modules.checkout.service import CheckoutService  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def locking_factory(engine):
    return locking_sessionmaker(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def checkout_service(locking_factory):
    return CheckoutService(session_factory=locking_factory, clock=lambda: FIXED_NOW)


# ==========================================
# Factories
# ==========================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, role=UserRole.USER):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(username=username, email=f"{username}@example.com", role=role)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Apples", price="1.00", stock=10):
        product = Product(name=name, unit_price=Decimal(price), stock_quantity=stock)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def put_in_cart(db):
    """Insert a cart line directly, bypassing the stock checks of the cart service."""
    def _put(user_id, product_id, quantity):
        db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
        db.commit()

    return _put


@pytest.fixture
def read(session_factory):
    """Run a query on a fresh session so results reflect committed state only."""
    def _read(fn):
        session = session_factory()
        try:
            return fn(session)
        finally:
            session.close()

    return _read


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token({'sub': str(user.id)})}"}
