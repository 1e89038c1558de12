"""
Shared fixtures: a throwaway SQLite database per test, a fixed clock, and
small factories for catalog and activity rows.
"""
import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

# Settings are cached on first import; point them at a scratch database first
_scratch = tempfile.mkdtemp(prefix="signal_pricing_")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_scratch, 'default.db')}")
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("RECALC_MAX_WORKERS", "2")

import pytest
from sqlalchemy.orm import sessionmaker

from signal_pricing.config import Settings
from signal_pricing.models import (
    CartItem, Merchant, Order, OrderItem, Product, ProductVariant, ProductView, Review, WishlistItem,
)
from signal_pricing.models.base import build_engine, init_db
from signal_pricing.services.recalculation_service import RecalculationService

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'signal_pricing_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        log_dir="",
        recalc_chunk_size=3,
        recalc_max_workers=2,
        signal_read_timeout_seconds=5.0,
        enable_scheduler=False,
    )


@pytest.fixture
def service(session_factory, settings):
    return RecalculationService(session_factory=session_factory, settings=settings, clock=lambda: NOW)


@pytest.fixture
def make_product(db):
    """Create and commit a product; returns it attached to the db fixture"""

    def _make(variants=(), **fields):
        values = dict(
            name="Widget",
            category_id="cat-1",
            merchant_price=Decimal("100.00"),
            base_markup_percent=Decimal("10.00"),
            stock=30,
            created_at=NOW - timedelta(days=60),
        )
        values.update(fields)
        product = Product(**values)
        for position, variant_fields in enumerate(variants):
            product.variants.append(ProductVariant(position=position, **variant_fields))
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def record_activity(db):
    """Attach views, carts, favorites and sales to a product"""

    def _record(product_id, views=0, carts=0, favorites=0, sales=0,
                status="delivered", at=NOW - timedelta(hours=1), merchant_id=None):
        if views:
            db.add(ProductView(user_id="viewer", product_id=product_id, view_count=views, last_viewed=at))
        for i in range(carts):
            db.add(CartItem(user_id=f"cart-{i}", product_id=product_id, updated_at=at))
        for i in range(favorites):
            db.add(WishlistItem(user_id=f"fan-{i}", product_id=product_id, created_at=at))
        for i in range(sales):
            order = Order(user_id=f"buyer-{i}", status=status, total_amount=Decimal("110.00"), created_at=at)
            order.items.append(OrderItem(
                product_id=product_id,
                merchant_id=merchant_id,
                quantity=1,
                price=Decimal("110.00"),
                merchant_price=Decimal("100.00"),
            ))
            db.add(order)
        db.commit()

    return _record


@pytest.fixture
def merchant(db):
    merchant = Merchant(name="Acme Store")
    db.add(merchant)
    db.commit()
    return merchant


@pytest.fixture
def add_review(db):
    def _add(product_id, rating):
        db.add(Review(product_id=product_id, user_id="reviewer", rating=rating, created_at=NOW))
        db.commit()

    return _add
