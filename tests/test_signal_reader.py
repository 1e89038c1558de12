"""
Signal snapshot reader tests.

Reads hit a real SQLite database; failures and timeouts are simulated by
patching single source queries on the reader.
"""
import time
from datetime import datetime, timedelta

import pytest

from signal_pricing.services.signal_reader import SIGNAL_READS, SignalSnapshotReader, conversion_rate

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def reader(session_factory):
    reader = SignalSnapshotReader(session_factory=session_factory, timeout_seconds=5.0,
                                  max_workers=1, clock=lambda: NOW)
    yield reader
    reader.close()


def test_conversion_rate():
    assert conversion_rate(4, 40) == 10.0
    assert conversion_rate(5, 0) == 0.0
    assert conversion_rate(50, 10) == 100.0


def test_reads_rolling_and_lifetime_counters(reader, make_product, record_activity, merchant, add_review):
    product = make_product(merchant_id=merchant.id)
    other = make_product(merchant_id=merchant.id)

    record_activity(product.id, views=30, carts=2, favorites=5, sales=3, merchant_id=merchant.id)
    old = NOW - timedelta(days=3)
    record_activity(product.id, views=10, carts=1, sales=1, at=old)
    record_activity(product.id, sales=2, status="pending")
    add_review(product.id, 5)
    add_review(other.id, 4)

    snapshot = reader.read(product)

    assert snapshot.views_24h == 30
    assert snapshot.cart_count_24h == 2
    assert snapshot.sales_24h == 3
    assert snapshot.favorites_count == 5
    assert snapshot.lifetime_view_count == 40
    assert snapshot.lifetime_order_count == 4
    assert snapshot.lifetime_favorite_count == 5
    assert snapshot.conversion_rate == 10.0
    assert snapshot.store_rating == 4.5
    assert not snapshot.degraded


def test_store_rating_falls_back_to_product_rating(reader, make_product):
    product = make_product(average_rating=3.5)
    assert reader.read(product).store_rating == 3.5


def test_failed_read_keeps_previous_value(reader, make_product, record_activity, monkeypatch):
    product = make_product(cart_count_24h=7)
    record_activity(product.id, views=20, carts=3)

    def boom(*args, **kwargs):
        raise RuntimeError("cart service unavailable")

    monkeypatch.setattr(reader, "count_cart_adds", boom)
    snapshot = reader.read(product)

    assert snapshot.failed_reads == ["cart_count_24h"]
    assert snapshot.degraded
    assert snapshot.cart_count_24h == 7
    assert snapshot.views_24h == 20


def test_failed_lifetime_read_keeps_previous_conversion(reader, make_product, record_activity, monkeypatch):
    product = make_product(conversion_rate=12.5, order_count=9)
    record_activity(product.id, views=10, sales=5)

    def boom(*args, **kwargs):
        raise RuntimeError("orders unavailable")

    monkeypatch.setattr(reader, "count_sales", boom)
    snapshot = reader.read(product)

    assert "sales_24h" in snapshot.failed_reads
    assert "lifetime_order_count" in snapshot.failed_reads
    assert snapshot.lifetime_order_count == 9
    assert snapshot.conversion_rate == 12.5


def test_timeout_falls_back_for_every_read(session_factory, make_product, monkeypatch):
    product = make_product(views_24h=11, sales_24h=2, favorites_count=4)
    reader = SignalSnapshotReader(session_factory=session_factory, timeout_seconds=0.1,
                                  max_workers=1, clock=lambda: NOW)

    def slow(*args, **kwargs):
        time.sleep(0.5)
        return 999

    monkeypatch.setattr(reader, "count_views", slow)
    try:
        snapshot = reader.read(product)
    finally:
        reader.close()

    assert snapshot.failed_reads == list(SIGNAL_READS)
    assert snapshot.views_24h == 11
    assert snapshot.sales_24h == 2
    assert snapshot.favorites_count == 4
