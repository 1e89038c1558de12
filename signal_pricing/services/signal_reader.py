"""
Signal Snapshot Reader

Gathers the behavioral counters a product's markup and visibility are computed
from: rolling 24h views, cart adds, sales and favorites, plus lifetime orders,
views, favorites, conversion rate and store rating.

Reads never raise. A failing read falls back to the value persisted on the
product by the previous cycle (or zero) and is listed in
SignalSnapshot.failed_reads. All reads for one product run on their own
session in a worker thread bounded by a timeout; a timeout falls back for
every read.
"""
import concurrent.futures
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from signal_pricing.config import get_settings
from signal_pricing.models.activity import (
    SALE_STATUSES, Order, OrderItem, ProductView, CartItem, WishlistItem, Review,
)
from signal_pricing.models.base import SessionLocal
from signal_pricing.models.product import Product
from signal_pricing.utils.logger import log

SIGNAL_WINDOW = timedelta(hours=24)

SIGNAL_READS = (
    "views_24h",
    "cart_count_24h",
    "sales_24h",
    "favorites_count",
    "lifetime_order_count",
    "lifetime_view_count",
    "store_rating",
)


@dataclass
class SignalSnapshot:
    """Behavioral counters for one product at one point in time"""
    views_24h: int = 0
    cart_count_24h: int = 0
    sales_24h: int = 0
    favorites_count: int = 0
    lifetime_order_count: int = 0
    lifetime_view_count: int = 0
    lifetime_favorite_count: int = 0
    conversion_rate: float = 0.0  # 0-100
    store_rating: float = 0.0  # 0-5
    failed_reads: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when any counter is a fallback rather than a fresh read"""
        return bool(self.failed_reads)

    @classmethod
    def from_product(cls, product: Product) -> "SignalSnapshot":
        """Previous known values, as persisted by the last successful cycle"""
        return cls(
            views_24h=product.views_24h or 0,
            cart_count_24h=product.cart_count_24h or 0,
            sales_24h=product.sales_24h or 0,
            favorites_count=product.favorites_count or 0,
            lifetime_order_count=product.order_count or 0,
            lifetime_view_count=product.view_count or 0,
            lifetime_favorite_count=product.favorite_count or 0,
            conversion_rate=product.conversion_rate or 0.0,
            store_rating=product.store_rating or 0.0,
        )

    def to_dict(self) -> dict:
        return asdict(self)


def conversion_rate(order_count: int, view_count: int) -> float:
    """Orders per view as a percentage, capped at 100"""
    if view_count <= 0:
        return 0.0
    return min(100.0, order_count / view_count * 100)


@dataclass(frozen=True)
class _ProductRef:
    """Plain values copied off the ORM object before crossing threads"""
    product_id: int
    merchant_id: Optional[int]
    average_rating: Optional[float]


class SignalSnapshotReader:
    """
    Reads signal snapshots for products.

    Owns a small thread pool so each product's reads can be bounded by a
    timeout without sharing a session across threads. Close it (or use it as a
    context manager) when done.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        timeout_seconds: Optional[float] = None,
        max_workers: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        settings = get_settings()
        self.session_factory = session_factory or SessionLocal
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.signal_read_timeout_seconds
        )
        self.clock = clock
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers or settings.recalc_max_workers,
            thread_name_prefix="signal-read",
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        # Timed-out reads finish (and close their sessions) in the background
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------

    def read(self, product: Product) -> SignalSnapshot:
        """
        Read a fresh snapshot for a product.

        Args:
            product: the product whose previously persisted counters serve as
                fallback values

        Returns:
            SignalSnapshot; check .degraded to know whether fallbacks were used
        """
        previous = SignalSnapshot.from_product(product)
        ref = _ProductRef(
            product_id=product.id,
            merchant_id=product.merchant_id,
            average_rating=product.average_rating,
        )
        now = self.clock()

        try:
            future = self._executor.submit(self._read_all, ref, previous, now)
            return future.result(timeout=self.timeout_seconds)
        except concurrent.futures.TimeoutError:
            future.cancel()
            log.warning(
                f"Signal reads timed out after {self.timeout_seconds}s for product "
                f"{ref.product_id}, using previous values"
            )
        except Exception as e:
            log.warning(f"Signal reads failed for product {ref.product_id}: {e}, using previous values")

        previous.failed_reads = list(SIGNAL_READS)
        return previous

    # ------------------------------------------------------------------
    # Source queries
    # ------------------------------------------------------------------

    def count_views(self, db: Session, product_id: int, since: Optional[datetime] = None) -> int:
        """Sum of per-user view counters, optionally only those viewed since a time"""
        query = db.query(func.coalesce(func.sum(ProductView.view_count), 0)).filter(
            ProductView.product_id == product_id
        )
        if since is not None:
            query = query.filter(ProductView.last_viewed >= since)
        return int(query.scalar() or 0)

    def count_cart_adds(self, db: Session, product_id: int, since: datetime) -> int:
        """Carts holding the product that were touched since a time"""
        return int(
            db.query(func.count(CartItem.id))
            .filter(CartItem.product_id == product_id, CartItem.updated_at >= since)
            .scalar() or 0
        )

    def count_sales(self, db: Session, product_id: int, since: Optional[datetime] = None) -> int:
        """Distinct confirmed/shipped/delivered orders containing the product"""
        query = (
            db.query(func.count(distinct(Order.id)))
            .join(OrderItem, OrderItem.order_id == Order.id)
            .filter(OrderItem.product_id == product_id, Order.status.in_(SALE_STATUSES))
        )
        if since is not None:
            query = query.filter(Order.created_at >= since)
        return int(query.scalar() or 0)

    def count_favorites(self, db: Session, product_id: int) -> int:
        """Wishlists holding the product"""
        return int(
            db.query(func.count(WishlistItem.id))
            .filter(WishlistItem.product_id == product_id)
            .scalar() or 0
        )

    def store_rating(self, db: Session, merchant_id: Optional[int], fallback: Optional[float]) -> float:
        """Seller's average review rating across all their products, else the product's own"""
        if merchant_id is not None:
            avg_rating = (
                db.query(func.avg(Review.rating))
                .join(Product, Product.id == Review.product_id)
                .filter(Product.merchant_id == merchant_id)
                .scalar()
            )
            if avg_rating:
                return float(avg_rating)
        return float(fallback or 0.0)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_all(self, ref: _ProductRef, previous: SignalSnapshot, now: datetime) -> SignalSnapshot:
        since = now - SIGNAL_WINDOW
        failed: List[str] = []
        db = self.session_factory()

        def _read(name: str, query_fn: Callable[[], float], fallback):
            try:
                return query_fn()
            except Exception as e:
                db.rollback()
                log.warning(f"Signal read '{name}' failed for product {ref.product_id}: {e}")
                failed.append(name)
                return fallback

        try:
            pid = ref.product_id
            views_24h = _read("views_24h", lambda: self.count_views(db, pid, since), previous.views_24h)
            cart_count_24h = _read(
                "cart_count_24h", lambda: self.count_cart_adds(db, pid, since), previous.cart_count_24h
            )
            sales_24h = _read("sales_24h", lambda: self.count_sales(db, pid, since), previous.sales_24h)
            favorites = _read("favorites_count", lambda: self.count_favorites(db, pid), previous.favorites_count)
            order_count = _read(
                "lifetime_order_count", lambda: self.count_sales(db, pid), previous.lifetime_order_count
            )
            view_count = _read(
                "lifetime_view_count", lambda: self.count_views(db, pid), previous.lifetime_view_count
            )
            rating = _read(
                "store_rating",
                lambda: self.store_rating(db, ref.merchant_id, ref.average_rating),
                previous.store_rating,
            )

            if "lifetime_order_count" in failed or "lifetime_view_count" in failed:
                rate = previous.conversion_rate
            else:
                rate = conversion_rate(order_count, view_count)

            return SignalSnapshot(
                views_24h=views_24h,
                cart_count_24h=cart_count_24h,
                sales_24h=sales_24h,
                favorites_count=favorites,
                lifetime_order_count=order_count,
                lifetime_view_count=view_count,
                lifetime_favorite_count=favorites,
                conversion_rate=rate,
                store_rating=rating,
                failed_reads=failed,
            )
        finally:
            db.close()
