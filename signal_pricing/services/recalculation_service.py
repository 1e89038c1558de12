"""
Signal Recalculation Service

Recomputes every eligible product's dynamic markup, final prices, tracking
counters and visibility score from fresh behavioral signals.

Per product: read signals -> dynamic markup -> pricing -> visibility -> one
commit. Products are independent: each runs on its own session, failures are
logged with the product id and counted, and never abort the batch. Running
twice with unchanged signals writes the same values.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional

from sqlalchemy import true
from sqlalchemy.orm import Session

from signal_pricing.config import Settings, get_settings
from signal_pricing.models.base import SessionLocal
from signal_pricing.models.product import Product
from signal_pricing.models.recalculation import RecalculationRun
from signal_pricing.services.exceptions import ProductNotEligibleError, RecalculationInProgressError
from signal_pricing.services.markup_calculator import MarkupBreakdown, calculate_dynamic_markup
from signal_pricing.services.pricing_resolver import (
    PriceableInputs, PricingResolution, resolve_product_pricing,
)
from signal_pricing.services.signal_reader import SignalSnapshot, SignalSnapshotReader
from signal_pricing.services.tuning import DEFAULT_TUNING, Tuning
from signal_pricing.services.visibility_calculator import (
    VisibilityBreakdown, age_in_days, calculate_visibility, discount_percent,
)
from signal_pricing.utils.helpers import chunk_list, round_2
from signal_pricing.utils.logger import log


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    IDLE_WITH_ERRORS = "idle_with_errors"


@dataclass
class SignalDerivedResult:
    """Everything derived for one product in one recalculation"""
    product_id: int
    snapshot: SignalSnapshot
    markup: MarkupBreakdown
    pricing: PricingResolution
    visibility: VisibilityBreakdown
    calculated_at: datetime

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "signals": self.snapshot.to_dict(),
            "degraded": self.snapshot.degraded,
            "markup": self.markup.to_dict(),
            "dynamic_markup_percent": float(self.pricing.dynamic_markup_percent),
            "final_price": float(self.pricing.final_price) if self.pricing.final_price is not None else None,
            "variant_final_prices": [
                float(p) if p is not None else None for p in self.pricing.variant_final_prices
            ],
            "display_price": float(self.pricing.display_price) if self.pricing.display_price is not None else None,
            "stock": self.pricing.stock,
            "visibility": self.visibility.to_dict(),
            "visibility_score": self.visibility.visibility_score,
            "calculated_at": self.calculated_at.isoformat(),
        }


@dataclass
class RecalculationSummary:
    """Outcome of a batch run"""
    total: int = 0
    updated: int = 0
    errored: int = 0
    degraded: int = 0  # Updated from fallback signals
    skipped: int = 0  # Became ineligible mid-run
    duration_ms: float = 0.0
    status: str = JobState.IDLE.value
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_product_ids: List[int] = field(default_factory=list)
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "updated": self.updated,
            "errored": self.errored,
            "degraded": self.degraded,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "failed_product_ids": self.failed_product_ids[:50],
            "error_message": self.error_message,
        }


class RecalculationService:
    """
    Batch and on-demand recalculation of signal-derived product fields.

    Only one batch runs per process at a time; the scheduler additionally
    caps the job at one instance.
    """

    _run_lock = threading.Lock()

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        tuning: Tuning = DEFAULT_TUNING,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session_factory = session_factory or SessionLocal
        self.tuning = tuning
        self.settings = settings or get_settings()
        self.clock = clock
        self.state = JobState.IDLE

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------

    @classmethod
    def is_running(cls) -> bool:
        return cls._run_lock.locked()

    def recalculate_all(self, trigger: str = "scheduler") -> RecalculationSummary:
        """
        Recalculate every eligible product.

        Args:
            trigger: who started the run (scheduler, api, manual), for the run ledger

        Returns:
            RecalculationSummary with total/updated/errored counts and duration

        Raises:
            RecalculationInProgressError: a run is already in progress
        """
        if not self._run_lock.acquire(blocking=False):
            raise RecalculationInProgressError("Recalculation already running")

        try:
            self.state = JobState.RUNNING
            start = time.time()
            summary = RecalculationSummary(started_at=self.clock())
            log.info("Starting signal recalculation for all products")

            try:
                product_ids = self._eligible_product_ids()
                summary.total = len(product_ids)
                log.info(f"Recalculating {summary.total} products")
                self._process(product_ids, summary)
            except Exception as e:
                log.error(f"Signal recalculation aborted: {str(e)}")
                summary.error_message = str(e)
                summary.errored += summary.total - summary.updated - summary.errored - summary.skipped

            summary.duration_ms = round((time.time() - start) * 1000, 1)
            summary.completed_at = self.clock()
            failed = summary.errored or summary.error_message
            self.state = JobState.IDLE_WITH_ERRORS if failed else JobState.IDLE
            summary.status = self.state.value

            log.info(
                f"Signal recalculation completed: {summary.updated}/{summary.total} updated, "
                f"{summary.errored} errors, {summary.degraded} from fallback signals "
                f"in {summary.duration_ms:.0f}ms"
            )
            self._record_run(summary, trigger)
            return summary
        finally:
            self._run_lock.release()

    def recalculate_one(self, product_id: int) -> SignalDerivedResult:
        """
        Refresh a single product immediately.

        Raises:
            ProductNotEligibleError: product missing, inactive or deleted
        """
        db = self.session_factory()
        try:
            with self._reader(max_workers=1) as reader:
                result = self._recalculate(db, reader, product_id)
            db.commit()
            return result
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Event hooks: background refreshes that must never fail the caller

    def on_order_placed(self, product_ids: Iterable[int]):
        for product_id in product_ids:
            self._refresh_quietly(product_id, "order")

    def on_product_favorited(self, product_id: int):
        self._refresh_quietly(product_id, "favorite")

    def on_product_viewed(self, product_id: int):
        self._refresh_quietly(product_id, "view")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reader(self, max_workers: Optional[int] = None) -> SignalSnapshotReader:
        return SignalSnapshotReader(
            session_factory=self.session_factory,
            timeout_seconds=self.settings.signal_read_timeout_seconds,
            max_workers=max_workers or self.settings.recalc_max_workers,
            clock=self.clock,
        )

    def _eligible_product_ids(self) -> List[int]:
        db = self.session_factory()
        try:
            rows = (
                db.query(Product.id)
                .filter(Product.is_active == true(), Product.deleted_at.is_(None))
                .order_by(Product.id)
                .all()
            )
            return [row[0] for row in rows]
        finally:
            db.close()

    def _process(self, product_ids: List[int], summary: RecalculationSummary):
        chunk_size = max(1, self.settings.recalc_chunk_size)
        max_workers = max(1, self.settings.recalc_max_workers)

        with self._reader(max_workers=max_workers) as reader:
            for chunk in chunk_list(product_ids, chunk_size):
                with ThreadPoolExecutor(max_workers=min(max_workers, len(chunk))) as pool:
                    outcomes = list(pool.map(lambda pid: self._recalculate_isolated(reader, pid), chunk))

                for product_id, outcome in zip(chunk, outcomes):
                    if outcome == "errored":
                        summary.errored += 1
                        summary.failed_product_ids.append(product_id)
                    elif outcome == "skipped":
                        summary.skipped += 1
                    else:
                        summary.updated += 1
                        if outcome == "degraded":
                            summary.degraded += 1

    def _recalculate_isolated(self, reader: SignalSnapshotReader, product_id: int) -> str:
        """Recalculate one product on its own session; never raises"""
        db = self.session_factory()
        try:
            result = self._recalculate(db, reader, product_id)
            db.commit()
            return "degraded" if result.snapshot.degraded else "updated"
        except ProductNotEligibleError:
            db.rollback()
            log.info(f"Product {product_id} no longer eligible, skipping")
            return "skipped"
        except Exception as e:
            db.rollback()
            log.error(f"Error recalculating product {product_id}: {str(e)}")
            return "errored"
        finally:
            db.close()

    def _recalculate(self, db: Session, reader: SignalSnapshotReader, product_id: int) -> SignalDerivedResult:
        product = db.get(Product, product_id)
        if product is None or not product.is_eligible:
            raise ProductNotEligibleError(product_id)

        now = self.clock()
        snapshot = reader.read(product)
        if snapshot.degraded:
            log.warning(
                f"Product {product_id} using fallback signals for: {', '.join(snapshot.failed_reads)}"
            )

        variants = list(product.variants)
        product_inputs = PriceableInputs.from_entity(product)
        variant_inputs = [PriceableInputs.from_entity(v) for v in variants]
        stock = sum(v.stock for v in variant_inputs) if variants else product_inputs.stock

        markup = calculate_dynamic_markup(snapshot, stock, self.tuning)
        pricing = resolve_product_pricing(
            product_inputs,
            variant_inputs,
            markup.total,
            self.settings.default_base_markup_percent,
        )
        visibility = calculate_visibility(
            snapshot,
            discount_percent(product_inputs.base_price, product.discount_price),
            age_in_days(product.created_at, now),
            bool(product.featured),
            self.tuning,
        )

        self._apply(product, variants, snapshot, pricing, visibility, now)

        return SignalDerivedResult(
            product_id=product_id,
            snapshot=snapshot,
            markup=markup,
            pricing=pricing,
            visibility=visibility,
            calculated_at=now,
        )

    def _apply(self, product: Product, variants: list, snapshot: SignalSnapshot,
               pricing: PricingResolution, visibility: VisibilityBreakdown, now: datetime):
        # Tracking fields
        product.views_24h = snapshot.views_24h
        product.cart_count_24h = snapshot.cart_count_24h
        product.sales_24h = snapshot.sales_24h
        product.favorites_count = snapshot.favorites_count

        # Pricing
        product.dynamic_markup_percent = pricing.dynamic_markup_percent
        if pricing.final_price is not None:
            product.final_price = pricing.final_price
        else:
            log.warning(f"Product {product.id} has no merchant price, leaving final price unset")

        for variant, final_price in zip(variants, pricing.variant_final_prices):
            variant.dynamic_markup_percent = pricing.dynamic_markup_percent
            if final_price is not None:
                variant.final_price = final_price
            else:
                log.warning(f"Variant {variant.id} of product {product.id} has no merchant price")
        product.stock = pricing.stock

        # Ranking fields and lifetime mirrors
        product.visibility_score = visibility.visibility_score
        product.conversion_rate = round_2(snapshot.conversion_rate)
        product.store_rating = round_2(snapshot.store_rating)
        product.order_count = snapshot.lifetime_order_count
        product.view_count = snapshot.lifetime_view_count
        product.favorite_count = snapshot.lifetime_favorite_count
        product.discount_boost = round_2(visibility.discount_boost)
        product.newness_boost = round_2(visibility.newness_boost)

        product.score_calculated_at = now

    def _refresh_quietly(self, product_id: int, reason: str):
        try:
            self.recalculate_one(product_id)
        except Exception as e:
            log.error(f"Error refreshing product {product_id} on {reason}: {str(e)}")

    def _record_run(self, summary: RecalculationSummary, trigger: str):
        db = self.session_factory()
        try:
            db.add(RecalculationRun(
                status=summary.status,
                trigger=trigger,
                total=summary.total,
                updated=summary.updated,
                errored=summary.errored,
                degraded=summary.degraded,
                started_at=summary.started_at,
                completed_at=summary.completed_at,
                duration_ms=summary.duration_ms,
                error_message=summary.error_message,
            ))
            db.commit()
        except Exception as e:
            db.rollback()
            log.error(f"Failed to record recalculation run: {str(e)}")
        finally:
            db.close()
