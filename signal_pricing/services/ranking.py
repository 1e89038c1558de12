"""
Product Ranking (query time)

rankingScore = (featured ? 1000 : 0)
             + priorityScore * 100
             + freshnessBoost          (0-50, linear decay over 30 days)
             + stockBoost              (0-30, from 10 units, saturating at 20)
             + personalizationBoost    (20 for a preferred category)

Ties are broken by newest first. Nothing here is persisted.

The formula exists twice: ranking_score() for in-process sorting, and
ranking_score_expression() for sorting inside the database. Both round halves
up and clamp the same way so they order products identically.

Note: priorityScore * 100 reaches 10000, so a high manual priority outranks
the featured boost. This is the documented formula and is kept as is.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import Float, Integer, DateTime, case, cast, func, literal, true
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import FunctionElement

from signal_pricing.models.product import Product
from signal_pricing.services.tuning import DEFAULT_TUNING, RankingTuning, Tuning
from signal_pricing.utils.helpers import days_between, round_half_up


def _field(product, name, default=None):
    """Read a field from an ORM object or a plain mapping"""
    if isinstance(product, dict):
        value = product.get(name, default)
    else:
        value = getattr(product, name, default)
    return default if value is None else value


# ---------------------------------------------------------------------------
# In-process scoring
# ---------------------------------------------------------------------------

def freshness_boost(created_at: Optional[datetime], now: datetime,
                    tuning: RankingTuning = DEFAULT_TUNING.ranking) -> int:
    if created_at is None:
        return 0
    age_days = days_between(created_at, now)
    if age_days > tuning.freshness_max_days:
        return 0
    if age_days < 0:
        return tuning.freshness_boost_max
    boost = tuning.freshness_boost_max * (1 - age_days / tuning.freshness_max_days)
    return max(0, round_half_up(boost))


def stock_boost(stock: int, tuning: RankingTuning = DEFAULT_TUNING.ranking) -> int:
    if not stock or stock < tuning.stock_boost_threshold:
        return 0
    saturation = tuning.stock_boost_threshold * 2
    normalized = min(stock, saturation)
    return round_half_up(float(normalized) / saturation * tuning.stock_boost_max)


def personalization_boost(category_id, preferred_categories: Iterable = (),
                          tuning: RankingTuning = DEFAULT_TUNING.ranking) -> int:
    preferred = {str(c) for c in preferred_categories or ()}
    if not preferred or category_id is None:
        return 0
    return tuning.personalization_boost if str(category_id) in preferred else 0


def ranking_score(
    product,
    preferred_categories: Iterable = (),
    now: Optional[datetime] = None,
    tuning: Tuning = DEFAULT_TUNING,
) -> float:
    """
    Ranking score for a product (higher ranks first).

    Args:
        product: Product row or a mapping with featured, priority_score,
            created_at, stock and category_id
        preferred_categories: caller's preferred category ids
        now: reference time for freshness (defaults to utcnow)
        tuning: scoring tunables

    Returns:
        Score; an int whenever priority_score is an int, as stored
    """
    t = tuning.ranking
    now = now or datetime.utcnow()

    featured = t.featured_boost if _field(product, "featured", False) else 0
    priority = _field(product, "priority_score", 0) * t.priority_weight
    freshness = freshness_boost(_field(product, "created_at"), now, t)
    stock = stock_boost(int(_field(product, "stock", 0)), t)
    personal = personalization_boost(_field(product, "category_id"), preferred_categories, t)

    return featured + priority + freshness + stock + personal


def rank_and_sort_products(
    products: Iterable,
    preferred_categories: Iterable = (),
    now: Optional[datetime] = None,
    tuning: Tuning = DEFAULT_TUNING,
) -> List:
    """Sort products by ranking score, newest first on ties"""
    now = now or datetime.utcnow()
    preferred = list(preferred_categories or ())
    scored = [
        (ranking_score(p, preferred, now, tuning), _field(p, "created_at", datetime.min), p)
        for p in products
    ]
    scored.sort(key=lambda row: (row[0], row[1]), reverse=True)
    return [row[2] for row in scored]


# ---------------------------------------------------------------------------
# SQL rendition
# ---------------------------------------------------------------------------

class days_since(FunctionElement):
    """Fractional days from a timestamp column to a reference time"""
    type = Float()
    name = "days_since"
    inherit_cache = True


@compiles(days_since)
def _days_since_default(element, compiler, **kw):
    column, now = list(element.clauses)
    return "(EXTRACT(EPOCH FROM (%s - %s)) / 86400.0)" % (
        compiler.process(now, **kw), compiler.process(column, **kw)
    )


@compiles(days_since, "sqlite")
def _days_since_sqlite(element, compiler, **kw):
    column, now = list(element.clauses)
    return "(julianday(%s) - julianday(%s))" % (
        compiler.process(now, **kw), compiler.process(column, **kw)
    )


class floor_nonneg(FunctionElement):
    """floor() for non-negative values; SQLite may lack floor(), CAST truncates"""
    type = Integer()
    name = "floor_nonneg"
    inherit_cache = True


@compiles(floor_nonneg)
def _floor_default(element, compiler, **kw):
    return "CAST(FLOOR(%s) AS INTEGER)" % compiler.process(element.clauses, **kw)


@compiles(floor_nonneg, "sqlite")
def _floor_sqlite(element, compiler, **kw):
    return "CAST(%s AS INTEGER)" % compiler.process(element.clauses, **kw)


def ranking_score_expression(
    preferred_categories: Iterable = (),
    now: Optional[datetime] = None,
    tuning: Tuning = DEFAULT_TUNING,
):
    """SQL expression computing ranking_score() over the products table"""
    t = tuning.ranking
    now = now or datetime.utcnow()
    preferred = [str(c) for c in preferred_categories or ()]

    featured = case((Product.featured == true(), t.featured_boost), else_=0)
    priority = func.coalesce(Product.priority_score, 0) * t.priority_weight

    age = days_since(Product.created_at, literal(now, type_=DateTime()))
    freshness = case(
        (Product.created_at.is_(None), 0),
        (age > t.freshness_max_days, 0),
        (age < 0, t.freshness_boost_max),
        else_=floor_nonneg(
            t.freshness_boost_max * (1 - age / float(t.freshness_max_days)) + 0.5
        ),
    )

    saturation = t.stock_boost_threshold * 2
    stock = func.coalesce(Product.stock, 0)
    normalized = case((stock > saturation, saturation), else_=stock)
    stock_score = case(
        (stock < t.stock_boost_threshold, 0),
        else_=floor_nonneg(cast(normalized, Float) / float(saturation) * t.stock_boost_max + 0.5),
    )

    if preferred:
        personal = case((Product.category_id.in_(preferred), t.personalization_boost), else_=0)
    else:
        personal = literal(0)

    return featured + priority + freshness + stock_score + personal


def ranked_products_query(
    db: Session,
    preferred_categories: Iterable = (),
    now: Optional[datetime] = None,
    tuning: Tuning = DEFAULT_TUNING,
    category_id: Optional[str] = None,
):
    """
    Eligible products with their ranking score, best first.

    Returns a query of (Product, ranking_score) rows so callers can paginate.
    """
    score = ranking_score_expression(preferred_categories, now, tuning).label("ranking_score")
    query = (
        db.query(Product, score)
        .filter(Product.is_active == true(), Product.deleted_at.is_(None))
    )
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(score.desc(), Product.created_at.desc())
