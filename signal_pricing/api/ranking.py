"""
Ranking endpoints

Catalog listing ordered by the query-time ranking score.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from signal_pricing.models.base import get_db
from signal_pricing.services.ranking import ranked_products_query
from signal_pricing.utils.logger import log

router = APIRouter(prefix="/ranking", tags=["ranking"])


def _money(value):
    return float(value) if value is not None else None


@router.get("/products")
def ranked_products(
    preferred_categories: List[str] = Query(default=[]),
    category_id: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db=Depends(get_db),
):
    """
    Active products, best ranking score first.

    Products in one of the caller's preferred categories get a
    personalization boost. Ties go to the newest product.
    """
    try:
        query = ranked_products_query(db, preferred_categories, category_id=category_id)
        total = query.count()
        rows = query.offset(offset).limit(limit).all()
    except Exception as e:
        log.error(f"Error ranking products: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "total": total,
        "offset": offset,
        "limit": limit,
        "products": [
            {
                "id": product.id,
                "name": product.name,
                "category_id": product.category_id,
                "final_price": _money(product.final_price),
                "display_price": _money(product.display_price),
                "visibility_score": product.visibility_score,
                "featured": bool(product.featured),
                "stock": product.stock,
                "ranking_score": int(score),
            }
            for product, score in rows
        ],
    }
