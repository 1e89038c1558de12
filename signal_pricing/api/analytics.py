"""
Pricing analytics endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from signal_pricing.models.base import get_db
from signal_pricing.services.pricing_analytics_service import PricingAnalyticsService
from signal_pricing.utils.logger import log

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/pricing")
def pricing_analytics(
    merchant_id: Optional[int] = None,
    days: int = Query(30, ge=1, le=365),
    db=Depends(get_db),
):
    """Markup averages, markup revenue and final price distribution"""
    try:
        return PricingAnalyticsService(db).summary(merchant_id=merchant_id, days=days)
    except Exception as e:
        log.error(f"Error building pricing analytics: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/pricing/merchant/{merchant_id}")
def merchant_pricing_analytics(
    merchant_id: int,
    days: int = Query(30, ge=1, le=365),
    db=Depends(get_db),
):
    """Seller's average prices and markup, plus products marked up over 50%"""
    try:
        result = PricingAnalyticsService(db).merchant_summary(merchant_id, days=days)
    except Exception as e:
        log.error(f"Error building merchant pricing analytics for {merchant_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Merchant not found or not approved")
    return result
