"""
Recalculation endpoints

Trigger the batch outside its schedule, refresh a single product on demand,
and inspect recent runs.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from signal_pricing.models.base import get_db
from signal_pricing.models.recalculation import RecalculationRun
from signal_pricing.services.exceptions import ProductNotEligibleError, RecalculationInProgressError
from signal_pricing.services.recalculation_service import RecalculationService
from signal_pricing.utils.logger import log

router = APIRouter(prefix="/recalculation", tags=["recalculation"])


def get_recalculation_service() -> RecalculationService:
    return RecalculationService()


def _run_in_background(service: RecalculationService):
    try:
        service.recalculate_all(trigger="api")
    except RecalculationInProgressError:
        log.warning("Background recalculation skipped: a run is already in progress")


@router.post("/run")
def run_recalculation(
    background_tasks: BackgroundTasks,
    wait: bool = Query(False, description="Run synchronously and return the summary"),
    service: RecalculationService = Depends(get_recalculation_service),
):
    """
    Recalculate markups and visibility for the whole active catalog.
    Runs in the background unless wait=true.
    """
    if RecalculationService.is_running():
        raise HTTPException(status_code=409, detail="Recalculation already running")

    if not wait:
        background_tasks.add_task(_run_in_background, service)
        return {"message": "Recalculation started in background", "check_progress": "/recalculation/runs"}

    try:
        summary = service.recalculate_all(trigger="api")
    except RecalculationInProgressError:
        raise HTTPException(status_code=409, detail="Recalculation already running")
    return summary.to_dict()


@router.post("/products/{product_id}")
def recalculate_product(
    product_id: int,
    service: RecalculationService = Depends(get_recalculation_service),
):
    """Refresh one product's markup, prices and visibility now"""
    try:
        result = service.recalculate_one(product_id)
    except ProductNotEligibleError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error recalculating product {product_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
    return result.to_dict()


@router.get("/runs")
def list_runs(
    limit: int = Query(20, ge=1, le=200),
    db=Depends(get_db),
):
    """Most recent batch runs, newest first"""
    runs = (
        db.query(RecalculationRun)
        .order_by(RecalculationRun.started_at.desc(), RecalculationRun.id.desc())
        .limit(limit)
        .all()
    )
    return {
        "running": RecalculationService.is_running(),
        "runs": [run.to_dict() for run in runs],
    }
