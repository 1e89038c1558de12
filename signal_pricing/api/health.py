"""
Health check and status endpoints
"""
from fastapi import APIRouter
from datetime import datetime
from signal_pricing.config import get_settings
from signal_pricing.scheduler import scheduler
from signal_pricing.services.recalculation_service import RecalculationService
from signal_pricing import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status():
    """Get system status"""
    job = scheduler.get_job("signal_recalculation") if scheduler.running else None
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "recalculation": {
            "scheduler_running": scheduler.running,
            "interval_minutes": settings.recalc_interval_minutes,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "in_progress": RecalculationService.is_running(),
        },
        "timestamp": datetime.utcnow().isoformat()
    }
