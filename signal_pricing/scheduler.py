"""
Scheduler for periodic signal recalculation

Uses APScheduler to recompute dynamic markups, final prices and visibility
scores for the whole active catalog on a fixed interval.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import asyncio

from signal_pricing.config import get_settings
from signal_pricing.services.exceptions import RecalculationInProgressError
from signal_pricing.services.recalculation_service import RecalculationService
from signal_pricing.utils.logger import log

settings = get_settings()
scheduler = AsyncIOScheduler()


async def run_signal_recalculation(trigger: str = "scheduler") -> dict:
    """Recalculate markups and visibility scores (hourly)"""
    try:
        log.info("Starting signal recalculation...")
        service = RecalculationService()
        # The batch is thread-pooled and blocking; keep the event loop free
        summary = await asyncio.to_thread(service.recalculate_all, trigger)

        if summary.errored:
            log.warning(
                f"Signal recalculation finished with errors: "
                f"{summary.errored} of {summary.total} products failed"
            )
        return summary.to_dict()

    except RecalculationInProgressError:
        log.warning("Signal recalculation already running, skipping this trigger")
        return {"status": "skipped"}
    except Exception as e:
        log.error(f"Signal recalculation error: {str(e)}")
        return {"status": "failed", "error_message": str(e)}


# Schedule Configuration

def setup_scheduler():
    """
    Configure the scheduler.

    - Signal recalculation: every RECALC_INTERVAL_MINUTES (default hourly)
    """
    scheduler.add_job(
        run_signal_recalculation,
        trigger=IntervalTrigger(minutes=settings.recalc_interval_minutes),
        id='signal_recalculation',
        name='Dynamic Markup & Visibility Recalculation',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    log.info(f"Scheduler configured: signal recalculation every {settings.recalc_interval_minutes} minutes")


def start_scheduler():
    """Start the scheduler"""
    setup_scheduler()
    scheduler.start()
    log.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
    log.info("Scheduler stopped")


def run_recalculation_now() -> dict:
    """Manually trigger a recalculation outside the event loop (CLI, scripts)"""
    log.info("Manually triggering signal recalculation...")
    return asyncio.run(run_signal_recalculation("manual"))
