"""
Signal Pricing Engine
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from signal_pricing.config import get_settings
from signal_pricing.utils.logger import log
from signal_pricing import __version__

# Import routers
from signal_pricing.api import analytics, health, ranking, recalculation

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from signal_pricing.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    # Start the hourly recalculation
    from signal_pricing.scheduler import start_scheduler, stop_scheduler
    if settings.enable_scheduler:
        try:
            start_scheduler()
            log.info("Scheduler started successfully")
        except Exception as e:
            log.error(f"Scheduler startup error: {str(e)}")

    yield

    # Shutdown
    try:
        stop_scheduler()
    except Exception as e:
        log.warning(f"Scheduler shutdown error: {str(e)}")
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Marketplace pricing and visibility engine

    - Dynamic markup from 24h trending, demand, interaction and stock signals
    - Final customer prices on top of merchant prices (never below them)
    - Visibility scores for catalog exposure
    - Query-time ranking with featured, priority, freshness, stock and
      personalization boosts
    - Hourly batch recalculation with per-product error isolation
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(recalculation.router)
app.include_router(ranking.router)
app.include_router(analytics.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("signal_pricing.main:app", host=settings.api_host, port=settings.api_port)
