import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI

from services.lending.src.lending.config import settings
from services.lending.src.lending.routes import api_router

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def run_accrual() -> None:
    """Accrue every reserve of the process-wide pool."""
    from services.lending.src.lending.jobs.accrue_reserves import accrue_all_reserves
    from services.lending.src.lending.service import get_pool

    logger.info("Starting reserve accrual...")
    results = accrue_all_reserves(get_pool())
    failed = [asset for asset, index in results.items() if index < 0]
    if failed:
        logger.error(f"Accrual failed for: {', '.join(failed)}")
    else:
        logger.info(f"Accrued {len(results)} reserves")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, build the pool and start the keeper on startup."""
    global scheduler

    from services.lending.src.lending.db.engine import get_engine, init_db
    from services.lending.src.lending.service import get_pool

    init_db(get_engine())
    get_pool()

    if settings.enable_accrual_job:
        logger.info(
            f"Starting accrual scheduler (every {settings.accrual_interval_seconds}s)"
        )
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            run_accrual,
            "interval",
            seconds=settings.accrual_interval_seconds,
            id="accrual",
            name="Reserve accrual keeper",
        )
        scheduler.start()

    yield

    # Shutdown scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler shutdown complete")


app = FastAPI(title="Lending Pool API", lifespan=lifespan)

# Include API routes
app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "lending-pool-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
