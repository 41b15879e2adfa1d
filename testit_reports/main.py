"""
FastAPI application entry point for the TestIT Reports statistics service.

Configures logging and CORS, registers the statistics router, and manages the
lifespan resources: the asyncpg pool, the statistics schema and the
collection scheduler.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from testit_reports import __version__
from testit_reports.api import api_router
from testit_reports.core.config import get_settings
from testit_reports.core.database import close_db, init_db, init_schema
from testit_reports.jobs.scheduler import CollectionScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
        - Create the statistics tables (AUTO_CREATE_SCHEMA)
        - Start the collection scheduler (SCHEDULER_ENABLED)

    On shutdown:
        - Stop the scheduler
        - Close database connection pool
    """
    settings = get_settings()
    scheduler: Optional[CollectionScheduler] = None

    # Startup
    logger.info("TestIT Reports API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
        if settings.auto_create_schema:
            await init_schema()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    if settings.scheduler_enabled:
        scheduler = CollectionScheduler.from_settings(settings)
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    # Shutdown
    logger.info("TestIT Reports API shutting down")
    if scheduler is not None:
        await scheduler.stop()
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="TestIT Reports API",
    version=__version__,
    description=(
        "Collects test case and test run statistics from TestIT and serves "
        "per-project, per-user, per-day reports."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # React dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy' and whether the scheduler is running
    """
    scheduler = getattr(app.state, 'scheduler', None)
    return {
        "status": "healthy",
        "scheduler": bool(scheduler and scheduler.running),
    }


@app.get("/")
async def root():
    return {
        "name": "TestIT Reports API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "testit_reports.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
