"""
FastAPI application entry point for the correlation service.

Startup sequence (via lifespan):
  1. Init DB tables (idempotent, safe to run on every start)
  2. Wire store → repository → pipeline from settings
  3. Start APScheduler for the periodic TTL purge

Settings are read here and nowhere else; every component receives its
configuration through its constructor.
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from api.error_handlers import register_error_handlers
from api.routes import router
from config import settings
from dispatch.pipeline import AlertPipeline
from dispatch.scheduler import start_scheduler, stop_scheduler
from fastapi import FastAPI
from messaging.task_queue import HTTPTaskQueue
from storage.record_store import SQLiteRecordStore
from storage.repository import RepositoryService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Manage startup and shutdown lifecycle."""
    logger.info("Starting Alert Correlation Service")

    store = SQLiteRecordStore(settings.db_path)
    store.init()

    application.state.store = store
    application.state.pipeline = AlertPipeline(
        RepositoryService(store, ttl_seconds=settings.record_ttl_seconds),
        HTTPTaskQueue(timeout=settings.queue_timeout_seconds),
        task_queue_url=settings.task_queue_url,
    )

    start_scheduler(store, settings.purge_interval_seconds)

    yield  # Application runs here

    stop_scheduler()
    logger.info("Service shutdown complete")


app = FastAPI(
    title="Alert Correlation Service",
    description=(
        "Correlates re-delivered security alerts into one report per alert, "
        "dispatches each distinct attribute to inspectors exactly once per "
        "report, and stages inspector output for aggregation."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)
register_error_handlers(app)


if __name__ == "__main__":
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
