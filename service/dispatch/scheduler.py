"""
TTL purge scheduler using APScheduler.

Expiry is advisory: conditional creates already treat an expired record as
absent, so the purge only reclaims space. The job is scheduled on the
FastAPI event loop; the DELETE itself runs in a worker thread so request
handling is not blocked while it runs.

Concurrency guard:
  asyncio.Lock prevents two purges from overlapping if one runs long.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from errors import StoreError
from storage.record_store import SQLiteRecordStore

logger = logging.getLogger(__name__)

_purge_lock = asyncio.Lock()
scheduler = AsyncIOScheduler()


async def purge_if_idle(store: SQLiteRecordStore, now: Optional[datetime] = None) -> Optional[int]:
    """Run one purge unless another is in progress. Returns rows deleted, or None if skipped/failed."""
    if _purge_lock.locked():
        logger.info("Purge skipped, previous purge still running")
        return None
    async with _purge_lock:
        try:
            deleted = await asyncio.to_thread(store.purge_expired, now or datetime.now(timezone.utc))
        except StoreError as exc:
            # Keep the job scheduled; the next interval tries again
            logger.error("Purge failed: %s", exc)
            return None
    if deleted:
        logger.info("Purged %d expired records", deleted)
    return deleted


def start_scheduler(store: SQLiteRecordStore, interval_seconds: int) -> None:
    """Start the background purge job. Called once on app startup."""
    scheduler.add_job(
        purge_if_idle,
        trigger="interval",
        seconds=interval_seconds,
        args=[store],
        id="purge_expired",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started (purge interval=%ds)", interval_seconds)


def stop_scheduler() -> None:
    """Gracefully stop the scheduler. Called on app shutdown."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
