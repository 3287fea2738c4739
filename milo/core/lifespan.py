import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from milo.analytics.db import init_db as init_analytics_db, purge_old_records
from milo.db.users import init_db as init_users_db

logger = logging.getLogger(__name__)

PURGE_INTERVAL_S = 3600


@asynccontextmanager
async def lifespan(app):
    init_users_db()
    init_analytics_db()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=PURGE_INTERVAL_S)
            except asyncio.TimeoutError:
                pass
            else:
                break
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover - retention must not stop the service
                logger.warning("analytics_retention_purge_failed: %s", exc)

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
