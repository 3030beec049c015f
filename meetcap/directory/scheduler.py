"""APScheduler integration for periodic participant scrapes."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from meetcap.directory.directory import ParticipantDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()

REFRESH_JOB_ID = "participant_directory_refresh"


async def refresh_directory(directory: ParticipantDirectory) -> None:
    """Scheduled job: scrape the roster once.

    Scrape failures are already contained by the directory; anything else
    is logged so the schedule keeps running.
    """
    try:
        await directory.refresh()
    except Exception as e:
        logger.error("participant refresh failed", error=str(e))


@asynccontextmanager
async def directory_refresh_lifespan(
    directory: ParticipantDirectory,
    interval_seconds: float = 10.0,
    scheduler: AsyncIOScheduler | None = None,
) -> "AsyncGenerator[AsyncIOScheduler, None]":
    """Keep the directory refreshed while the context is open.

    The first refresh runs immediately, then every interval_seconds. A
    refresh still running when the next one is due is not overlapped.

    Usage:
        async with directory_refresh_lifespan(directory, 10):
            await asyncio.sleep(capture_seconds)
    """
    scheduler = scheduler or AsyncIOScheduler(timezone=UTC)

    scheduler.add_job(
        refresh_directory,
        "interval",
        args=[directory],
        seconds=interval_seconds,
        next_run_time=datetime.now(UTC),
        id=REFRESH_JOB_ID,
        replace_existing=True,
        max_instances=1,
    )

    logger.info("Starting participant refresh", interval=interval_seconds)
    scheduler.start()

    try:
        yield scheduler
    finally:
        logger.info("Stopping participant refresh")
        scheduler.shutdown(wait=False)
