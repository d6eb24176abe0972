"""Scheduler runner - periodic auto-indexing of organization docs.

- auto_index: every AUTO_INDEX_INTERVAL_MINUTES (0 disables)
- auto_index_startup: once at startup when AUTO_INDEX_ON_STARTUP
"""

import logging
from datetime import datetime, timezone
from functools import partial

from apscheduler.schedulers.background import BackgroundScheduler

from github_docs.config import get_auto_index_orgs, settings
from github_docs.scheduler.jobs import AUTO_INDEX_JOB_ID, run_auto_index_job, set_scheduler

logger = logging.getLogger(__name__)


def create_scheduler(store, embedder, github_client) -> BackgroundScheduler:
    """Create the scheduler with auto-index jobs bound to the given store/embedder/client."""
    scheduler = BackgroundScheduler()
    if not get_auto_index_orgs():
        logger.warning("AUTO_INDEX_ORG not set - no auto-index jobs scheduled")
        set_scheduler(scheduler)
        return scheduler

    job = partial(run_auto_index_job, store, embedder, github_client)
    if settings.auto_index_interval_minutes > 0:
        scheduler.add_job(
            job,
            trigger="interval",
            minutes=settings.auto_index_interval_minutes,
            id=AUTO_INDEX_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
    if settings.auto_index_on_startup:
        # Run in the background so startup isn't blocked
        scheduler.add_job(
            job,
            trigger="date",
            run_date=datetime.now(timezone.utc),
            id=f"{AUTO_INDEX_JOB_ID}_startup",
        )
    set_scheduler(scheduler)
    return scheduler


def start_scheduler(store, embedder, github_client) -> BackgroundScheduler:
    """Create and start the scheduler."""
    scheduler = create_scheduler(store, embedder, github_client)
    scheduler.start()
    logger.info(
        "Scheduler running. Auto-index %s every %d min (startup run: %s).",
        ", ".join(get_auto_index_orgs()) or "-",
        settings.auto_index_interval_minutes,
        settings.auto_index_on_startup,
    )
    return scheduler
