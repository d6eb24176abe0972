"""Scheduled jobs - auto-index the configured organization's docs."""

import logging

from github_docs.config import get_auto_index_orgs, settings
from github_docs.rag.indexer import index_organization

logger = logging.getLogger(__name__)

AUTO_INDEX_JOB_ID = "auto_index"

_scheduler = None


def set_scheduler(scheduler) -> None:
    """Store scheduler ref for logging next run."""
    global _scheduler
    _scheduler = scheduler


def _log_next_run(job_id: str) -> None:
    if _scheduler:
        job = _scheduler.get_job(job_id)
        if job and job.next_run_time:
            logger.info("Next %s: %s", job_id, job.next_run_time.strftime("%Y-%m-%d %H:%M"))


def run_auto_index_job(store, embedder, github_client) -> None:
    """Index every repo of each AUTO_INDEX_ORG. Repos with unchanged docs are skipped."""
    orgs = get_auto_index_orgs()
    if not orgs:
        logger.warning("No AUTO_INDEX_ORG configured, skipping job")
        return
    for org in orgs:
        try:
            reports = index_organization(store, embedder, github_client, org, settings.docs_path)
            indexed = [r for r in reports if not r.skipped]
            logger.info(
                "Auto-index done | org: %s | %d repos indexed, %d skipped",
                org,
                len(indexed),
                len(reports) - len(indexed),
            )
        except Exception as e:
            logger.exception("Auto-index failed | org: %s | %s", org, e)
    _log_next_run(AUTO_INDEX_JOB_ID)
