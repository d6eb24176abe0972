"""Scheduler – periodic docs auto-indexing.

Jobs (runner.create_scheduler): auto_index (every AUTO_INDEX_INTERVAL_MINUTES) and
auto_index_startup (once). Repos whose docs did not change are skipped by the freshness check.
"""

from github_docs.scheduler.runner import create_scheduler, start_scheduler

__all__ = ["create_scheduler", "start_scheduler"]
