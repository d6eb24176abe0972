"""Decide whether a collection needs re-indexing."""

from datetime import datetime

from github_docs.rag.models import CollectionStats, to_utc


def needs_reindex(existing_stats: CollectionStats | None, source_last_updated: datetime) -> bool:
    """True if never indexed or the source changed after the newest indexed chunk.

    Equal timestamps count as up to date, so scheduled passes over unchanged repos
    don't re-embed anything.
    """
    if existing_stats is None:
        return True
    return existing_stats.most_recent_last_updated < to_utc(source_last_updated)
