"""Index GitHub docs into the vector store: chunk, embed, replace per file."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from github_docs.rag.chunker import chunk_markdown
from github_docs.rag.errors import IndexingError, StoreError
from github_docs.rag.freshness import needs_reindex
from github_docs.rag.models import ChunkMetadata, DocumentChunk
from github_docs.tools.github_helpers import (
    DocumentFile,
    get_documentation_files,
    list_org_repos,
)

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    """Outcome of indexing one collection."""

    collection: str
    files_total: int = 0
    files_indexed: int = 0
    chunks_indexed: int = 0
    skipped: bool = False
    reason: str = ""
    failed_files: list[str] = field(default_factory=list)


def _embed_file(embedder, collection: str, doc: DocumentFile) -> list[DocumentChunk]:
    chunks = chunk_markdown(doc.content, doc.path)
    if not chunks:
        return []
    embeddings = embedder.embed_documents([c.content for c in chunks])
    return [
        DocumentChunk(
            collection=collection,
            file_path=doc.path,
            content=chunk.content,
            embedding=embedding,
            metadata=ChunkMetadata(
                title=chunk.title,
                section=chunk.section,
                last_updated=doc.last_modified,
                commit_hash=doc.sha,
            ),
        )
        for chunk, embedding in zip(chunks, embeddings)
    ]


def index_documents(
    store,
    embedder,
    collection: str,
    documents: Sequence[DocumentFile],
    *,
    source_last_updated: datetime | None = None,
    force: bool = False,
) -> IndexReport:
    """Chunk, embed and store documents into collection.

    source_last_updated defaults to the newest document's last_modified. When
    the collection is stale (or force is set) every document is re-embedded;
    otherwise only documents whose sha is missing from or differs from the
    stored commit_hash are, so a file that failed on an earlier pass is picked
    up on the next one. Each file's stored chunks are replaced only after its
    embeddings are in hand: a failing embedding call keeps the file's previous
    chunks and lists it in failed_files. Files no longer in documents are
    removed. A failing store write aborts with IndexingError.
    """
    report = IndexReport(collection=collection, files_total=len(documents))
    if not documents:
        report.skipped, report.reason = True, "no documents"
        logger.info("rag.index: no documentation in %s, skipping", collection)
        return report

    if source_last_updated is None:
        source_last_updated = max(d.last_modified for d in documents)
    stale = force or needs_reindex(store.get_collection_stats(collection), source_last_updated)
    stored = store.file_versions(collection)
    removed_paths = sorted(set(stored) - {d.path for d in documents})
    pending = list(documents) if stale else [
        d for d in documents if stored.get(d.path) != d.sha and d.content.strip()
    ]
    if not pending and not removed_paths:
        report.skipped, report.reason = True, "up to date"
        logger.info("rag.index: %s is already up-to-date, skipping", collection)
        return report
    if not stale:
        logger.info("rag.index: %s up-to-date but %d files missing or changed", collection, len(pending))

    t0 = time.monotonic()
    if removed_paths:
        try:
            cleared = store.delete_files(collection, removed_paths)
        except StoreError as e:
            raise IndexingError(
                f"store write failed: {e.message}", {"operation": "index", "collection": collection}
            ) from e
        logger.info("rag.index: removed %d chunks of %d deleted files from %s", cleared, len(removed_paths), collection)

    for doc in pending:
        try:
            chunks = _embed_file(embedder, collection, doc)
            store.replace_file(collection, doc.path, chunks)
        except StoreError as e:
            raise IndexingError(
                f"store write failed: {e.message}",
                {"operation": "index", "collection": collection, "file_path": doc.path},
            ) from e
        except Exception:
            logger.exception("rag.index: failed to process %s in %s", doc.path, collection)
            report.failed_files.append(doc.path)
            continue
        report.files_indexed += 1
        report.chunks_indexed += len(chunks)

    logger.info(
        "rag.index: %s done: %d/%d files, %d chunks (%.1fs)",
        collection,
        report.files_indexed,
        len(pending),
        report.chunks_indexed,
        time.monotonic() - t0,
    )
    return report


def index_repository(store, embedder, repo, docs_path: str = "docs", force: bool = False) -> IndexReport:
    """Fetch markdown under docs_path from a PyGithub repo and index it as repo.full_name."""
    documents = get_documentation_files(repo, docs_path)
    return index_documents(store, embedder, repo.full_name, documents, force=force)


def index_organization(store, embedder, client, org: str, docs_path: str = "docs") -> list[IndexReport]:
    """Index every repo of org whose docs changed since the last pass.

    One repo failing is logged and does not stop the others.
    """
    logger.info("rag.index: starting auto-indexing for organization %s", org)
    reports: list[IndexReport] = []
    for info in list_org_repos(client, org, include_private=True):
        try:
            repo = client.get_repo(info.full_name)
            reports.append(index_repository(store, embedder, repo, docs_path))
        except Exception:
            logger.exception("rag.index: error indexing %s", info.full_name)
    logger.info(
        "rag.index: auto-indexing completed for %s (%d repos indexed)",
        org,
        sum(1 for r in reports if not r.skipped),
    )
    return reports
