"""Semantic search over the docs index (exact cosine similarity)."""

import logging
from typing import Sequence

import numpy as np

from github_docs.rag.models import DocumentChunk, SearchResult

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 when either vector has zero magnitude."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def rank_by_similarity(
    query: Sequence[float],
    candidates: Sequence[DocumentChunk],
    top_k: int,
) -> list[SearchResult]:
    """Score every candidate against query and return the top_k, best first.

    Brute force over all candidates. Ties keep candidate order. No threshold:
    negative and near-zero scores are returned as-is.
    """
    if top_k <= 0 or not candidates:
        return []
    q = np.asarray(query, dtype=np.float64)
    matrix = np.asarray([c.embedding for c in candidates], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    scores = np.zeros(len(candidates), dtype=np.float64)
    nonzero = norms > 0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    # Clip only absorbs float rounding (e.g. 1.0000000002)
    scores = np.clip(scores, -1.0, 1.0)
    order = np.argsort(-scores, kind="stable")[:top_k]
    return [SearchResult(chunk=candidates[i], similarity=float(scores[i])) for i in order]


def search_docs(
    store,
    embedder,
    query: str,
    top_k: int = 5,
    collections: Sequence[str] | None = None,
) -> list[SearchResult]:
    """Embed query and return the top_k most similar chunks. Blank query returns []."""
    if not query or not query.strip():
        logger.debug("rag.search: empty query, returning []")
        return []
    query_embedding = embedder.embed_query(query)
    results = store.search_similar(query_embedding, top_k, collections)
    logger.info("rag.search: returned %d results for query (top_k=%d)", len(results), top_k)
    return results


def dedupe_results(results: Sequence[SearchResult]) -> list[SearchResult]:
    """Keep the best hit per chunk id (several queries may return the same chunk), best first."""
    best: dict[int | None, SearchResult] = {}
    for r in results:
        key = r.chunk.id
        if key not in best or r.similarity > best[key].similarity:
            best[key] = r
    return sorted(best.values(), key=lambda r: r.similarity, reverse=True)


def filter_by_threshold(results: Sequence[SearchResult], threshold: float) -> list[SearchResult]:
    """Drop results scoring below threshold."""
    return [r for r in results if r.similarity >= threshold]
