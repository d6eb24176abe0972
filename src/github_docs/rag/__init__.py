"""RAG – docs chunking, vector store and semantic search.

Chunking (chunker.chunk_markdown): markdown -> heading-aware chunks of <= 1500 chars.
Store (store.VectorStore): SQLite chunks + float32 embeddings, upsert by (collection, file_path, content).
Search (store.VectorStore.search_similar / search.search_docs): exact cosine similarity, top-k.
Freshness (freshness.needs_reindex): skip collections whose docs didn't change.
Indexing (indexer.index_repository / index_organization): GitHub docs -> chunks -> embeddings -> store.
"""

from github_docs.rag.chunker import Chunk, chunk_markdown
from github_docs.rag.errors import (
    DocsIndexError,
    EmbeddingDimensionError,
    IndexingError,
    StoreClosedError,
    StoreError,
)
from github_docs.rag.freshness import needs_reindex
from github_docs.rag.models import ChunkMetadata, CollectionStats, DocumentChunk, SearchResult
from github_docs.rag.store import VectorStore

__all__ = [
    "Chunk",
    "chunk_markdown",
    "ChunkMetadata",
    "CollectionStats",
    "DocumentChunk",
    "SearchResult",
    "VectorStore",
    "needs_reindex",
    "DocsIndexError",
    "EmbeddingDimensionError",
    "IndexingError",
    "StoreClosedError",
    "StoreError",
    "DocsRetriever",
    "SentenceTransformerEmbedder",
    "index_documents",
    "index_repository",
    "index_organization",
    "search_docs",
]


def __getattr__(name: str):
    """Lazy import for heavy deps (sentence-transformers, langchain, PyGithub)."""
    if name == "SentenceTransformerEmbedder":
        from github_docs.rag.embeddings import SentenceTransformerEmbedder
        return SentenceTransformerEmbedder
    if name == "DocsRetriever":
        from github_docs.rag.retriever import DocsRetriever
        return DocsRetriever
    if name == "search_docs":
        from github_docs.rag.search import search_docs
        return search_docs
    if name in ("index_documents", "index_repository", "index_organization"):
        from github_docs.rag import indexer
        return getattr(indexer, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
