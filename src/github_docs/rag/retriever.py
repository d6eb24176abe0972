"""LangChain BaseRetriever wrapping docs semantic search."""

import logging
from typing import Any

from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever

from github_docs.rag.search import search_docs

logger = logging.getLogger(__name__)


class DocsRetriever(BaseRetriever):
    """LangChain retriever over the docs vector store.

    Returns Document objects with page_content (chunk text) and metadata
    (collection, file_path, title, section, last_updated, commit_hash,
    similarity). Compatible with RetrievalQA, create_retrieval_chain, etc.
    """

    store: Any
    """VectorStore to search."""

    embedder: Any
    """Embedding provider with embed_query()."""

    top_k: int = 5
    """Maximum number of documents to return."""

    collections: list[str] | None = None
    """Restrict search to these collections (e.g. ["org/repo"])."""

    def _get_relevant_documents(self, query: str, **kwargs: Any) -> list[Document]:
        """Retrieve documents relevant to the query."""
        results = search_docs(
            self.store,
            self.embedder,
            query,
            top_k=self.top_k,
            collections=self.collections,
        )
        logger.info("DocsRetriever: retrieved %d documents for query", len(results))
        docs: list[Document] = []
        for r in results:
            chunk = r.chunk
            metadata: dict[str, Any] = {
                "collection": chunk.collection,
                "file_path": chunk.file_path,
                "title": chunk.metadata.title or "",
                "section": chunk.metadata.section or "",
                "last_updated": chunk.metadata.last_updated.isoformat(),
                "commit_hash": chunk.metadata.commit_hash or "",
                "similarity": r.similarity,
            }
            docs.append(Document(page_content=chunk.content, metadata=metadata))
        return docs
