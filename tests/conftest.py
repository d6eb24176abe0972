"""Shared fixtures: in-memory store and a deterministic embedder (no model download)."""

import re
from datetime import datetime, timezone

import pytest

from github_docs.rag.models import ChunkMetadata, DocumentChunk
from github_docs.rag.store import VectorStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeEmbedder:
    """Bag-of-words vectors hashed into a few buckets by character sum."""

    dim = 16

    def __init__(self):
        self.document_calls = 0
        self.query_calls = 0

    def _vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        for word in re.findall(r"\w+", text.lower()):
            vec[sum(map(ord, word)) % self.dim] += 1.0
        return vec

    def embed_documents(self, texts):
        self.document_calls += 1
        return [self._vector(t) for t in texts]

    def embed_query(self, text):
        self.query_calls += 1
        return self._vector(text)


@pytest.fixture
def store():
    s = VectorStore()
    yield s
    s.close()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def make_chunk():
    def _make(
        content="X",
        embedding=(1.0, 0.0),
        collection="a/b",
        file_path="README.md",
        last_updated=T0,
        **meta,
    ) -> DocumentChunk:
        return DocumentChunk(
            collection=collection,
            file_path=file_path,
            content=content,
            embedding=list(embedding),
            metadata=ChunkMetadata(last_updated=last_updated, **meta),
        )

    return _make
