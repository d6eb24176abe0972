"""Tests for the LangChain retriever and the embedder batching (fake model, no download)."""

import numpy as np
import pytest

from github_docs.rag.embeddings import SentenceTransformerEmbedder


class FakeModel:
    def __init__(self):
        self.batches = []

    def encode(self, texts, show_progress_bar=False):
        self.batches.append(list(texts))
        return np.array([[float(len(t)), 1.0] for t in texts])


def test_embed_documents_batches_and_truncates():
    embedder = SentenceTransformerEmbedder("unused", batch_size=2, max_chars=3)
    embedder._model = FakeModel()
    vectors = embedder.embed_documents(["a", "bbbbbb", "cc"])
    assert vectors == [[1.0, 1.0], [3.0, 1.0], [2.0, 1.0]]
    assert embedder._model.batches == [["a", "bbb"], ["cc"]]
    assert embedder.embed_documents([]) == []


def test_embed_query_adds_search_prefix():
    embedder = SentenceTransformerEmbedder("unused")
    embedder._model = FakeModel()
    assert embedder.embed_query("hello") == [27.0, 1.0]
    assert embedder._model.batches == [["Documentation search: hello"]]
    assert embedder.embed_documents(["hello"]) == [[5.0, 1.0]]


def test_retriever_returns_documents(store, embedder, make_chunk):
    pytest.importorskip("langchain_core")
    from github_docs.rag.retriever import DocsRetriever

    text = "rotate the signing keys"
    store.upsert(make_chunk(content=text, embedding=embedder.embed_query(text), title="Keys", commit_hash="abc"))
    store.upsert(make_chunk(content="other", collection="c/d", embedding=embedder.embed_query("other")))

    retriever = DocsRetriever(store=store, embedder=embedder, top_k=3, collections=["a/b"])
    docs = retriever.invoke(text)
    assert len(docs) == 1
    assert docs[0].page_content == text
    assert docs[0].metadata["collection"] == "a/b"
    assert docs[0].metadata["title"] == "Keys"
    assert docs[0].metadata["section"] == ""
    assert docs[0].metadata["commit_hash"] == "abc"
    assert docs[0].metadata["last_updated"].startswith("2024-01-01")
    assert docs[0].metadata["similarity"] == pytest.approx(1.0, abs=1e-6)
