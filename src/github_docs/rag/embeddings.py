"""Sentence-transformers embedding provider for docs chunks and queries."""

import logging
import time
from typing import Sequence

logger = logging.getLogger(__name__)

# Prepended to every search query before encoding
QUERY_PREFIX = "Documentation search: "


class SentenceTransformerEmbedder:
    """Maps text to fixed-length vectors with a sentence-transformers model.

    The model is loaded on first use (a few seconds on CPU).
    """

    def __init__(self, model_name: str, batch_size: int = 100, max_chars: int = 8000):
        self.model_name = model_name
        self.batch_size = batch_size
        self.max_chars = max_chars
        self._model = None

    @classmethod
    def from_settings(cls) -> "SentenceTransformerEmbedder":
        from github_docs.config.settings import settings

        return cls(
            settings.rag_embedding_model,
            batch_size=settings.embedding_batch_size,
            max_chars=settings.embedding_max_chars,
        )

    def _load(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            t0 = time.monotonic()
            self._model = SentenceTransformer(self.model_name)
            logger.info("rag.embed: loaded model %s (%.1fs)", self.model_name, time.monotonic() - t0)
        return self._model

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """One vector per text, encoded in batches of batch_size."""
        if not texts:
            return []
        model = self._load()
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = [t[: self.max_chars] for t in texts[i : i + self.batch_size]]
            encoded = model.encode(batch, show_progress_bar=False)
            vectors.extend(encoded.tolist())
        logger.debug("rag.embed: encoded %d texts", len(vectors))
        return vectors

    def embed_query(self, text: str) -> list[float]:
        """Vector for a search query, prefixed with QUERY_PREFIX."""
        model = self._load()
        query = QUERY_PREFIX + text
        return model.encode([query[: self.max_chars]], show_progress_bar=False)[0].tolist()
