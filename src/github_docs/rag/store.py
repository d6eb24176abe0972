"""SQLite-backed store for doc chunks and their embeddings.

Two tables joined by chunk id: chunks (text + metadata, unique on
collection/file_path/content) and embeddings (float32 blob, cascade-deleted
with its chunk). One connection, one lock: writes are serialized, each
upsert or file replacement is a single transaction, each read is a single query.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from github_docs.rag.errors import EmbeddingDimensionError, StoreClosedError, StoreError
from github_docs.rag.models import ChunkMetadata, CollectionStats, DocumentChunk, SearchResult
from github_docs.rag.search import rank_by_similarity

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"
_EMBEDDING_DTYPE = np.dtype("<f4")

SCHEMA = """
CREATE TABLE IF NOT EXISTS chunks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    file_path TEXT NOT NULL,
    content TEXT NOT NULL,
    metadata_json TEXT NOT NULL,
    last_updated TEXT NOT NULL,
    commit_hash TEXT,
    UNIQUE(collection, file_path, content)
);

CREATE TABLE IF NOT EXISTS embeddings (
    id INTEGER PRIMARY KEY,
    chunk_id INTEGER NOT NULL UNIQUE,
    embedding BLOB NOT NULL,
    FOREIGN KEY (chunk_id) REFERENCES chunks (id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_chunks_collection ON chunks(collection);
CREATE INDEX IF NOT EXISTS idx_chunks_file_path ON chunks(file_path);
CREATE INDEX IF NOT EXISTS idx_chunks_last_updated ON chunks(last_updated);
"""

_SELECT_CHUNKS = """
SELECT c.id, c.collection, c.file_path, c.content, c.metadata_json, e.embedding
FROM chunks c
JOIN embeddings e ON e.chunk_id = c.id
"""


def _to_blob(embedding: Sequence[float]) -> bytes:
    return np.asarray(embedding, dtype=_EMBEDDING_DTYPE).tobytes()


def _from_blob(blob: bytes) -> list[float]:
    return np.frombuffer(blob, dtype=_EMBEDDING_DTYPE).tolist()


def _timestamp(value: datetime) -> str:
    # Fixed-width UTC ISO text so MAX()/ORDER BY on the column are chronological
    return value.isoformat(timespec="microseconds")


def _row_to_chunk(row: sqlite3.Row) -> DocumentChunk:
    return DocumentChunk(
        id=row["id"],
        collection=row["collection"],
        file_path=row["file_path"],
        content=row["content"],
        embedding=_from_blob(row["embedding"]),
        metadata=ChunkMetadata.model_validate_json(row["metadata_json"]),
    )


class VectorStore:
    """Durable table of doc chunks + embeddings.

    Use as a context manager (or call close()) to release the connection.
    Embedding dimensionality is fixed by the first write, or read back from
    existing rows when reopening a database.
    """

    def __init__(self, db_path: str | Path = MEMORY_DB):
        self._path = str(db_path)
        if self._path != MEMORY_DB:
            Path(self._path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                self._path, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
            if self._path != MEMORY_DB:
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(SCHEMA)
            self._dimension = self._read_dimension()
        except sqlite3.Error as e:
            raise StoreError("could not open vector store", {"db_path": self._path}) from e
        logger.info("rag.store: opened %s (dimension=%s)", self._path, self._dimension)

    def __enter__(self) -> "VectorStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def dimension(self) -> int | None:
        """Embedding length used by this store; None until the first write."""
        return self._dimension

    @property
    def closed(self) -> bool:
        return self._conn is None

    def close(self) -> None:
        """Close the connection. Further calls raise StoreClosedError."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("rag.store: closed %s", self._path)

    def _connection(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError("vector store is closed", {"operation": operation})
        return self._conn

    def _read_dimension(self) -> int | None:
        row = self._conn.execute("SELECT embedding FROM embeddings LIMIT 1").fetchone()
        if row is None:
            return None
        return len(row["embedding"]) // _EMBEDDING_DTYPE.itemsize

    def _check_dimension(self, embedding: Sequence[float], details: dict[str, Any]) -> None:
        if self._dimension is not None and len(embedding) != self._dimension:
            raise EmbeddingDimensionError(
                f"embedding has {len(embedding)} dimensions, store uses {self._dimension}",
                details,
            )

    def _write_chunk(self, conn: sqlite3.Connection, chunk: DocumentChunk) -> int:
        meta = chunk.metadata
        conn.execute(
            """
            INSERT INTO chunks
                (collection, file_path, content, metadata_json, last_updated, commit_hash)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(collection, file_path, content) DO UPDATE SET
                metadata_json = excluded.metadata_json,
                last_updated = excluded.last_updated,
                commit_hash = excluded.commit_hash
            """,
            (
                chunk.collection,
                chunk.file_path,
                chunk.content,
                meta.model_dump_json(),
                _timestamp(meta.last_updated),
                meta.commit_hash,
            ),
        )
        chunk_id = conn.execute(
            "SELECT id FROM chunks WHERE collection = ? AND file_path = ? AND content = ?",
            (chunk.collection, chunk.file_path, chunk.content),
        ).fetchone()["id"]
        conn.execute(
            """
            INSERT INTO embeddings (chunk_id, embedding) VALUES (?, ?)
            ON CONFLICT(chunk_id) DO UPDATE SET embedding = excluded.embedding
            """,
            (chunk_id, _to_blob(chunk.embedding)),
        )
        return chunk_id

    def upsert(self, chunk: DocumentChunk | dict) -> int:
        """Insert or replace the chunk keyed by (collection, file_path, content). Returns row id."""
        if not isinstance(chunk, DocumentChunk):
            chunk = DocumentChunk.model_validate(chunk)
        details = {"operation": "upsert", "collection": chunk.collection, "file_path": chunk.file_path}
        with self._lock:
            conn = self._connection("upsert")
            self._check_dimension(chunk.embedding, details)
            try:
                with conn:
                    chunk_id = self._write_chunk(conn, chunk)
            except sqlite3.Error as e:
                raise StoreError(f"upsert failed: {e}", details) from e
            if self._dimension is None:
                self._dimension = len(chunk.embedding)
        logger.debug("rag.store: upserted chunk %d (%s:%s)", chunk_id, chunk.collection, chunk.file_path)
        return chunk_id

    def replace_file(
        self, collection: str, file_path: str, chunks: Sequence[DocumentChunk]
    ) -> list[int]:
        """Make chunks the only rows stored for (collection, file_path), in one transaction.

        Chunks whose content is unchanged keep their id; rows of the file not in
        chunks are deleted. An empty chunks list removes the file.
        """
        details = {"operation": "replace_file", "collection": collection, "file_path": file_path}
        for chunk in chunks:
            if chunk.collection != collection or chunk.file_path != file_path:
                raise ValueError(
                    f"chunk of {chunk.collection}:{chunk.file_path} passed for {collection}:{file_path}"
                )
        with self._lock:
            conn = self._connection("replace_file")
            dimension = self._dimension
            if dimension is None and chunks:
                dimension = len(chunks[0].embedding)
            for chunk in chunks:
                if len(chunk.embedding) != dimension:
                    raise EmbeddingDimensionError(
                        f"embedding has {len(chunk.embedding)} dimensions, store uses {dimension}",
                        details,
                    )
            try:
                with conn:
                    ids = [self._write_chunk(conn, chunk) for chunk in chunks]
                    placeholders = ",".join("?" for _ in ids)
                    removed = conn.execute(
                        "DELETE FROM chunks WHERE collection = ? AND file_path = ?"
                        + (f" AND id NOT IN ({placeholders})" if ids else ""),
                        (collection, file_path, *ids),
                    ).rowcount
                self._dimension = dimension if ids else self._read_dimension()
            except sqlite3.Error as e:
                raise StoreError(f"replace failed: {e}", details) from e
        logger.debug(
            "rag.store: replaced %s:%s (%d chunks, %d removed)", collection, file_path, len(ids), removed
        )
        return ids

    def delete_files(self, collection: str, file_paths: Sequence[str]) -> int:
        """Remove every chunk of the given files of a collection."""
        if not file_paths:
            return 0
        details = {"operation": "delete_files", "collection": collection}
        placeholders = ",".join("?" for _ in file_paths)
        with self._lock:
            conn = self._connection("delete_files")
            try:
                with conn:
                    deleted = conn.execute(
                        f"DELETE FROM chunks WHERE collection = ? AND file_path IN ({placeholders})",
                        (collection, *file_paths),
                    ).rowcount
                if self._read_dimension() is None:
                    self._dimension = None
            except sqlite3.Error as e:
                raise StoreError(f"delete failed: {e}", details) from e
        logger.info("rag.store: deleted %d chunks of %d files from %s", deleted, len(file_paths), collection)
        return deleted

    def file_versions(self, collection: str) -> dict[str, str | None]:
        """file_path -> commit_hash of the stored chunks of a collection."""
        rows = self._query(
            "file_versions",
            """
            SELECT file_path, MIN(commit_hash) AS commit_hash
            FROM chunks
            WHERE collection = ?
            GROUP BY file_path
            """,
            (collection,),
            collection=collection,
        )
        return {r["file_path"]: r["commit_hash"] for r in rows}

    def list_by_collection(self, collection: str) -> list[DocumentChunk]:
        """All chunks of a collection, newest last_updated first."""
        rows = self._query(
            "list_by_collection",
            _SELECT_CHUNKS + " WHERE c.collection = ? ORDER BY c.last_updated DESC, c.id",
            (collection,),
            collection=collection,
        )
        return [_row_to_chunk(r) for r in rows]

    def count(self, collection: str | None = None) -> int:
        """Number of chunks, optionally in one collection."""
        if collection is None:
            rows = self._query("count", "SELECT COUNT(*) AS n FROM chunks", ())
        else:
            rows = self._query(
                "count",
                "SELECT COUNT(*) AS n FROM chunks WHERE collection = ?",
                (collection,),
                collection=collection,
            )
        return rows[0]["n"]

    def delete_collection(self, collection: str) -> int:
        """Remove every chunk (and embedding) of a collection. Unknown collection is a no-op."""
        details = {"operation": "delete_collection", "collection": collection}
        with self._lock:
            conn = self._connection("delete_collection")
            try:
                with conn:
                    deleted = conn.execute(
                        "DELETE FROM chunks WHERE collection = ?", (collection,)
                    ).rowcount
                if self._read_dimension() is None:
                    self._dimension = None
            except sqlite3.Error as e:
                raise StoreError(f"delete failed: {e}", details) from e
        logger.info("rag.store: deleted %d chunks from %s", deleted, collection)
        return deleted

    def stats(self) -> list[CollectionStats]:
        """One entry per collection, ordered by collection name."""
        rows = self._query(
            "stats",
            """
            SELECT collection, COUNT(*) AS chunk_count, MAX(last_updated) AS last_updated
            FROM chunks
            GROUP BY collection
            ORDER BY collection
            """,
            (),
        )
        return [
            CollectionStats(
                collection=r["collection"],
                chunk_count=r["chunk_count"],
                most_recent_last_updated=datetime.fromisoformat(r["last_updated"]),
            )
            for r in rows
        ]

    def get_collection_stats(self, collection: str) -> CollectionStats | None:
        """Stats for one collection, or None if it has no chunks."""
        rows = self._query(
            "stats",
            """
            SELECT collection, COUNT(*) AS chunk_count, MAX(last_updated) AS last_updated
            FROM chunks
            WHERE collection = ?
            GROUP BY collection
            """,
            (collection,),
            collection=collection,
        )
        if not rows:
            return None
        return CollectionStats(
            collection=rows[0]["collection"],
            chunk_count=rows[0]["chunk_count"],
            most_recent_last_updated=datetime.fromisoformat(rows[0]["last_updated"]),
        )

    def search_similar(
        self,
        query_embedding: Sequence[float],
        top_k: int = 10,
        collection_filter: Sequence[str] | str | None = None,
    ) -> list[SearchResult]:
        """Top-k chunks by cosine similarity to query_embedding, best first.

        collection_filter restricts candidates when given and non-empty.
        """
        if isinstance(collection_filter, str):
            collection_filter = [collection_filter]
        collections = list(collection_filter or [])
        sql = _SELECT_CHUNKS
        params: tuple = ()
        if collections:
            placeholders = ",".join("?" for _ in collections)
            sql += f" WHERE c.collection IN ({placeholders})"
            params = tuple(collections)
        sql += " ORDER BY c.id"

        # Dimension check and candidate read must share one lock hold
        with self._lock:
            conn = self._connection("search_similar")
            if self._dimension is None:
                logger.debug("rag.store: search on empty store")
                return []
            self._check_dimension(query_embedding, {"operation": "search_similar"})
            if top_k <= 0:
                return []
            try:
                rows = conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"search_similar failed: {e}", {"operation": "search_similar"}) from e
        candidates = [_row_to_chunk(r) for r in rows]
        logger.debug("rag.store: scoring %d candidates (top_k=%d)", len(candidates), top_k)
        return rank_by_similarity(query_embedding, candidates, top_k)

    def _query(
        self,
        operation: str,
        sql: str,
        params: tuple,
        collection: str | None = None,
    ) -> list[sqlite3.Row]:
        with self._lock:
            conn = self._connection(operation)
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(
                    f"{operation} failed: {e}",
                    {"operation": operation, "collection": collection},
                ) from e
