"""Typed records stored in and returned by the vector store."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ChunkMetadata(BaseModel):
    """Provenance and heading context of a chunk (metadata_json column)."""

    title: str | None = None
    section: str | None = None
    last_updated: datetime
    commit_hash: str | None = None

    @field_validator("last_updated")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class DocumentChunk(BaseModel):
    """A chunk of a document with its embedding. id is set by the store."""

    collection: str = Field(min_length=1)
    file_path: str = Field(min_length=1)
    content: str
    embedding: list[float] = Field(min_length=1)
    metadata: ChunkMetadata
    id: int | None = None

    @field_validator("content")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content is empty")
        return value


class CollectionStats(BaseModel):
    """Aggregate over all chunks of one collection."""

    collection: str
    chunk_count: int
    most_recent_last_updated: datetime

    @field_validator("most_recent_last_updated")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class SearchResult(BaseModel):
    """A stored chunk and its cosine similarity to the query."""

    chunk: DocumentChunk
    similarity: float
