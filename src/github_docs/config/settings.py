"""Pydantic settings for GitHub Docs configuration."""

import logging
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Empty token = anonymous GitHub API (60 req/h, public repos only).
    github_token: str = ""

    # Organization indexed by the scheduler. Empty disables auto-indexing.
    auto_index_org: str = ""
    # 0 disables the periodic job; the startup pass still honours auto_index_on_startup.
    auto_index_interval_minutes: int = 60
    auto_index_on_startup: bool = True

    # Folder inside each repo that holds the markdown docs.
    docs_path: str = "docs"

    # SQLite file for chunks + embeddings.
    docs_db_path: str = "./data/github-docs.db"

    # RAG embedding model. sentence-transformers model ID.
    rag_embedding_model: str = "all-MiniLM-L6-v2"
    embedding_batch_size: int = 100
    embedding_max_chars: int = 8000

    # Minimum similarity for dependency hits reported by the tools.
    alert_threshold: float = 0.7

    # DEBUG shows per-chunk store writes and search candidate counts.
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


settings = get_settings()


def get_auto_index_orgs() -> list[str]:
    """Organizations to auto-index. AUTO_INDEX_ORG may hold several, comma-separated."""
    orgs = [o.strip() for o in settings.auto_index_org.split(",") if o.strip()]
    if not orgs:
        logger.debug("get_auto_index_orgs: AUTO_INDEX_ORG not set")
    return orgs
