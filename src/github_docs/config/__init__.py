"""Configuration for GitHub Docs."""

from github_docs.config.settings import (
    Settings,
    get_auto_index_orgs,
    settings,
)

__all__ = ["settings", "Settings", "get_auto_index_orgs"]
