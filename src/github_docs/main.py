"""GitHub Docs entry point - scheduler and CLI."""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from github_docs.logging_config import configure_logging

load_dotenv(os.getenv("ENV_FILE", ".env"))

logger = logging.getLogger(__name__)


def _open_store():
    from github_docs.config import settings
    from github_docs.rag.store import VectorStore

    return VectorStore(settings.docs_db_path)


def _embedder():
    from github_docs.rag.embeddings import SentenceTransformerEmbedder

    return SentenceTransformerEmbedder.from_settings()


def run_index(owner: str, repo: str, docs_path: str, force: bool) -> str:
    """Index one repo's docs once."""
    from github_docs.tools.docs_tools import IndexRepoDocsTool
    from github_docs.tools.github_helpers import get_github_client

    with _open_store() as store:
        tool = IndexRepoDocsTool(store, _embedder(), get_github_client())
        return tool._run(owner=owner, repo=repo, docs_path=docs_path, force=force)


def run_search(query: str, limit: int, repos: list[str] | None) -> str:
    """Search indexed docs once."""
    from github_docs.tools.docs_tools import SearchDocsTool

    with _open_store() as store:
        return SearchDocsTool(store, _embedder())._run(query=query, repos=repos, limit=limit)


def run_stats() -> str:
    from github_docs.tools.docs_tools import RepoStatsTool

    with _open_store() as store:
        return RepoStatsTool(store)._run()


def run_clear(repo: str) -> str:
    """Remove every chunk of a repo from the index."""
    with _open_store() as store:
        deleted = store.delete_collection(repo)
    return f"Removed {deleted} chunks of {repo}"


def run_list_repos(org: str, include_private: bool) -> str:
    from github_docs.tools.docs_tools import ListOrgReposTool
    from github_docs.tools.github_helpers import get_github_client

    return ListOrgReposTool(get_github_client())._run(org=org, include_private=include_private)


def run_scheduler():
    """Run the auto-index scheduler until Ctrl+C. The store is closed on exit."""
    from github_docs.scheduler.runner import start_scheduler
    from github_docs.tools.github_helpers import get_github_client

    with _open_store() as store:
        scheduler = start_scheduler(store, _embedder(), get_github_client())
        logger.info("Scheduler running. Ctrl+C to stop.")
        try:
            import time
            while True:
                time.sleep(60)
        except KeyboardInterrupt:
            scheduler.shutdown()
            logger.info("Scheduler stopped.")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="GitHub Docs: index GitHub documentation and search it semantically"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # schedule - run auto-index scheduler (default)
    subparsers.add_parser("schedule", help="Run auto-index scheduler (AUTO_INDEX_ORG)")

    # index - index one repo
    index_parser = subparsers.add_parser("index", help="Index one repository's docs")
    index_parser.add_argument("owner", help="Repository owner (user or organization)")
    index_parser.add_argument("repo", help="Repository name")
    index_parser.add_argument("--docs-path", default=None, help="Docs folder (default: DOCS_PATH)")
    index_parser.add_argument("--force", action="store_true", help="Re-index even if up to date")

    # search - semantic search
    search_parser = subparsers.add_parser("search", help="Search indexed docs")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--limit", type=int, default=5, help="Max results")
    search_parser.add_argument(
        "--repo", action="append", dest="repos", help="Restrict to owner/repo (repeatable)"
    )

    # stats - indexed repo statistics
    subparsers.add_parser("stats", help="Show indexed repository statistics")

    # clear - drop a repo from the index
    clear_parser = subparsers.add_parser("clear", help="Remove a repository from the index")
    clear_parser.add_argument("repo", help="owner/repo")

    # repos - list org repos
    repos_parser = subparsers.add_parser("repos", help="List an organization's repositories")
    repos_parser.add_argument("org", help="GitHub organization")
    repos_parser.add_argument("--include-private", action="store_true")

    args = parser.parse_args()

    configure_logging()

    if args.command == "schedule" or args.command is None:
        logger.info("Running scheduler (default command)")
        run_scheduler()
    elif args.command == "index":
        from github_docs.config import settings
        print(run_index(args.owner, args.repo, args.docs_path or settings.docs_path, args.force))
    elif args.command == "search":
        print(run_search(args.query, args.limit, args.repos))
    elif args.command == "stats":
        print(run_stats())
    elif args.command == "clear":
        print(run_clear(args.repo))
    elif args.command == "repos":
        print(run_list_repos(args.org, args.include_private))
    else:
        logger.debug("No command specified, showing help")
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
