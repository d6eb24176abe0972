"""Shared helpers for GitHub API (org repos, docs files, commit metadata)."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice

from github import Auth, Github, GithubException, UnknownObjectException

from github_docs.config.settings import settings

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 50


@dataclass
class RepoInfo:
    """Repository summary used for listing and freshness checks."""

    name: str
    full_name: str
    description: str | None
    default_branch: str
    updated_at: datetime
    private: bool


@dataclass
class DocumentFile:
    """A markdown document fetched from a repo."""

    path: str
    content: str
    sha: str
    last_modified: datetime


def get_github_client(token: str | None = None) -> Github:
    """Authenticated client when a token is configured, anonymous otherwise."""
    token = settings.github_token if token is None else token
    if token:
        return Github(auth=Auth.Token(token))
    logger.debug("get_github_client: no GITHUB_TOKEN, using anonymous API")
    return Github()


def _repo_info(repo) -> RepoInfo:
    return RepoInfo(
        name=repo.name,
        full_name=repo.full_name,
        description=repo.description or None,
        default_branch=repo.default_branch or "main",
        updated_at=repo.updated_at or datetime.now(timezone.utc),
        private=bool(repo.private),
    )


def list_org_repos(client: Github, org: str, include_private: bool = False) -> list[RepoInfo]:
    """All repos of an organization, most recently updated first."""
    try:
        repos = [_repo_info(r) for r in client.get_organization(org).get_repos(type="all", sort="updated")]
    except GithubException as e:
        logger.error("list_org_repos: failed for org %s: %s", org, e)
        raise
    if not include_private:
        repos = [r for r in repos if not r.private]
    logger.info("list_org_repos: %d repos in %s", len(repos), org)
    return repos


def search_repositories(client: Github, query: str, org: str | None = None) -> list[RepoInfo]:
    """GitHub repo search, optionally scoped to an org."""
    q = f"{query} org:{org}" if org else query
    try:
        results = client.search_repositories(query=q, sort="updated")
        return [_repo_info(r) for r in islice(results, MAX_SEARCH_RESULTS)]
    except GithubException as e:
        logger.error("search_repositories: failed for %r: %s", q, e)
        raise


@dataclass
class RateLimitInfo:
    """Core GitHub API quota."""

    remaining: int
    limit: int
    reset_time: datetime


def get_rate_limit(client: Github) -> RateLimitInfo:
    """Refresh and return the core REST API rate limit."""
    try:
        client.get_rate_limit()
        remaining, limit = client.rate_limiting
        reset_time = datetime.fromtimestamp(client.rate_limiting_resettime, tz=timezone.utc)
    except GithubException as e:
        logger.error("get_rate_limit: failed: %s", e)
        raise
    logger.info("get_rate_limit: %d/%d requests remaining", remaining, limit)
    return RateLimitInfo(remaining=remaining, limit=limit, reset_time=reset_time)


def is_markdown_file(name: str) -> bool:
    return name.lower().endswith(".md")


def get_file_last_modified(repo, path: str) -> datetime:
    """Date of the latest commit touching path. Falls back to now()."""
    try:
        for commit in repo.get_commits(path=path):
            committer = commit.commit.committer
            if committer and committer.date:
                return committer.date
            break
    except GithubException as e:
        logger.warning("get_file_last_modified: could not get date for %s: %s", path, e)
    return datetime.now(timezone.utc)


def get_latest_commit_hash(repo, path: str | None = None) -> str | None:
    """SHA of the latest commit (touching path, if given)."""
    try:
        commits = repo.get_commits(path=path) if path else repo.get_commits()
        for commit in commits:
            return commit.sha
    except GithubException as e:
        logger.warning("get_latest_commit_hash: failed for %s: %s", path or repo.full_name, e)
    return None


def get_documentation_files(repo, docs_path: str = "docs") -> list[DocumentFile]:
    """Markdown files directly under docs_path. Missing folder returns []."""
    try:
        contents = repo.get_contents(docs_path)
    except UnknownObjectException:
        logger.warning("Documentation folder '%s' not found in %s", docs_path, repo.full_name)
        return []
    if not isinstance(contents, list):
        logger.warning("'%s' is not a directory in %s", docs_path, repo.full_name)
        return []

    files: list[DocumentFile] = []
    for entry in contents:
        if entry.type != "file" or not is_markdown_file(entry.name):
            continue
        try:
            content = entry.decoded_content.decode("utf-8", errors="replace")
        except (GithubException, AssertionError) as e:
            logger.warning("Failed to fetch content for %s: %s", entry.path, e)
            continue
        files.append(
            DocumentFile(
                path=entry.path,
                content=content,
                sha=entry.sha,
                last_modified=get_file_last_modified(repo, entry.path),
            )
        )
    logger.info("get_documentation_files: %d markdown files in %s/%s", len(files), repo.full_name, docs_path)
    return files
