"""GitHub Docs tools – GitHub API helpers and CrewAI tools over the docs index.

GitHub (github_helpers): list_org_repos, search_repositories, get_documentation_files, get_rate_limit.
Docs (docs_tools): SearchDocsTool, IndexRepoDocsTool, RepoStatsTool, ServiceDependenciesTool,
ListOrgReposTool, FeatureImpactTool, DevRecommendationsTool, BreakingChangesTool, RateLimitTool.
CrewAI is only imported when a tool is requested.
"""

from github_docs.tools.github_helpers import (
    DocumentFile,
    RateLimitInfo,
    RepoInfo,
    get_documentation_files,
    get_github_client,
    get_rate_limit,
    list_org_repos,
    search_repositories,
)

__all__ = [
    "DocumentFile",
    "RateLimitInfo",
    "RepoInfo",
    "get_documentation_files",
    "get_github_client",
    "get_rate_limit",
    "list_org_repos",
    "search_repositories",
    "SearchDocsTool",
    "IndexRepoDocsTool",
    "RepoStatsTool",
    "ServiceDependenciesTool",
    "ListOrgReposTool",
    "FeatureImpactTool",
    "DevRecommendationsTool",
    "BreakingChangesTool",
    "RateLimitTool",
    "create_docs_tools",
]

_DOCS_TOOLS = {
    "SearchDocsTool",
    "IndexRepoDocsTool",
    "RepoStatsTool",
    "ServiceDependenciesTool",
    "ListOrgReposTool",
    "FeatureImpactTool",
    "DevRecommendationsTool",
    "BreakingChangesTool",
    "RateLimitTool",
    "create_docs_tools",
}


def __getattr__(name: str):
    """Lazy import for crewai."""
    if name in _DOCS_TOOLS:
        from github_docs.tools import docs_tools
        return getattr(docs_tools, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
