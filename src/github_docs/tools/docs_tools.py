"""CrewAI tools over the docs index.

Search, index, stats and org repos, plus impact analysis on top of search: service
dependencies, feature impact, dev recommendations, breaking changes. Rate limit
reports the GitHub API quota.

Store, embedder and GitHub client are injected at construction.
"""

import logging
from typing import Literal, Type

from crewai.tools import BaseTool
from pydantic import BaseModel, Field

from github_docs.config.settings import settings
from github_docs.rag.errors import DocsIndexError
from github_docs.rag.indexer import index_repository
from github_docs.rag.models import SearchResult
from github_docs.rag.search import dedupe_results, filter_by_threshold, search_docs
from github_docs.tools.github_helpers import get_rate_limit, list_org_repos

logger = logging.getLogger(__name__)

SEARCH_SNIPPET_CHARS = 500
DEPENDENCY_SNIPPET_CHARS = 300
DEPENDENCY_QUERIES = (
    "{service} dependency",
    "depends on {service}",
    "{service} integration",
    "{service} API",
    "{service} service",
)


def _snippet(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def format_search_result(index: int, result: SearchResult) -> str:
    """Markdown block for one search hit."""
    chunk = result.chunk
    meta = chunk.metadata
    lines = [
        f"## Result {index} ({result.similarity * 100:.1f}% match)",
        f"**Repository:** {chunk.collection}",
        f"**File:** {chunk.file_path}",
    ]
    if meta.title:
        lines.append(f"**Title:** {meta.title}")
    if meta.section:
        lines.append(f"**Section:** {meta.section}")
    lines += [
        f"**Last Updated:** {meta.last_updated.date().isoformat()}",
        "",
        "**Content:**",
        _snippet(chunk.content, SEARCH_SNIPPET_CHARS),
        "",
        "---",
    ]
    return "\n".join(lines)


def _run_queries(store, embedder, queries, top_k: int, collections=None) -> list[SearchResult]:
    """All hits of several searches, concatenated in query order."""
    hits: list[SearchResult] = []
    for query in queries:
        hits.extend(search_docs(store, embedder, query, top_k=top_k, collections=collections))
    return hits


def _first_strong_hit(store, embedder, queries, top_k: int, threshold: float) -> SearchResult | None:
    """Best hit of the first query whose best hit reaches threshold."""
    for query in queries:
        results = search_docs(store, embedder, query, top_k=top_k)
        if results and results[0].similarity >= threshold:
            return results[0]
    return None


class SearchDocsInput(BaseModel):
    """Input for SearchDocsTool."""

    query: str = Field(..., description="Search query")
    repos: list[str] | None = Field(
        default=None, description="Filter by specific repositories (format: owner/repo)"
    )
    limit: int = Field(default=5, ge=1, le=50, description="Maximum number of results to return")


class SearchDocsTool(BaseTool):
    """Search indexed documentation by semantic similarity."""

    name: str = "Search Docs"
    description: str = (
        "Semantic search across indexed GitHub documentation. Pass a natural-language query and "
        "optionally a list of repositories (owner/repo). Returns the best-matching doc sections."
    )
    args_schema: Type[BaseModel] = SearchDocsInput

    def __init__(self, store, embedder, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder

    def _run(self, query: str, repos: list[str] | None = None, limit: int = 5) -> str:
        try:
            results = search_docs(self._store, self._embedder, query, top_k=limit, collections=repos)
        except DocsIndexError as e:
            logger.warning("SearchDocsTool: search failed: %s", e)
            return f"Error searching documentation: {e}"
        if not results:
            logger.info("SearchDocsTool: no results for query (len=%d)", len(query))
            return f'No relevant documentation found for query: "{query}"'
        blocks = [format_search_result(i, r) for i, r in enumerate(results, start=1)]
        return f'Found {len(results)} relevant results for "{query}":\n\n' + "\n\n".join(blocks)


class IndexRepoDocsInput(BaseModel):
    """Input for IndexRepoDocsTool."""

    owner: str = Field(..., description="Repository owner (user or organization)")
    repo: str = Field(..., description="Repository name")
    docs_path: str = Field(default="docs", description="Path to documentation folder")
    force: bool = Field(default=False, description="Re-index even if already up to date")


class IndexRepoDocsTool(BaseTool):
    """Index a repo's markdown docs into the vector store."""

    name: str = "Index Repo Docs"
    description: str = (
        "Index documentation from a GitHub repository into the vector database. "
        "Skips repos whose docs have not changed since the last index unless force=true."
    )
    args_schema: Type[BaseModel] = IndexRepoDocsInput

    def __init__(self, store, embedder, github_client, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder
        self._client = github_client

    def _run(self, owner: str, repo: str, docs_path: str = "docs", force: bool = False) -> str:
        full_name = f"{owner}/{repo}"
        try:
            gh_repo = self._client.get_repo(full_name)
            report = index_repository(self._store, self._embedder, gh_repo, docs_path, force=force)
        except DocsIndexError as e:
            logger.error("IndexRepoDocsTool: indexing %s failed: %s", full_name, e)
            return f'Error indexing repository "{full_name}": {e}'
        except Exception as e:
            logger.warning("IndexRepoDocsTool: could not fetch %s: %s", full_name, e)
            return f'Error indexing repository "{full_name}": {e}'

        if report.skipped and report.reason == "no documents":
            return f'No markdown documentation found in "{docs_path}" folder of {full_name}'
        if report.skipped:
            existing = self._store.count(full_name)
            return (
                f'Repository "{full_name}" is already indexed with {existing} chunks and up to date. '
                "Use force=true to re-index."
            )
        lines = [
            f"Successfully indexed {full_name}:",
            f"- Processed {report.files_indexed}/{report.files_total} files",
            f"- Created {report.chunks_indexed} document chunks",
        ]
        if report.failed_files:
            lines.append(f"- Failed files: {', '.join(report.failed_files)}")
        return "\n".join(lines)


class RepoStatsTool(BaseTool):
    """Statistics about indexed repositories."""

    name: str = "Repo Stats"
    description: str = "Get statistics about indexed repositories (chunk counts, last update)."

    def __init__(self, store, **kwargs):
        super().__init__(**kwargs)
        self._store = store

    def _run(self) -> str:
        stats = self._store.stats()
        if not stats:
            return "No repositories have been indexed yet. Use 'Index Repo Docs' to start indexing documentation."
        total = sum(s.chunk_count for s in stats)
        repo_lines = "\n".join(
            f"- **{s.collection}**: {s.chunk_count} chunks "
            f"(last updated: {s.most_recent_last_updated.date().isoformat()})"
            for s in stats
        )
        return (
            "Indexed Repository Statistics:\n\n"
            f"**Total Repositories:** {len(stats)}\n"
            f"**Total Chunks:** {total}\n\n"
            f"{repo_lines}"
        )


class ServiceDependenciesInput(BaseModel):
    """Input for ServiceDependenciesTool."""

    service: str = Field(..., description="Service or component name to analyze")
    repos: list[str] | None = Field(default=None, description="Filter by specific repositories")


class ServiceDependenciesTool(BaseTool):
    """Find docs that mention dependencies/integrations of a service."""

    name: str = "Find Service Dependencies"
    description: str = (
        "Find potential dependencies and relationships between services based on documentation. "
        "Runs several related searches and reports the strongest matches."
    )
    args_schema: Type[BaseModel] = ServiceDependenciesInput

    def __init__(self, store, embedder, threshold: float = 0.0, max_results: int = 10, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder
        self._threshold = threshold
        self._max_results = max_results

    def _run(self, service: str, repos: list[str] | None = None) -> str:
        queries = [t.format(service=service) for t in DEPENDENCY_QUERIES]
        try:
            hits = _run_queries(self._store, self._embedder, queries, top_k=3, collections=repos)
        except DocsIndexError as e:
            logger.warning("ServiceDependenciesTool: search failed: %s", e)
            return f'Error finding dependencies for "{service}": {e}'

        results = filter_by_threshold(dedupe_results(hits), self._threshold)[: self._max_results]
        if not results:
            return f'No dependencies or relationships found for service "{service}" in the indexed documentation.'
        blocks = []
        for i, r in enumerate(results, start=1):
            lines = [
                f"### {i}. {r.chunk.collection} ({r.similarity * 100:.1f}% relevance)",
                f"**File:** {r.chunk.file_path}",
            ]
            if r.chunk.metadata.section:
                lines.append(f"**Section:** {r.chunk.metadata.section}")
            lines += ["", _snippet(r.chunk.content, DEPENDENCY_SNIPPET_CHARS), ""]
            blocks.append("\n".join(lines))
        return f'Found {len(results)} potential dependencies/relationships for "{service}":\n\n' + "\n".join(blocks)


class ListOrgReposInput(BaseModel):
    """Input for ListOrgReposTool."""

    org: str = Field(..., description="GitHub organization name")
    include_private: bool = Field(default=False, description="Include private repositories")


class ListOrgReposTool(BaseTool):
    """List the repositories of a GitHub organization."""

    name: str = "List Org Repos"
    description: str = "List all repositories for a GitHub organization."
    args_schema: Type[BaseModel] = ListOrgReposInput

    def __init__(self, github_client, **kwargs):
        super().__init__(**kwargs)
        self._client = github_client

    def _run(self, org: str, include_private: bool = False) -> str:
        try:
            repos = list_org_repos(self._client, org, include_private=include_private)
        except Exception as e:
            logger.warning("ListOrgReposTool: failed for %s: %s", org, e)
            return f'Error fetching repositories for organization "{org}": {e}'
        lines = [
            f"- **{r.name}** ({r.full_name})\n  {r.description or 'No description'}\n"
            f"  Last updated: {r.updated_at.date().isoformat()}"
            for r in repos
        ]
        return f'Found {len(repos)} repositories in organization "{org}":\n\n' + "\n\n".join(lines)


IMPACT_DEPENDENCY_QUERIES = (
    "{feature} dependency",
    "depends on {feature}",
    "{feature} integration",
    "{feature} API endpoint",
    "calls {feature}",
    "uses {feature}",
)
IMPACT_CONTRACT_QUERIES = ("{feature} API contract", "{feature} interface", "{feature} schema")
IMPACT_SIMILAR_QUERIES = ("similar to {feature}", "{feature} alternative", "{feature} equivalent")
IMPACT_TEST_QUERIES = ("{feature} test", "testing {feature}", "{feature} test cases")
IMPACT_DEPLOY_QUERIES = ("{service} deployment", "{service} rollout", "{service} migration")


class FeatureImpactInput(BaseModel):
    """Input for FeatureImpactTool."""

    feature: str = Field(..., description="Feature or component being modified")
    change_type: Literal["add", "modify", "remove", "deprecate"] = Field(
        ..., description="Type of change being made"
    )
    service: str | None = Field(default=None, description="Service where the change is being made")
    description: str | None = Field(default=None, description="Description of the change")


class FeatureImpactTool(BaseTool):
    """Impact report for a planned feature change: alerts, insights, affected services."""

    name: str = "Analyze Feature Impact"
    description: str = (
        "Analyze the potential impact of adding, modifying, removing or deprecating a feature "
        "across services, based on indexed documentation."
    )
    args_schema: Type[BaseModel] = FeatureImpactInput

    def __init__(self, store, embedder, threshold: float = 0.7, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder
        self._threshold = threshold

    def _strong_hit(self, templates, **fmt) -> SearchResult | None:
        queries = [t.format(**fmt) for t in templates]
        return _first_strong_hit(self._store, self._embedder, queries, top_k=3, threshold=self._threshold)

    def _run(
        self,
        feature: str,
        change_type: str,
        service: str | None = None,
        description: str | None = None,
    ) -> str:
        alerts: list[str] = []
        insights: list[str] = []
        try:
            queries = [t.format(feature=feature) for t in IMPACT_DEPENDENCY_QUERIES]
            hits = _run_queries(self._store, self._embedder, queries, top_k=5)
            dependencies = filter_by_threshold(dedupe_results(hits), self._threshold)

            if change_type in ("remove", "deprecate") and dependencies:
                verb = "removing" if change_type == "remove" else "deprecating"
                alerts.append(
                    f'**BREAKING CHANGE ALERT**: {len(dependencies)} services may be affected by {verb} "{feature}"'
                )
                for i, dep in enumerate(dependencies[:5], start=1):
                    alerts.append(
                        f"{i}. **{dep.chunk.collection}** ({dep.similarity * 100:.1f}% match)\n"
                        f"   File: {dep.chunk.file_path}\n"
                        f"   {_snippet(dep.chunk.content, 150)}"
                    )

            if change_type == "modify" and dependencies:
                insights.append(
                    f'**IMPACT ANALYSIS**: Modifying "{feature}" may affect {len(dependencies)} dependent services'
                )
                if self._strong_hit(IMPACT_CONTRACT_QUERIES, feature=feature):
                    alerts.append(f'**API CONTRACT FOUND**: Review API contracts before modifying "{feature}"')

            if change_type == "add":
                similar = self._strong_hit(IMPACT_SIMILAR_QUERIES, feature=feature)
                if similar:
                    insights.append(
                        f'**SIMILAR FEATURE FOUND**: Consider reviewing existing implementations before adding "{feature}"\n'
                        f"   Found in: {similar.chunk.collection} - {similar.chunk.file_path}"
                    )

            testing = self._strong_hit(IMPACT_TEST_QUERIES, feature=feature)
            if testing:
                insights.append(
                    f'**TESTING GUIDANCE**: Found testing documentation for "{feature}"\n'
                    f"   Reference: {testing.chunk.collection} - {testing.chunk.file_path}"
                )

            if service:
                deploy = self._strong_hit(IMPACT_DEPLOY_QUERIES, service=service)
                if deploy:
                    insights.append(
                        f'**DEPLOYMENT INFO**: Found deployment guidance for "{service}"\n'
                        f"   Reference: {deploy.chunk.collection} - {deploy.chunk.file_path}"
                    )
        except DocsIndexError as e:
            logger.warning("FeatureImpactTool: search failed: %s", e)
            return f"Error analyzing feature impact: {e}"

        sections: list[str] = []
        if alerts:
            sections.append("## ALERTS\n\n" + "\n\n".join(alerts))
        if insights:
            sections.append("## INSIGHTS\n\n" + "\n\n".join(insights))
        if dependencies:
            lines = ["## AFFECTED SERVICES", ""]
            for i, dep in enumerate(dependencies[:10], start=1):
                lines.append(f"{i}. **{dep.chunk.collection}** ({dep.similarity * 100:.1f}% relevance)")
                lines.append(f"   File: {dep.chunk.file_path}")
                if dep.chunk.metadata.section:
                    lines.append(f"   Section: {dep.chunk.metadata.section}")
                lines.append("")
            sections.append("\n".join(lines))
        if not sections:
            return (
                f'No significant impacts or dependencies found for "{feature}" with change type "{change_type}".\n\n'
                "This appears to be a low-risk change, but consider manual review of related services."
            )
        return "\n\n".join(sections)


RECOMMENDATION_QUERIES = {
    "best-practices": ("{context} best practices", "{context} guidelines", "{context} standards"),
    "patterns": ("{context} patterns", "{context} architecture", "{context} design"),
    "security": ("{context} security", "{context} authentication", "{context} authorization"),
    "performance": ("{context} performance", "{context} optimization", "{context} scaling"),
    "testing": ("{context} testing", "{context} test cases", "{context} validation"),
    None: (
        "{context} best practices",
        "{context} guidelines",
        "{context} patterns",
        "{context} examples",
        "{context} documentation",
    ),
}
RECOMMENDATION_THRESHOLD = 0.6
RECOMMENDATION_SNIPPET_CHARS = 400


class DevRecommendationsInput(BaseModel):
    """Input for DevRecommendationsTool."""

    context: str = Field(..., description="Development context (service name, feature, or technology)")
    type: Literal["best-practices", "patterns", "security", "performance", "testing"] | None = Field(
        default=None, description="Type of recommendations to focus on"
    )


class DevRecommendationsTool(BaseTool):
    """Documented guidelines and practices for a service or feature."""

    name: str = "Get Dev Recommendations"
    description: str = (
        "Get development recommendations (best practices, patterns, security, performance, testing) "
        "for a service, feature or technology from the indexed documentation."
    )
    args_schema: Type[BaseModel] = DevRecommendationsInput

    def __init__(self, store, embedder, threshold: float = RECOMMENDATION_THRESHOLD, max_results: int = 8, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder
        self._threshold = threshold
        self._max_results = max_results

    def _run(self, context: str, type: str | None = None) -> str:
        queries = [t.format(context=context) for t in RECOMMENDATION_QUERIES[type]]
        try:
            hits = _run_queries(self._store, self._embedder, queries, top_k=3)
        except DocsIndexError as e:
            logger.warning("DevRecommendationsTool: search failed: %s", e)
            return f"Error getting recommendations: {e}"

        results = filter_by_threshold(dedupe_results(hits), self._threshold)[: self._max_results]
        if not results:
            return (
                f'No specific recommendations found for "{context}". Consider checking the general '
                "documentation or reaching out to the team for guidance."
            )
        blocks = []
        for i, r in enumerate(results, start=1):
            chunk = r.chunk
            lines = [
                f"### {i}. {chunk.metadata.title or chunk.file_path} ({r.similarity * 100:.1f}% relevance)",
                f"**Repository:** {chunk.collection}",
                f"**File:** {chunk.file_path}",
            ]
            if chunk.metadata.section:
                lines.append(f"**Section:** {chunk.metadata.section}")
            lines += ["", _snippet(chunk.content, RECOMMENDATION_SNIPPET_CHARS), "", "---"]
            blocks.append("\n".join(lines))
        return f'## Development Recommendations for "{context}"\n\n' + "\n\n".join(blocks)


BREAKING_CHANGE_INDICATORS = (
    "remove",
    "delete",
    "deprecate",
    "breaking",
    "incompatible",
    "version",
    "migration",
    "upgrade",
    "contract",
    "interface",
)
CONTRACT_QUERIES = (
    "{service} API contract",
    "{service} interface",
    "{service} dependencies",
    "{service} consumers",
    "{service} clients",
)
ENDPOINT_QUERIES = ("{endpoint} endpoint", "{endpoint} API")


def looks_breaking(change_description: str) -> bool:
    """True when the description mentions a typical breaking-change keyword."""
    text = change_description.lower()
    return any(indicator in text for indicator in BREAKING_CHANGE_INDICATORS)


class BreakingChangesInput(BaseModel):
    """Input for BreakingChangesTool."""

    service: str = Field(..., description="Service being modified")
    change_description: str = Field(..., description="Description of the change being made")
    endpoint: str | None = Field(default=None, description="Specific API endpoint being changed")


class BreakingChangesTool(BaseTool):
    """Flag likely breaking changes and list documented contracts and consumers."""

    name: str = "Check Breaking Changes"
    description: str = (
        "Check for potential breaking changes when modifying APIs or services: flags breaking "
        "keywords in the change description and finds documented API contracts and consumers."
    )
    args_schema: Type[BaseModel] = BreakingChangesInput

    def __init__(self, store, embedder, threshold: float = 0.7, **kwargs):
        super().__init__(**kwargs)
        self._store = store
        self._embedder = embedder
        self._threshold = threshold

    def _run(self, service: str, change_description: str, endpoint: str | None = None) -> str:
        queries = [t.format(service=service) for t in CONTRACT_QUERIES]
        if endpoint:
            queries += [t.format(endpoint=endpoint) for t in ENDPOINT_QUERIES]
        try:
            hits = _run_queries(self._store, self._embedder, queries, top_k=3)
        except DocsIndexError as e:
            logger.warning("BreakingChangesTool: search failed: %s", e)
            return f"Error checking breaking changes: {e}"
        results = filter_by_threshold(dedupe_results(hits), self._threshold)

        lines: list[str] = []
        if looks_breaking(change_description):
            lines += [
                "**POTENTIAL BREAKING CHANGE DETECTED**",
                "",
                "Based on your change description, this may be a breaking change. Please review carefully.",
                "",
            ]
        if results:
            lines += ["## API Contracts & Dependencies Found", ""]
            for i, r in enumerate(results[:5], start=1):
                lines.append(f"{i}. **{r.chunk.collection}** - {r.chunk.file_path}")
                if r.chunk.metadata.section:
                    lines.append(f"   Section: {r.chunk.metadata.section}")
                lines.append(f"   Relevance: {r.similarity * 100:.1f}%")
                lines.append(f"   Content: {_snippet(r.chunk.content, 200)}")
                lines.append("")
            lines += [
                "## Recommended Actions",
                "",
                "1. Review all identified contracts and dependencies",
                "2. Update API documentation if interfaces change",
                "3. Notify dependent service teams",
                "4. Plan migration strategy if needed",
                "5. Consider versioning for backward compatibility",
            ]
        else:
            lines += [
                "## No Critical Dependencies Found",
                "",
                "No major API contracts or dependencies were found in the documentation.",
                "However, consider manual review and team communication for safety.",
            ]
        return "\n".join(lines)


class RateLimitTool(BaseTool):
    """Remaining GitHub API quota."""

    name: str = "Check Rate Limit"
    description: str = "Check GitHub API rate limit status (remaining requests and reset time)."

    def __init__(self, github_client, **kwargs):
        super().__init__(**kwargs)
        self._client = github_client

    def _run(self) -> str:
        try:
            info = get_rate_limit(self._client)
        except Exception as e:
            logger.warning("RateLimitTool: failed: %s", e)
            return f"Error checking rate limit: {e}"
        return (
            "GitHub API Rate Limit Status:\n"
            f"- Remaining requests: {info.remaining}/{info.limit}\n"
            f"- Reset time: {info.reset_time.strftime('%Y-%m-%d %H:%M')} UTC"
        )


def create_docs_tools(store, embedder, github_client, threshold: float | None = None) -> list[BaseTool]:
    """All docs tools wired to the same store/embedder/client. threshold defaults to ALERT_THRESHOLD."""
    if threshold is None:
        threshold = settings.alert_threshold
    return [
        SearchDocsTool(store, embedder),
        IndexRepoDocsTool(store, embedder, github_client),
        RepoStatsTool(store),
        ServiceDependenciesTool(store, embedder, threshold=threshold),
        ListOrgReposTool(github_client),
        FeatureImpactTool(store, embedder, threshold=threshold),
        DevRecommendationsTool(store, embedder),
        BreakingChangesTool(store, embedder, threshold=threshold),
        RateLimitTool(github_client),
    ]
