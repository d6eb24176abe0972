"""Tests for indexing orchestration and the GitHub docs helpers (fake PyGithub objects)."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from github import UnknownObjectException

from github_docs.rag.errors import IndexingError, StoreError
from github_docs.rag.indexer import index_documents, index_organization, index_repository
from github_docs.rag.store import VectorStore
from github_docs.tools.github_helpers import DocumentFile, get_documentation_files, list_org_repos

from conftest import FakeEmbedder

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


class FakeRepo:
    """Just enough of github.Repository for the docs helpers."""

    def __init__(self, full_name, files, modified=T0, private=False):
        self.full_name = full_name
        self.name = full_name.split("/")[1]
        self.description = None
        self.default_branch = "main"
        self.updated_at = modified
        self.private = private
        self._files = files
        self._modified = modified

    def get_contents(self, path):
        if path != "docs":
            raise UnknownObjectException(404, {"message": "Not Found"}, {})
        entries = [
            SimpleNamespace(
                type="file",
                name=p.split("/")[-1],
                path=p,
                sha=f"sha-{p}",
                decoded_content=text.encode("utf-8"),
            )
            for p, text in self._files.items()
        ]
        entries.append(SimpleNamespace(type="dir", name="img", path="docs/img"))
        return entries

    def get_commits(self, path=None):
        committer = SimpleNamespace(date=self._modified)
        return [SimpleNamespace(sha="head", commit=SimpleNamespace(committer=committer))]


class FakeClient:
    def __init__(self, repos):
        self._repos = {r.full_name: r for r in repos}

    def get_organization(self, org):
        repos = [r for name, r in self._repos.items() if name.startswith(f"{org}/")]
        return SimpleNamespace(get_repos=lambda type, sort: repos)

    def get_repo(self, full_name):
        if full_name.endswith("/broken"):
            raise RuntimeError("boom")
        return self._repos[full_name]


class FlakyEmbedder(FakeEmbedder):
    def embed_documents(self, texts):
        if any("explode" in t for t in texts):
            raise RuntimeError("embedding API unavailable")
        return super().embed_documents(texts)


class BrokenStore(VectorStore):
    def replace_file(self, collection, file_path, chunks):
        raise StoreError("disk full", {"operation": "upsert"})


def _docs(modified=T0):
    return [
        DocumentFile("docs/setup.md", "# Setup\n\nRun the installer.\n", "sha1", modified),
        DocumentFile("docs/api.md", "# API\n\n## Auth\n\nUse a token.\n", "sha2", modified - timedelta(days=1)),
    ]


def test_index_documents_stores_chunks(store, embedder):
    report = index_documents(store, embedder, "org/repo", _docs())
    assert not report.skipped
    assert (report.files_total, report.files_indexed, report.chunks_indexed) == (2, 2, 3)
    chunks = store.list_by_collection("org/repo")
    assert len(chunks) == 3
    auth = next(c for c in chunks if c.metadata.section == "Auth")
    assert auth.metadata.title == "API"
    assert auth.metadata.commit_hash == "sha2"
    assert store.get_collection_stats("org/repo").most_recent_last_updated == T0


def test_unchanged_docs_are_skipped(store, embedder):
    index_documents(store, embedder, "org/repo", _docs())
    calls = embedder.document_calls
    report = index_documents(store, embedder, "org/repo", _docs())
    assert report.skipped and report.reason == "up to date"
    assert embedder.document_calls == calls


def test_newer_docs_replace_old_chunks(store, embedder):
    index_documents(store, embedder, "org/repo", _docs())
    updated = [DocumentFile("docs/setup.md", "# Setup\n\nUse the new installer.\n", "sha3", T0 + timedelta(days=1))]
    report = index_documents(store, embedder, "org/repo", updated)
    assert not report.skipped
    contents = [c.content for c in store.list_by_collection("org/repo")]
    assert contents == ["# Setup\n\nUse the new installer."]


def test_force_reindexes_unchanged_docs(store, embedder):
    index_documents(store, embedder, "org/repo", _docs())
    report = index_documents(store, embedder, "org/repo", _docs(), force=True)
    assert not report.skipped
    assert store.count("org/repo") == 3


def test_no_documents(store, embedder):
    report = index_documents(store, embedder, "org/repo", [])
    assert report.skipped and report.reason == "no documents"
    assert store.count() == 0


def test_embedding_failure_skips_file(store):
    docs = _docs() + [DocumentFile("docs/bad.md", "this will explode", "sha4", T0)]
    report = index_documents(store, FlakyEmbedder(), "org/repo", docs)
    assert report.failed_files == ["docs/bad.md"]
    assert report.files_indexed == 2
    assert store.count("org/repo") == 3


def test_failed_file_is_retried_on_next_pass(store, embedder):
    """An older file that failed to embed is indexed next pass, though the collection looks up to date."""
    docs = [
        DocumentFile("docs/setup.md", "# Setup\n\nRun the installer.\n", "sha1", T0),
        DocumentFile("docs/old.md", "this will explode", "sha-old", T0 - timedelta(days=3)),
    ]
    first = index_documents(store, FlakyEmbedder(), "org/repo", docs)
    assert first.failed_files == ["docs/old.md"]

    second = index_documents(store, embedder, "org/repo", docs)
    assert not second.skipped
    assert second.files_indexed == 1
    assert embedder.document_calls == 1
    paths = {c.file_path for c in store.list_by_collection("org/repo")}
    assert paths == {"docs/setup.md", "docs/old.md"}

    third = index_documents(store, embedder, "org/repo", docs)
    assert third.skipped and third.reason == "up to date"


def test_embedding_outage_keeps_previous_chunks(store, embedder):
    """A re-index whose embedding calls all fail leaves the old chunks searchable."""
    index_documents(store, embedder, "org/repo", _docs())
    newer = [
        DocumentFile("docs/setup.md", "explode the installer", "sha5", T0 + timedelta(days=1)),
        DocumentFile("docs/api.md", "# API\n\n## Auth\n\nUse a token.\n", "sha2", T0 - timedelta(days=1)),
    ]
    report = index_documents(store, FlakyEmbedder(), "org/repo", newer)
    assert report.failed_files == ["docs/setup.md"]
    assert store.count("org/repo") == 3
    setup = [c.content for c in store.list_by_collection("org/repo") if c.file_path == "docs/setup.md"]
    assert setup == ["# Setup\n\nRun the installer."]

    retry = index_documents(store, embedder, "org/repo", newer)
    assert not retry.skipped and retry.failed_files == []
    setup = [c.content for c in store.list_by_collection("org/repo") if c.file_path == "docs/setup.md"]
    assert setup == ["explode the installer"]


def test_blank_file_does_not_block_up_to_date(store, embedder):
    docs = _docs() + [DocumentFile("docs/empty.md", "  \n", "sha-empty", T0)]
    index_documents(store, embedder, "org/repo", docs)
    assert index_documents(store, embedder, "org/repo", docs).reason == "up to date"


def test_store_failure_aborts_with_context(embedder):
    with BrokenStore() as broken:
        with pytest.raises(IndexingError) as exc_info:
            index_documents(broken, embedder, "org/repo", _docs())
    assert exc_info.value.details["collection"] == "org/repo"
    assert exc_info.value.details["file_path"] == "docs/setup.md"
    assert "org/repo" in str(exc_info.value)


def test_get_documentation_files_reads_markdown_only():
    repo = FakeRepo("org/repo", {"docs/guide.md": "# Guide", "docs/notes.txt": "plain"})
    files = get_documentation_files(repo, "docs")
    assert [f.path for f in files] == ["docs/guide.md"]
    assert files[0].content == "# Guide"
    assert files[0].last_modified == T0


def test_get_documentation_files_missing_folder():
    repo = FakeRepo("org/repo", {"docs/guide.md": "# Guide"})
    assert get_documentation_files(repo, "handbook") == []


def test_index_repository_uses_full_name(store, embedder):
    repo = FakeRepo("org/service", {"docs/setup.md": "# Setup\n\nRun the installer.\n"})
    report = index_repository(store, embedder, repo, "docs")
    assert report.collection == "org/service"
    [chunk] = store.list_by_collection("org/service")
    assert chunk.metadata.title == "Setup"
    assert chunk.metadata.commit_hash == "sha-docs/setup.md"


def test_index_organization_continues_after_repo_error(store, embedder):
    client = FakeClient(
        [
            FakeRepo("org/one", {"docs/a.md": "# A\n\nalpha"}),
            FakeRepo("org/broken", {"docs/b.md": "# B\n\nbeta"}),
            FakeRepo("org/two", {"docs/c.md": "# C\n\ngamma"}, private=True),
            FakeRepo("other/three", {"docs/d.md": "# D\n\ndelta"}),
        ]
    )
    reports = index_organization(store, embedder, client, "org")
    assert sorted(r.collection for r in reports) == ["org/one", "org/two"]
    assert [s.collection for s in store.stats()] == ["org/one", "org/two"]


def test_list_org_repos_hides_private_by_default():
    client = FakeClient([FakeRepo("org/pub", {}), FakeRepo("org/priv", {}, private=True)])
    assert [r.full_name for r in list_org_repos(client, "org")] == ["org/pub"]
    assert len(list_org_repos(client, "org", include_private=True)) == 2
