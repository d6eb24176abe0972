"""Chunk markdown docs by heading/section for RAG indexing."""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Iterator

from github_docs.rag.markdown_tokens import (
    BlockQuote,
    CodeBlock,
    Heading,
    ListItem,
    Paragraph,
    Token,
    tokenize_markdown,
)

# Soft cap per chunk (characters). Bounds embedding input and keeps chunks focused.
MAX_CHUNK_CHARS = 1500

_SEPARATORS = re.compile(r"[-_]")


@dataclass
class Chunk:
    """A docs chunk with its heading context."""

    content: str
    title: str | None = None
    section: str | None = None


def title_from_path(file_path: str) -> str:
    """docs/getting-started_guide.md -> 'getting started guide'."""
    name = PurePosixPath(file_path.replace("\\", "/")).name
    return _SEPARATORS.sub(" ", PurePosixPath(name).stem)


def _split_oversized(text: str, limit: int) -> Iterator[str]:
    """Yield pieces of text no longer than limit, breaking on whitespace when possible."""
    while len(text) > limit:
        window = text[:limit]
        cut = max(window.rfind(" "), window.rfind("\n"))
        if cut <= limit // 2:
            cut = limit
        yield text[:cut]
        text = text[cut:]
    if text:
        yield text


class _Accumulator:
    """Running title/section/content while walking the token stream."""

    def __init__(self, title: str):
        self.title = title
        self.section = ""
        self.content = ""
        self.chunks: list[Chunk] = []

    def flush(self) -> None:
        text = self.content.strip()
        if text:
            self.chunks.append(
                Chunk(content=text, title=self.title or None, section=self.section or None)
            )
        self.content = ""

    def append(self, text: str) -> None:
        # Size guard: flush first, then start the new chunk with the pending text
        for piece in _split_oversized(text, MAX_CHUNK_CHARS):
            if len(self.content) + len(piece) > MAX_CHUNK_CHARS:
                self.flush()
                self.content = piece
            else:
                self.content += piece

    def on_heading(self, heading: Heading, default_title: str) -> None:
        self.flush()
        if heading.level == 1:
            self.title = heading.text or default_title
            self.section = ""
        else:
            # h2..h6 are all treated as the section label (no nesting)
            self.section = heading.text
        self.append(f"# {heading.text}\n\n")


def chunk_tokens(tokens: Iterable[Token], file_path: str) -> list[Chunk]:
    """Group a token stream into chunks. Pure; the size guard applies per element."""
    default_title = title_from_path(file_path)
    acc = _Accumulator(default_title)
    for token in tokens:
        if isinstance(token, Heading):
            acc.on_heading(token, default_title)
        elif isinstance(token, (Paragraph, ListItem, BlockQuote)):
            acc.append(f"{token.text}\n\n")
        elif isinstance(token, CodeBlock):
            acc.append(f"```\n{token.text}\n```\n\n")
    acc.flush()
    return acc.chunks


def chunk_markdown(content: str, file_path: str) -> list[Chunk]:
    """Split a markdown document into chunks of at most MAX_CHUNK_CHARS.

    Falls back to a single chunk with the start of the document when the markdown
    has no usable blocks. Blank input returns [].
    """
    chunks = chunk_tokens(tokenize_markdown(content), file_path)
    if chunks:
        return chunks
    text = content.strip()[:MAX_CHUNK_CHARS]
    if not text:
        return []
    return [Chunk(content=text, title=title_from_path(file_path) or None, section=None)]
