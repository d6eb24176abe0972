"""Tests for the markdown chunker (no sentence-transformers required)."""

from github_docs.rag.chunker import MAX_CHUNK_CHARS, chunk_markdown, chunk_tokens, title_from_path
from github_docs.rag.markdown_tokens import (
    BlockQuote,
    CodeBlock,
    Heading,
    ListItem,
    Paragraph,
    tokenize_markdown,
)


def test_single_heading_and_paragraph():
    """One h1 + one paragraph -> one chunk titled by the heading."""
    chunks = chunk_markdown("# Setup\n\nRun the installer.\n", "docs/install.md")
    assert len(chunks) == 1
    assert chunks[0].title == "Setup"
    assert chunks[0].section is None
    assert "Run the installer." in chunks[0].content
    assert chunks[0].content == "# Setup\n\nRun the installer."


def test_title_defaults_to_file_name():
    """Without an h1 the normalized file name is the title."""
    chunks = chunk_markdown("Just some text.", "docs/getting-started_guide.md")
    assert len(chunks) == 1
    assert chunks[0].title == "getting started guide"


def test_title_from_path():
    assert title_from_path("README.md") == "README"
    assert title_from_path("docs/api_reference-v2.md") == "api reference v2"
    assert title_from_path("docs\\windows-path.md") == "windows path"


def test_sections_follow_headings():
    """h2/h3 set the section; a new h1 resets it."""
    content = (
        "# Guide\n\nIntro.\n\n"
        "## Install\n\nStep one.\n\n"
        "### Details\n\nMore.\n\n"
        "# Other\n\nEnd.\n"
    )
    chunks = chunk_markdown(content, "guide.md")
    assert [(c.title, c.section) for c in chunks] == [
        ("Guide", None),
        ("Guide", "Install"),
        ("Guide", "Details"),
        ("Other", None),
    ]
    assert chunks[1].content == "# Install\n\nStep one."
    assert chunks[2].content == "# Details\n\nMore."


def test_size_guard_starts_new_chunk():
    """Paragraphs that would overflow 1500 chars go into the next chunk."""
    paragraph = ("word " * 80).strip()
    content = "\n\n".join([paragraph] * 5)
    chunks = chunk_markdown(content, "long.md")
    assert len(chunks) == 2
    assert chunks[0].content.count("word") == 240
    assert chunks[1].content.count("word") == 160
    assert all(len(c.content) <= MAX_CHUNK_CHARS for c in chunks)


def test_size_guard_keeps_section_at_flush_time():
    """Overflow chunks carry the title/section active when flushed."""
    paragraph = ("alpha " * 100).strip()
    content = "# Doc\n\n## Part\n\n" + "\n\n".join([paragraph] * 4)
    chunks = chunk_markdown(content, "doc.md")
    assert len(chunks) > 2
    assert all(c.title == "Doc" for c in chunks)
    assert all(c.section == "Part" for c in chunks[1:])


def test_oversized_paragraph_is_split():
    """A single paragraph longer than the cap is split, never emitted whole."""
    content = "lorem " * 1000
    chunks = chunk_markdown(content, "big.md")
    assert len(chunks) >= 4
    assert all(0 < len(c.content) <= MAX_CHUNK_CHARS for c in chunks)
    assert sum(c.content.count("lorem") for c in chunks) == 1000


def test_chunks_never_empty():
    content = "# A\n\n# B\n\n   \n\n## C\n\ntext\n"
    chunks = chunk_markdown(content, "x.md")
    assert chunks
    assert all(c.content.strip() for c in chunks)


def test_code_block_is_fenced():
    chunks = chunk_markdown("```python\nprint('hi')\n```\n", "code.md")
    assert len(chunks) == 1
    assert chunks[0].content == "```\nprint('hi')\n```"


def test_list_items_each_added_once():
    chunks = chunk_markdown("- one\n- two\n", "list.md")
    assert len(chunks) == 1
    assert chunks[0].content == "one\n\ntwo"


def test_fallback_when_no_blocks():
    """Raw HTML only: one chunk with the start of the document."""
    content = "<div>\nhello\n</div>\n"
    chunks = chunk_markdown(content, "docs/raw-page.md")
    assert len(chunks) == 1
    assert chunks[0].content == "<div>\nhello\n</div>"
    assert chunks[0].title == "raw page"
    assert chunks[0].section is None


def test_fallback_capped():
    content = "<div>\n" + "x" * 3000 + "\n</div>\n"
    chunks = chunk_markdown(content, "raw.md")
    assert len(chunks) == 1
    assert len(chunks[0].content) == MAX_CHUNK_CHARS


def test_blank_input_has_no_chunks():
    assert chunk_markdown("", "empty.md") == []
    assert chunk_markdown("  \n\n ", "empty.md") == []


def test_deterministic():
    content = "# T\n\n## S\n\nbody\n\n> quote\n"
    assert chunk_markdown(content, "t.md") == chunk_markdown(content, "t.md")


def test_tokenize_markdown_types():
    """Block quotes and list items become one token each (inner paragraph not repeated)."""
    tokens = tokenize_markdown(
        "# Title\n\nPara.\n\n    indented code\n\n> quoted text\n\n1. first\n2. second\n"
    )
    assert tokens == [
        Heading(level=1, text="Title"),
        Paragraph(text="Para."),
        CodeBlock(text="indented code"),
        BlockQuote(text="quoted text"),
        ListItem(text="first"),
        ListItem(text="second"),
    ]


def test_chunk_tokens_without_parser():
    """The state machine works on a hand-built token stream."""
    tokens = [
        Paragraph(text="preface"),
        Heading(level=2, text="Usage"),
        ListItem(text="run it"),
        CodeBlock(text="make"),
    ]
    chunks = chunk_tokens(tokens, "tool_notes.md")
    assert [(c.title, c.section) for c in chunks] == [
        ("tool notes", None),
        ("tool notes", "Usage"),
    ]
    assert chunks[1].content == "# Usage\n\nrun it\n\n```\nmake\n```"
