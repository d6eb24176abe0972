"""Typed block-level token stream for markdown, built on markdown-it-py.

The chunker only sees these tokens, never markdown-it's raw stream.
"""

from dataclasses import dataclass

from markdown_it import MarkdownIt
from markdown_it.token import Token as RawToken


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class ListItem:
    text: str


@dataclass(frozen=True)
class BlockQuote:
    text: str


@dataclass(frozen=True)
class CodeBlock:
    text: str


Token = Heading | Paragraph | ListItem | BlockQuote | CodeBlock

# Containers whose inline text is collected into a single token
_TEXT_BLOCKS = {
    "paragraph_open": Paragraph,
    "list_item_open": ListItem,
    "blockquote_open": BlockQuote,
}

_parser = MarkdownIt("commonmark")


def _matching_close(raw: list[RawToken], start: int) -> int:
    """Index of the token closing raw[start] (same nesting depth)."""
    depth = 0
    for j in range(start, len(raw)):
        depth += raw[j].nesting
        if depth == 0:
            return j
    return len(raw) - 1


def _inline_text(raw: list[RawToken]) -> str:
    parts = [t.content.strip() for t in raw if t.type == "inline"]
    return " ".join(p for p in parts if p)


def tokenize_markdown(content: str) -> list[Token]:
    """Parse markdown into headings, paragraphs, list items, quotes and code blocks.

    A list item or block quote becomes one token holding all inline text between
    its open and close markers, nested blocks included. Rules, tables-as-html and
    raw HTML blocks are dropped.
    """
    raw = _parser.parse(content)
    tokens: list[Token] = []
    i = 0
    while i < len(raw):
        tok = raw[i]
        if tok.type == "heading_open":
            end = _matching_close(raw, i)
            tokens.append(Heading(level=int(tok.tag[1:]), text=_inline_text(raw[i + 1 : end])))
            i = end + 1
            continue
        block_type = _TEXT_BLOCKS.get(tok.type)
        if block_type is not None:
            end = _matching_close(raw, i)
            text = _inline_text(raw[i + 1 : end])
            if text:
                tokens.append(block_type(text=text))
            i = end + 1
            continue
        if tok.type in ("fence", "code_block"):
            code = tok.content.rstrip("\n")
            if code.strip():
                tokens.append(CodeBlock(text=code))
        i += 1
    return tokens
