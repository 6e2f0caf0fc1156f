"""Line-oriented markdown parser producing a structure tree and metadata."""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from docweave.config import IndexConfig
from docweave.errors import MalformedDocument
from docweave.models import DocumentMetadata, NodeKind, StructureNode

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_CLOSING_HASHES_RE = re.compile(r"(?:^|[ \t]+)#+$")
_FENCE_OPEN_RE = re.compile(r"^ {0,3}(`{3,})[ \t]*([^`\s]*)[^`]*$")
_FENCE_CLOSE_RE = re.compile(r"^ {0,3}(`{3,})[ \t]*$")
_QUOTE_RE = re.compile(r"^ {0,3}> ?(.*)$")
_LIST_RE = re.compile(r"^[ \t]*(?:[-*+]|\d+[.)])[ \t]+(.*)$")
_RULE_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")

_CALLOUT_RES = (
    re.compile(r"^\[!(\w+)\]"),
    re.compile(r"^(\*\*|__)\s*([^*_]+?)\s*:?\s*\1"),
    re.compile(r"^([*_])\s*([^*_]+?)\s*:?\s*\1"),
)

_INLINE_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
# Paired markers only; a lone "*" or an intra-word "_" is literal text.
_INLINE_MARKUP_RES = (
    re.compile(r"`([^`\n]+)`"),
    re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1"),
    re.compile(r"\*(?=[^\s*])(.+?)(?<=[^\s*])\*"),
    re.compile(r"(?<!\w)_(?=[^\s_])(.+?)(?<=[^\s_])_(?!\w)"),
    re.compile(r"~~(?=\S)(.+?)(?<=\S)~~"),
)


@dataclass(frozen=True)
class _Line:
    text: str
    start: int
    end: int


@dataclass
class ParseResult:
    tree: StructureNode
    metadata: DocumentMetadata


def _iter_lines(text: str) -> Iterator[_Line]:
    """Yield lines without their terminators, with offsets into ``text``."""
    offset = 0
    for raw in text.splitlines(keepends=True):
        content = raw.rstrip("\r\n")
        yield _Line(content, offset, offset + len(content))
        offset += len(raw)


def _callout_label(first_line: str) -> Optional[str]:
    stripped = first_line.strip()
    for pattern in _CALLOUT_RES:
        match = pattern.match(stripped)
        if match:
            label = match.group(match.lastindex).strip().rstrip(":").lower()
            return label or None
    return None


def strip_inline_markup(text: str) -> str:
    """Remove links, emphasis and code markers, keeping the visible text."""
    text = _INLINE_LINK_RE.sub(r"\1", text)
    for pattern in _INLINE_MARKUP_RES:
        text = pattern.sub(lambda m: m.group(m.lastindex), text)
    return text


def _truncate_preview(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_period = truncated.rfind(".")
    if last_period > max_length * 0.7:
        return truncated[: last_period + 1]
    return truncated.rstrip() + "..."


def fallback_title(text: str, max_length: int = 80) -> str:
    """First non-empty line, without leading heading/quote markers, truncated."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            cleaned = stripped.lstrip("#>").strip() or stripped
            return cleaned[:max_length]
    return ""


class _TreeBuilder:
    """Stack-based heading nesting.

    A level-N heading closes every open heading of level >= N, then becomes
    the parent of everything that follows until it is closed in turn.
    """

    def __init__(self, root: StructureNode):
        self.root = root
        self._stack = [root]

    def add_heading(self, node: StructureNode) -> None:
        while len(self._stack) > 1 and self._stack[-1].level >= node.level:
            self._stack.pop()
        self._stack[-1].children.append(node)
        self._stack.append(node)

    def add_content(self, node: StructureNode) -> None:
        self._stack[-1].children.append(node)


class MarkdownParser:
    """Single-pass parser for ATX headings, fences, blockquotes, lists and paragraphs."""

    def __init__(
        self,
        title_max_length: int = 80,
        description_max_length: int = 160,
        words_per_minute: int = 250,
        strict: bool = False,
    ):
        self.title_max_length = title_max_length
        self.description_max_length = description_max_length
        self.words_per_minute = words_per_minute
        self.strict = strict

    @classmethod
    def from_config(cls, config: IndexConfig, strict: bool = False) -> "MarkdownParser":
        return cls(
            title_max_length=config.title_max_length,
            description_max_length=config.description_max_length,
            words_per_minute=config.words_per_minute,
            strict=strict,
        )

    def parse(self, text: str) -> ParseResult:
        """Parse a document's markdown.

        Args:
            text: Raw document text

        Returns:
            ParseResult with the structure tree and the metadata record

        Raises:
            MalformedDocument: Only in strict mode, for an unclosed code fence
        """
        root = StructureNode(kind=NodeKind.ROOT, start=0, end=len(text))
        builder = _TreeBuilder(root)
        issues: list[str] = []

        block: Optional[StructureNode] = None
        block_lines: list[str] = []
        fence: Optional[str] = None

        def flush() -> None:
            nonlocal block, block_lines
            if block is not None:
                block.text = "\n".join(block_lines)
                if block.kind is NodeKind.BLOCKQUOTE:
                    block.callout = _callout_label(block_lines[0]) if block_lines else None
                builder.add_content(block)
            block = None
            block_lines = []

        for line in _iter_lines(text):
            content = line.text

            if fence is not None:
                close = _FENCE_CLOSE_RE.match(content)
                if close and len(close.group(1)) >= len(fence):
                    block.end = line.end
                    flush()
                    fence = None
                else:
                    block_lines.append(content)
                    block.end = line.end
                continue

            if not content.strip():
                flush()
                continue

            opening = _FENCE_OPEN_RE.match(content)
            if opening:
                flush()
                fence = opening.group(1)
                block = StructureNode(
                    kind=NodeKind.CODE,
                    start=line.start,
                    end=line.end,
                    language=opening.group(2).lower(),
                )
                continue

            heading = _HEADING_RE.match(content)
            if heading:
                heading_text = _CLOSING_HASHES_RE.sub("", heading.group(2) or "").strip()
                if heading_text:
                    flush()
                    builder.add_heading(
                        StructureNode(
                            kind=NodeKind.HEADING,
                            text=heading_text,
                            start=line.start,
                            end=line.end,
                            level=len(heading.group(1)),
                        )
                    )
                    continue

            if _RULE_RE.match(content):
                flush()
                continue

            quote = _QUOTE_RE.match(content)
            if quote:
                if block is None or block.kind is not NodeKind.BLOCKQUOTE:
                    flush()
                    block = StructureNode(kind=NodeKind.BLOCKQUOTE, start=line.start)
                block_lines.append(quote.group(1))
                block.end = line.end
                continue

            item = _LIST_RE.match(content)
            if item:
                flush()
                block = StructureNode(kind=NodeKind.LIST_ITEM, start=line.start, end=line.end)
                block_lines.append(item.group(1).strip())
                continue

            # Indented continuation of a list item.
            if block is not None and block.kind is NodeKind.LIST_ITEM and content[:1] in (" ", "\t"):
                block_lines.append(content.strip())
                block.end = line.end
                continue

            if block is None or block.kind is not NodeKind.PARAGRAPH:
                flush()
                block = StructureNode(kind=NodeKind.PARAGRAPH, start=line.start)
            block_lines.append(content.strip())
            block.end = line.end

        if fence is not None:
            message = f"unclosed code fence opened at offset {block.start}"
            if self.strict:
                raise MalformedDocument(message, offset=block.start)
            logger.debug("Closing fence implicitly at EOF: %s", message)
            issues.append(message)
        flush()

        return ParseResult(tree=root, metadata=self._metadata(text, root, issues))

    def _metadata(self, text: str, root: StructureNode, issues: list[str]) -> DocumentMetadata:
        outline = []
        languages = set()
        callouts = []
        word_count = 0
        description = ""
        title = None

        for node in root.walk():
            if node.kind is NodeKind.ROOT:
                continue
            if node.kind is NodeKind.CODE:
                if node.language:
                    languages.add(node.language)
                continue
            word_count += len(strip_inline_markup(node.text).split())
            if node.kind is NodeKind.HEADING:
                outline.append((node.level, node.text, node.anchor))
                if title is None and node.level == 1:
                    title = node.text
            elif node.kind is NodeKind.BLOCKQUOTE and node.callout:
                callouts.append(node.callout)
            elif node.kind is NodeKind.PARAGRAPH and not description:
                collapsed = " ".join(strip_inline_markup(node.text).split())
                description = _truncate_preview(collapsed, self.description_max_length)

        if title is None:
            title = fallback_title(text, self.title_max_length)

        return DocumentMetadata(
            title=title,
            word_count=word_count,
            code_languages=tuple(sorted(languages)),
            outline=tuple(outline),
            malformed=bool(issues),
            issues=tuple(issues),
            description=description,
            reading_minutes=max(1, round(word_count / self.words_per_minute)),
            callouts=tuple(callouts),
        )
