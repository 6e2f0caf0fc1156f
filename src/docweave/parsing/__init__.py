"""Structural parsers for segmented documents."""

from docweave.parsing.markdown_parser import (
    MarkdownParser,
    ParseResult,
    fallback_title,
    strip_inline_markup,
)

__all__ = ["MarkdownParser", "ParseResult", "fallback_title", "strip_inline_markup"]
