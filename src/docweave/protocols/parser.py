"""Protocol for structural document parsers."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from docweave.parsing import ParseResult


@runtime_checkable
class DocumentParser(Protocol):
    """Turns a document's raw text into a structure tree and metadata.

    Markdown is the only format shipped; other formats can plug in here.
    """

    def parse(self, text: str) -> "ParseResult":
        """Parse text into a ParseResult."""
        ...
