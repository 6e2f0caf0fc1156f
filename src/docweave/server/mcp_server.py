"""FastMCP server exposing the query service as tools."""

from mcp.server.fastmcp import FastMCP

from docweave.errors import InvalidQuery, NotFound
from docweave.models import StructureNode
from docweave.query import QueryService


def _format_outline(node: StructureNode, depth: int = 0) -> list[str]:
    lines = []
    for child in node.children:
        lines.append(f"{'  ' * depth}- {child.text}  (#{child.anchor})")
        lines.extend(_format_outline(child, depth + 1))
    return lines


def create_mcp_server(service: QueryService) -> FastMCP:
    """Create an MCP server answering queries against one index.

    Args:
        service: Query service over the index to serve

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="docweave",
    )

    @mcp.tool()
    def search(query: str, limit: int = 10) -> str:
        """Full-text search across the indexed documents.

        Args:
            query: Search terms; wrap words in double quotes to require an exact phrase
            limit: Maximum number of results to return (default: 10)

        Returns:
            Ranked list of documents with scores and snippets
        """
        try:
            hits = service.search(query, limit=limit)
        except InvalidQuery as e:
            return f"Error: {e}"

        if not hits:
            return f"No results found for: {query}"

        lines = []
        for i, hit in enumerate(hits, 1):
            lines.append(f"{i}. [{hit.score:.3f}] {hit.document.title}  ({hit.document.id})")
            lines.append(f"   {hit.snippet}")
            lines.append("")
        return "\n".join(lines)

    @mcp.tool()
    def related(document_id: str) -> str:
        """List documents related to a document.

        Siblings (documents split from the same file) come first, then
        topically similar documents by descending strength.

        Args:
            document_id: Document ID as shown in search results
        """
        try:
            items = service.related_to(document_id)
        except NotFound as e:
            return f"Error: {e}"

        if not items:
            return f"No related documents for: {document_id}"

        return "\n".join(
            f"[{item.kind.value} {item.strength:.2f}] {item.document.title}  ({item.document.id})"
            for item in items
        )

    @mcp.tool()
    def toc(document_id: str) -> str:
        """Show a document's table of contents (its heading outline).

        Args:
            document_id: Document ID as shown in search results
        """
        try:
            outline = service.table_of_contents(document_id)
        except NotFound as e:
            return f"Error: {e}"

        lines = _format_outline(outline)
        return "\n".join(lines) if lines else f"No headings in: {document_id}"

    @mcp.tool()
    def read(document_id: str) -> str:
        """Read a document's full markdown text.

        Args:
            document_id: Document ID as shown in search results
        """
        try:
            doc = service.get_document(document_id)
        except NotFound as e:
            return f"Error: {e}"
        return doc.text

    return mcp
