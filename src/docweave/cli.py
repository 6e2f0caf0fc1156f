"""CLI entry point for docweave."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from docweave.catalog import write_catalog
from docweave.config import load_config
from docweave.errors import ConfigError, DocWeaveError, IngestionFailure
from docweave.models import StructureNode
from docweave.pipeline import IngestionPipeline
from docweave.query import QueryService
from docweave.storage import IndexStore

logger = logging.getLogger(__name__)


def _load_service(index: str) -> QueryService:
    index_path = Path(index)
    if not index_path.exists():
        logger.error(f"Index not found: {index}")
        sys.exit(1)
    return QueryService(IndexStore(index_path).load())


def build(source: str, output: str, config_path: Optional[str] = None, workers: Optional[int] = None) -> None:
    """Build an index file from a folder or zip of raw blobs.

    Args:
        source: Path to folder or zip file
        output: Path for output .weave file
        config_path: Optional YAML config file
        workers: Override the configured worker count
    """
    try:
        config = load_config(config_path)
        if workers is not None:
            config.workers = workers
            config.validate()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    pipeline = IngestionPipeline(config)
    logger.info(f"Building {source} -> {output}")
    try:
        snapshot, report = pipeline.run(source)
    except IngestionFailure as e:
        logger.error(f"Cannot process: {e}")
        logger.error("Supported inputs: folders, .zip files")
        sys.exit(1)

    store = IndexStore(output)
    store.save(snapshot, {"source": str(Path(source).absolute())})

    for failure in report.failures:
        logger.warning(f"  skipped {failure.path}: {failure.reason}")
    for doc_id in report.malformed_documents:
        logger.warning(f"  malformed {doc_id}")
    logger.info("")
    logger.info(
        f"Indexed {report.documents} documents from {report.blobs} files, "
        f"{report.terms} terms, {report.edges} edges -> {output}"
    )


def info(index: str) -> None:
    """Show information about an index file."""
    index_path = Path(index)
    if not index_path.exists():
        logger.error(f"Index not found: {index}")
        sys.exit(1)

    store = IndexStore(index_path)
    counts = store.counts()

    print(f"Index: {index_path.name}")
    print(f"  Size: {index_path.stat().st_size / 1024:.1f} KB")
    print("")
    print("Metadata:")
    for key in ["source", "built_at", "schema_version"]:
        value = store.get_metadata(key)
        if value:
            print(f"  {key}: {value}")
    print("")
    print("Contents:")
    for table, count in counts.items():
        print(f"  {table.capitalize()}: {count}")


def search(index: str, query: str, limit: int = 10) -> None:
    service = _load_service(index)
    hits = service.search(query, limit=limit)
    if not hits:
        print(f"No results found for: {query}")
        return
    for i, hit in enumerate(hits, 1):
        print(f"{i}. [{hit.score:.3f}] {hit.document.title}  ({hit.document.id})")
        print(f"   {hit.snippet}")


def related(index: str, document_id: str) -> None:
    service = _load_service(index)
    items = service.related_to(document_id)
    if not items:
        print(f"No related documents for: {document_id}")
    for item in items:
        print(f"[{item.kind.value} {item.strength:.2f}] {item.document.title}  ({item.document.id})")


def _print_outline(node: StructureNode, depth: int = 0) -> None:
    for child in node.children:
        print(f"{'  ' * depth}- {child.text}")
        _print_outline(child, depth + 1)


def toc(index: str, document_id: str) -> None:
    service = _load_service(index)
    doc = service.get_document(document_id)
    print(doc.title)
    _print_outline(service.table_of_contents(document_id))


def duplicates(index: str) -> None:
    """List sections that appear in more than one place."""
    service = _load_service(index)
    groups = service.duplicate_sections()
    if not groups:
        print("No duplicate sections found")
    for group in groups:
        print(f"{group.heading} ({group.word_count} words, {len(group.locations)} copies)")
        for loc in group.locations:
            print(f"  {loc.document_id} @ {loc.start}-{loc.end}")


def export(index: str, output: str) -> None:
    """Write the content catalog (categories and files) as JSON."""
    service = _load_service(index)
    catalog = write_catalog(service.snapshot, output)
    logger.info(f"Wrote {output} ({len(catalog['categories'])} categories, {len(catalog['files'])} top-level files)")


def serve(index: str, transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve an index over MCP (stdio/sse) or HTTP.

    Args:
        index: Path to .weave file
        transport: stdio, sse or http
        host: Bind address for http
        port: Port for http
    """
    service = _load_service(index)
    logger.info(f"Serving {index} via {transport}")

    # Import here to avoid loading server stacks unless needed
    if transport == "http":
        import uvicorn

        from docweave.server.http_api import create_app

        uvicorn.run(create_app(service), host=host, port=port)
        return

    from typing import Literal, cast

    from docweave.server.mcp_server import create_mcp_server

    mcp = create_mcp_server(service)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], transport))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docweave",
        description="docweave - segment, index and cross-reference markdown corpora",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # build command
    build_parser = subparsers.add_parser("build", help="Build an index from a folder or zip")
    build_parser.add_argument("source", help="Input folder or zip file path")
    build_parser.add_argument(
        "-o",
        "--output",
        default="index.weave",
        help="Output index path (default: index.weave)",
    )
    build_parser.add_argument("-c", "--config", help="YAML configuration file")
    build_parser.add_argument("-w", "--workers", type=int, help="Number of parallel workers")

    info_parser = subparsers.add_parser("info", help="Show information about an index")
    info_parser.add_argument("index", help="Path to .weave file")

    search_parser = subparsers.add_parser("search", help="Full-text search")
    search_parser.add_argument("index", help="Path to .weave file")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-n", "--limit", type=int, default=10, help="Maximum results")

    related_parser = subparsers.add_parser("related", help="List related documents")
    related_parser.add_argument("index", help="Path to .weave file")
    related_parser.add_argument("document_id", help="Document ID (path#ordinal)")

    toc_parser = subparsers.add_parser("toc", help="Print a document's table of contents")
    toc_parser.add_argument("index", help="Path to .weave file")
    toc_parser.add_argument("document_id", help="Document ID (path#ordinal)")

    dup_parser = subparsers.add_parser("duplicates", help="List repeated sections")
    dup_parser.add_argument("index", help="Path to .weave file")

    export_parser = subparsers.add_parser("export", help="Export the content catalog as JSON")
    export_parser.add_argument("index", help="Path to .weave file")
    export_parser.add_argument(
        "-o", "--output", default="index.json", help="Output JSON path (default: index.json)"
    )

    serve_parser = subparsers.add_parser("serve", help="Serve an index over MCP or HTTP")
    serve_parser.add_argument("index", help="Path to .weave file")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="HTTP bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="HTTP port")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        if args.command == "build":
            build(args.source, args.output, args.config, args.workers)
        elif args.command == "info":
            info(args.index)
        elif args.command == "search":
            search(args.index, args.query, args.limit)
        elif args.command == "related":
            related(args.index, args.document_id)
        elif args.command == "toc":
            toc(args.index, args.document_id)
        elif args.command == "duplicates":
            duplicates(args.index)
        elif args.command == "export":
            export(args.index, args.output)
        elif args.command == "serve":
            serve(args.index, args.transport, args.host, args.port)
    except DocWeaveError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
