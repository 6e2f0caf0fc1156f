"""FastAPI application exposing the query service as a JSON API."""

import logging
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from docweave import __version__
from docweave.errors import InvalidQuery, NotFound
from docweave.query import QueryService, summarize
from docweave.server.schemas import (
    DocumentDetail,
    DocumentSummaryModel,
    ErrorResponse,
    OutlineNode,
    RelatedResult,
    SearchResponse,
    SearchResult,
)

logger = logging.getLogger(__name__)

_NOT_FOUND = {404: {"model": ErrorResponse}}
_INVALID_QUERY = {400: {"model": ErrorResponse}}


def create_app(service: QueryService) -> FastAPI:
    """Create and configure the FastAPI application.

    Document IDs contain ``/`` and ``#``; clients must percent-encode the
    ``#`` (``%23``).

    Args:
        service: Query service over the index to serve

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="docweave",
        description="Full-text search and cross-references over a segmented markdown corpus",
        version=__version__,
    )
    app.state.service = service

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(
            status_code=404, content=ErrorResponse(error="NotFound", detail=str(exc)).model_dump()
        )

    @app.exception_handler(InvalidQuery)
    async def invalid_query_handler(request: Request, exc: InvalidQuery):
        return JSONResponse(
            status_code=400, content=ErrorResponse(error="InvalidQuery", detail=str(exc)).model_dump()
        )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        snapshot = service.snapshot
        return {
            "status": "healthy",
            "documents": len(snapshot.documents),
            "built_at": snapshot.built_at.isoformat(),
        }

    @app.get("/search", response_model=SearchResponse, responses=_INVALID_QUERY)
    def search(
        q: str = Query("", description="Search query"),
        limit: int = Query(10, ge=1, le=100, description="Number of results to return"),
        field: Optional[list[str]] = Query(
            None, description="Field selectors such as code: or code:python (default: prose)"
        ),
    ) -> SearchResponse:
        """Ranked full-text search; an empty query is a 400, no matches an empty list."""
        hits = service.search(q, limit=limit, fields=field)
        return SearchResponse(query=q, results=[SearchResult.from_hit(hit) for hit in hits])

    @app.get("/documents", response_model=list[DocumentSummaryModel])
    def list_documents() -> list[DocumentSummaryModel]:
        return [DocumentSummaryModel.from_summary(s) for s in service.documents()]

    @app.get(
        "/documents/{document_id:path}/related",
        response_model=list[RelatedResult],
        responses=_NOT_FOUND,
    )
    def related(document_id: str) -> list[RelatedResult]:
        return [RelatedResult.from_related(r) for r in service.related_to(document_id)]

    @app.get("/documents/{document_id:path}/toc", response_model=OutlineNode, responses=_NOT_FOUND)
    def table_of_contents(document_id: str) -> OutlineNode:
        return OutlineNode.from_node(service.table_of_contents(document_id))

    @app.get("/documents/{document_id:path}", response_model=DocumentDetail, responses=_NOT_FOUND)
    def get_document(document_id: str) -> DocumentDetail:
        doc = service.get_document(document_id)
        return DocumentDetail.from_document(doc, summarize(doc))

    return app
