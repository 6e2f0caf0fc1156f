"""Pydantic schemas for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, Field

from docweave.models import (
    Document,
    DocumentSummary,
    RelatedDocument,
    SearchHit,
    StructureNode,
)


class DocumentSummaryModel(BaseModel):
    """Document identity and headline fields."""

    id: str = Field(..., description="Document ID (blob path + '#' + ordinal)")
    title: str = Field(..., description="Document title")
    blob_path: str = Field(..., description="Source file the document was split from")
    ordinal: int = Field(..., ge=0, description="Position within the source file")
    description: str = Field("", description="First paragraph preview")

    @classmethod
    def from_summary(cls, summary: DocumentSummary) -> "DocumentSummaryModel":
        return cls(
            id=summary.id,
            title=summary.title,
            blob_path=summary.blob_path,
            ordinal=summary.ordinal,
            description=summary.description,
        )


class SearchResult(BaseModel):
    """Single hit from /search."""

    document: DocumentSummaryModel
    score: float = Field(..., ge=0.0, description="Summed TF-IDF score")
    snippet: str = Field(..., description="Text around the first matched term")

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "SearchResult":
        return cls(
            document=DocumentSummaryModel.from_summary(hit.document),
            score=hit.score,
            snippet=hit.snippet,
        )


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult] = Field(default_factory=list)


class RelatedResult(BaseModel):
    document: DocumentSummaryModel
    kind: str = Field(..., description="'sibling' or 'topical'")
    strength: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_related(cls, related: RelatedDocument) -> "RelatedResult":
        return cls(
            document=DocumentSummaryModel.from_summary(related.document),
            kind=related.kind.value,
            strength=related.strength,
        )


class OutlineNode(BaseModel):
    """Heading in a table of contents."""

    text: str
    level: int
    anchor: Optional[str] = None
    start: int
    end: int
    children: List["OutlineNode"] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: StructureNode) -> "OutlineNode":
        return cls(
            text=node.text,
            level=node.level,
            anchor=node.anchor,
            start=node.start,
            end=node.end,
            children=[cls.from_node(child) for child in node.children],
        )


class DocumentDetail(BaseModel):
    document: DocumentSummaryModel
    status: str
    text: str
    metadata: Optional[dict] = None

    @classmethod
    def from_document(cls, doc: Document, summary: DocumentSummary) -> "DocumentDetail":
        return cls(
            document=DocumentSummaryModel.from_summary(summary),
            status=doc.status.value,
            text=doc.text,
            metadata=doc.metadata.to_dict() if doc.metadata else None,
        )


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    detail: Optional[str] = Field(None, description="Detailed error information")
