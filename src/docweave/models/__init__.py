"""Data models for docweave."""

from docweave.models.document import (
    Document,
    DocumentMetadata,
    DocumentStub,
    ParseStatus,
    RawBlob,
    make_document_id,
)
from docweave.models.index import (
    CODE_FIELD_PREFIX,
    TEXT_FIELD,
    DocumentSummary,
    DuplicateGroup,
    EdgeKind,
    Posting,
    RelatedDocument,
    RelationEdge,
    SearchHit,
    SectionLocation,
    code_field,
)
from docweave.models.structure import NodeKind, StructureNode, slugify

__all__ = [
    "RawBlob",
    "DocumentStub",
    "Document",
    "DocumentMetadata",
    "ParseStatus",
    "make_document_id",
    "NodeKind",
    "StructureNode",
    "slugify",
    "Posting",
    "RelationEdge",
    "EdgeKind",
    "DocumentSummary",
    "SearchHit",
    "RelatedDocument",
    "SectionLocation",
    "DuplicateGroup",
    "TEXT_FIELD",
    "CODE_FIELD_PREFIX",
    "code_field",
]
