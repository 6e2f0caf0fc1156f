"""Index records: postings, relation edges and query results."""

from dataclasses import dataclass
from enum import Enum

TEXT_FIELD = "text"
CODE_FIELD_PREFIX = "code:"


def code_field(language: str | None) -> str:
    """Field name for code written in ``language`` (``code:`` when undeclared)."""
    return CODE_FIELD_PREFIX + (language or "")


@dataclass(frozen=True)
class Posting:
    """Occurrences of one term in one field of one document."""

    term: str
    field: str
    document_id: str
    positions: tuple[int, ...]

    @property
    def frequency(self) -> int:
        return len(self.positions)


class EdgeKind(str, Enum):
    SIBLING = "sibling"
    TOPICAL = "topical"


@dataclass(frozen=True)
class RelationEdge:
    """Undirected link between two documents; ``source`` sorts before ``target``."""

    source: str
    target: str
    kind: EdgeKind
    strength: float

    def __post_init__(self):
        if self.source > self.target:
            src, tgt = self.target, self.source
            object.__setattr__(self, "source", src)
            object.__setattr__(self, "target", tgt)

    def other(self, document_id: str) -> str:
        return self.target if document_id == self.source else self.source

    def sort_key(self) -> tuple:
        return (0 if self.kind is EdgeKind.SIBLING else 1, -self.strength, self.source, self.target)


@dataclass(frozen=True)
class DocumentSummary:
    id: str
    title: str
    blob_path: str
    ordinal: int
    description: str = ""


@dataclass(frozen=True)
class SearchHit:
    document: DocumentSummary
    score: float
    snippet: str


@dataclass(frozen=True)
class RelatedDocument:
    document: DocumentSummary
    kind: EdgeKind
    strength: float


@dataclass(frozen=True)
class SectionLocation:
    document_id: str
    heading: str
    start: int
    end: int


@dataclass(frozen=True)
class DuplicateGroup:
    """A section whose normalized text appears in more than one place."""

    fingerprint: str
    heading: str
    word_count: int
    locations: tuple[SectionLocation, ...]
