"""Immutable index snapshots and the holder that swaps them atomically."""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional

from docweave.config import IndexConfig
from docweave.errors import NotFound
from docweave.indexing import InvertedIndex, Tokenizer
from docweave.models import Document, DuplicateGroup, RelationEdge, StructureNode


@dataclass(frozen=True)
class BlobRecord:
    """What the index remembers about an ingested blob (its text lives in documents)."""

    path: str
    byte_length: int
    ingested_at: datetime
    document_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class IndexSnapshot:
    """A fully built, read-only view of the corpus.

    Never mutated after construction; a rebuild produces a new snapshot.
    """

    config: IndexConfig
    blobs: Mapping[str, BlobRecord]
    documents: Mapping[str, Document]
    trees: Mapping[str, StructureNode]
    index: InvertedIndex
    edges: tuple[RelationEdge, ...] = ()
    duplicates: tuple[DuplicateGroup, ...] = ()
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _adjacency: Mapping[str, tuple[RelationEdge, ...]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, "blobs", MappingProxyType(dict(self.blobs)))
        object.__setattr__(self, "documents", MappingProxyType(dict(self.documents)))
        object.__setattr__(self, "trees", MappingProxyType(dict(self.trees)))
        adjacency = defaultdict(list)
        for edge in self.edges:
            adjacency[edge.source].append(edge)
            adjacency[edge.target].append(edge)
        object.__setattr__(
            self,
            "_adjacency",
            MappingProxyType({doc_id: tuple(e) for doc_id, e in adjacency.items()}),
        )

    @classmethod
    def empty(cls, config: Optional[IndexConfig] = None) -> "IndexSnapshot":
        return cls(
            config=config or IndexConfig(),
            blobs={},
            documents={},
            trees={},
            index=InvertedIndex(),
        )

    @property
    def tokenizer(self) -> Tokenizer:
        return Tokenizer(self.config.min_token_length, self.config.extra_stopwords)

    def document(self, document_id: str) -> Document:
        """Look up a document, raising NotFound if it is not indexed."""
        try:
            return self.documents[document_id]
        except KeyError:
            raise NotFound(document_id) from None

    def edges_for(self, document_id: str) -> tuple[RelationEdge, ...]:
        return self._adjacency.get(document_id, ())


class SnapshotHolder:
    """Holds the current snapshot; readers see either the old or the new one.

    Reading ``current`` is a single attribute load. ``swap`` serializes
    writers and replaces the reference in one assignment.
    """

    def __init__(self, snapshot: Optional[IndexSnapshot] = None):
        self._snapshot = snapshot if snapshot is not None else IndexSnapshot.empty()
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def current(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    def swap(self, snapshot: IndexSnapshot) -> IndexSnapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
            self._generation += 1
        return previous
