"""Read-only query API over the current index snapshot."""

import re
from typing import Iterable, Optional

from docweave.errors import InvalidQuery
from docweave.indexing import flatten_tree
from docweave.indexing.dedup import duplicate_locations
from docweave.models import (
    TEXT_FIELD,
    Document,
    DocumentSummary,
    DuplicateGroup,
    EdgeKind,
    NodeKind,
    RelatedDocument,
    SearchHit,
    StructureNode,
)
from docweave.snapshot import IndexSnapshot, SnapshotHolder

_PHRASE_RE = re.compile(r'"([^"]*)"')


def summarize(doc: Document) -> DocumentSummary:
    return DocumentSummary(
        id=doc.id,
        title=doc.title,
        blob_path=doc.blob_path,
        ordinal=doc.ordinal,
        description=doc.metadata.description if doc.metadata else "",
    )


class QueryService:
    """Answers search, related-document and table-of-contents queries.

    Each call reads the holder's snapshot once, so a concurrent swap is
    never observed halfway through a query.
    """

    def __init__(self, source: SnapshotHolder | IndexSnapshot):
        if isinstance(source, IndexSnapshot):
            source = SnapshotHolder(source)
        self.holder = source

    @property
    def snapshot(self) -> IndexSnapshot:
        return self.holder.current

    def search(
        self,
        query_text: str,
        limit: Optional[int] = None,
        fields: Optional[Iterable[str]] = None,
    ) -> list[SearchHit]:
        """Full-text search ranked by TF-IDF.

        Double-quoted parts of the query must match as exact phrases.

        Args:
            query_text: Free text, optionally with "quoted phrases"
            limit: Maximum number of hits (None for all)
            fields: Field selectors to score, e.g. ("code:",) or ("code:python",);
                None scores prose only

        Returns:
            Hits best first; empty when nothing matches

        Raises:
            InvalidQuery: If the query is blank or has no searchable terms
        """
        if query_text is None or not query_text.strip():
            raise InvalidQuery(query_text or "")

        snapshot = self.snapshot
        tokenizer = snapshot.tokenizer
        terms = tokenizer.tokenize(query_text)
        if not terms:
            raise InvalidQuery(query_text, "no searchable terms")

        phrases = [
            phrase
            for phrase in (tokenizer.tokenize(p) for p in _PHRASE_RE.findall(query_text))
            if len(phrase) > 1
        ]

        selected = tuple(fields) if fields is not None else (TEXT_FIELD,)
        hits = []
        for doc_id, score in snapshot.index.rank(terms, selected):
            if not all(snapshot.index.phrase_match(p, doc_id, selected) for p in phrases):
                continue
            doc = snapshot.documents[doc_id]
            snippet = self._snippet(snapshot, doc, set(terms))
            hits.append(SearchHit(document=summarize(doc), score=score, snippet=snippet))
            if limit is not None and len(hits) >= limit:
                break
        return hits

    def related_to(self, document_id: str) -> list[RelatedDocument]:
        """Siblings in blob order, then topical neighbours by descending strength.

        Raises:
            NotFound: If the document is not indexed
        """
        snapshot = self.snapshot
        snapshot.document(document_id)

        siblings, topical = [], []
        for edge in snapshot.edges_for(document_id):
            other = snapshot.documents[edge.other(document_id)]
            related = RelatedDocument(document=summarize(other), kind=edge.kind, strength=edge.strength)
            (siblings if edge.kind is EdgeKind.SIBLING else topical).append(related)

        siblings.sort(key=lambda r: r.document.ordinal)
        topical.sort(key=lambda r: (-r.strength, r.document.id))
        return siblings + topical

    def table_of_contents(self, document_id: str) -> StructureNode:
        """Heading-only projection of the document's structure tree.

        Raises:
            NotFound: If the document is not indexed
        """
        snapshot = self.snapshot
        doc = snapshot.document(document_id)
        tree = snapshot.trees.get(document_id)
        if tree is None:
            return StructureNode(kind=NodeKind.ROOT, start=0, end=len(doc.text))
        return tree.headings_only()

    def get_document(self, document_id: str) -> Document:
        return self.snapshot.document(document_id)

    def documents(self) -> list[DocumentSummary]:
        snapshot = self.snapshot
        return [summarize(snapshot.documents[doc_id]) for doc_id in sorted(snapshot.documents)]

    def duplicate_sections(self, document_id: Optional[str] = None) -> list[DuplicateGroup]:
        """Repeated sections, optionally only those touching one document."""
        snapshot = self.snapshot
        if document_id is None:
            return list(snapshot.duplicates)
        snapshot.document(document_id)
        return duplicate_locations(snapshot.duplicates, document_id)

    @staticmethod
    def _snippet(snapshot: IndexSnapshot, doc: Document, terms: set[str]) -> str:
        """Text around the first occurrence of any query term, prose first."""
        radius = snapshot.config.snippet_radius
        tree = snapshot.trees.get(doc.id)
        streams = flatten_tree(tree) if tree is not None else {TEXT_FIELD: doc.text}

        ordered = [TEXT_FIELD] + sorted(f for f in streams if f != TEXT_FIELD)
        for field in ordered:
            text = streams.get(field, "")
            for token in snapshot.tokenizer.tokens(text):
                if token.term in terms:
                    return _window(text, token.start, token.end, radius)
        return _window(doc.text, 0, 0, radius)


def _window(text: str, start: int, end: int, radius: int) -> str:
    lo = max(0, start - radius)
    hi = min(len(text), end + radius)
    snippet = " ".join(text[lo:hi].split())
    if lo > 0:
        snippet = "..." + snippet
    if hi < len(text):
        snippet += "..."
    return snippet
