"""Per-document postings and the corpus-wide inverted index."""

import math
from collections import defaultdict
from typing import Iterable, Optional

from docweave.indexing.tokenizer import Tokenizer
from docweave.models import TEXT_FIELD, NodeKind, Posting, StructureNode, code_field


def flatten_tree(tree: StructureNode) -> dict[str, str]:
    """Concatenate node text per field, in document order.

    Prose nodes feed the ``text`` field. Each code block feeds the
    ``code:<language>`` field, prefixed by its language tag so the tag is
    searchable too.
    """
    parts: dict[str, list[str]] = defaultdict(list)
    for node in tree.walk():
        if node.kind is NodeKind.ROOT:
            continue
        if node.kind is NodeKind.CODE:
            language = node.language or ""
            parts[code_field(language)].append(f"{language}\n{node.text}" if language else node.text)
        else:
            parts[TEXT_FIELD].append(node.text)
    return {field: "\n".join(chunks) for field, chunks in parts.items()}


class TokenIndexer:
    """Builds the postings of a single document. Pure and safe to run in workers."""

    def __init__(self, tokenizer: Optional[Tokenizer] = None):
        self.tokenizer = tokenizer or Tokenizer()

    def index(self, document_id: str, tree: StructureNode) -> list[Posting]:
        """Return the document's postings sorted by (term, field)."""
        postings = []
        for field, text in flatten_tree(tree).items():
            positions: dict[str, list[int]] = defaultdict(list)
            for position, term in enumerate(self.tokenizer.tokenize(text)):
                positions[term].append(position)
            postings.extend(
                Posting(term=term, field=field, document_id=document_id, positions=tuple(pos))
                for term, pos in positions.items()
            )
        postings.sort(key=lambda p: (p.term, p.field))
        return postings


def _field_selected(field: str, fields: Optional[tuple[str, ...]]) -> bool:
    if fields is None:
        return True
    # A selector ending in ":" (e.g. "code:") matches every field with that prefix.
    return any(field == f or (f.endswith(":") and field.startswith(f)) for f in fields)


class InvertedIndex:
    """Term -> document -> field -> positions.

    Mutated only by the single writer that builds a snapshot; read-only after.
    """

    def __init__(self):
        self._terms: dict[str, dict[str, dict[str, tuple[int, ...]]]] = {}
        self._doc_terms: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._terms)

    @property
    def document_count(self) -> int:
        return len(self._doc_terms)

    def add_document(self, document_id: str, postings: Iterable[Posting]) -> None:
        """Index a document, replacing whatever was indexed for it before."""
        self.remove_document(document_id)
        terms = set()
        for posting in postings:
            by_doc = self._terms.setdefault(posting.term, {})
            by_doc.setdefault(document_id, {})[posting.field] = posting.positions
            terms.add(posting.term)
        self._doc_terms[document_id] = terms

    def remove_document(self, document_id: str) -> None:
        for term in self._doc_terms.pop(document_id, ()):
            by_doc = self._terms[term]
            by_doc.pop(document_id, None)
            if not by_doc:
                del self._terms[term]

    def postings_for(self, document_id: str) -> list[Posting]:
        postings = [
            Posting(term=term, field=field, document_id=document_id, positions=positions)
            for term in self._doc_terms.get(document_id, ())
            for field, positions in self._terms[term][document_id].items()
        ]
        postings.sort(key=lambda p: (p.term, p.field))
        return postings

    def all_postings(self) -> list[Posting]:
        """Every posting, ordered by (term, field, document)."""
        postings = [
            Posting(term=term, field=field, document_id=doc_id, positions=positions)
            for term, by_doc in self._terms.items()
            for doc_id, by_field in by_doc.items()
            for field, positions in by_field.items()
        ]
        postings.sort(key=lambda p: (p.term, p.field, p.document_id))
        return postings

    def term_frequency(
        self, term: str, document_id: str, fields: Optional[tuple[str, ...]] = None
    ) -> int:
        by_field = self._terms.get(term, {}).get(document_id, {})
        return sum(len(pos) for field, pos in by_field.items() if _field_selected(field, fields))

    def document_frequency(self, term: str, fields: Optional[tuple[str, ...]] = None) -> int:
        return sum(
            1
            for by_field in self._terms.get(term, {}).values()
            if any(_field_selected(field, fields) for field in by_field)
        )

    def idf(self, term: str, fields: Optional[tuple[str, ...]] = None) -> float:
        """Smoothed inverse document frequency, always positive."""
        n = self.document_count
        df = self.document_frequency(term, fields)
        return math.log((1 + n) / (1 + df)) + 1.0

    def rank(
        self, terms: Iterable[str], fields: Optional[Iterable[str]] = None
    ) -> list[tuple[str, float]]:
        """Rank documents by summed TF-IDF over the distinct query terms.

        Args:
            terms: Normalized query terms
            fields: Field selectors to score (None means all fields)

        Returns:
            (document_id, score) pairs, best first, ties by document ID
        """
        selected = tuple(fields) if fields is not None else None
        scores: dict[str, float] = defaultdict(float)
        for term in dict.fromkeys(terms):
            by_doc = self._terms.get(term)
            if not by_doc:
                continue
            idf = self.idf(term, selected)
            for doc_id in by_doc:
                tf = self.term_frequency(term, doc_id, selected)
                if tf:
                    scores[doc_id] += tf * idf
        return sorted(scores.items(), key=lambda item: (-item[1], item[0]))

    def positions(self, term: str, document_id: str, field: str = TEXT_FIELD) -> tuple[int, ...]:
        return self._terms.get(term, {}).get(document_id, {}).get(field, ())

    def phrase_match(
        self,
        terms: list[str],
        document_id: str,
        fields: Optional[Iterable[str]] = None,
    ) -> bool:
        """True if ``terms`` occur at consecutive positions within one field.

        ``fields`` takes the same selectors as ``rank``; with None every
        field holding the first term is tried.
        """
        if not terms:
            return False
        selected = tuple(fields) if fields is not None else None
        candidates = [
            name
            for name in sorted(self._terms.get(terms[0], {}).get(document_id, {}))
            if _field_selected(name, selected)
        ]
        for name in candidates:
            first = self.positions(terms[0], document_id, name)
            following = [set(self.positions(t, document_id, name)) for t in terms[1:]]
            if any(
                all(start + offset in positions for offset, positions in enumerate(following, 1))
                for start in first
            ):
                return True
        return False
