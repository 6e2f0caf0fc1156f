"""Cross-reference resolution: sibling and topical relation edges."""

import logging
from collections import defaultdict
from itertools import combinations
from typing import Iterable, Mapping

import numpy as np

from docweave.indexing.tokenizer import Tokenizer
from docweave.models import Document, DocumentMetadata, EdgeKind, RelationEdge

logger = logging.getLogger(__name__)

LANGUAGE_FEATURE_PREFIX = "lang:"


def topical_features(
    metadata: DocumentMetadata | None, tokenizer: Tokenizer, max_level: int = 3
) -> frozenset[str]:
    """Heading terms (levels <= max_level) plus ``lang:<name>`` per fence language.

    Languages are prefixed so a heading word like "python" and a python
    fence count as different features.
    """
    if metadata is None:
        return frozenset()
    features = set()
    for level, text, _ in metadata.outline:
        if level <= max_level:
            features.update(tokenizer.tokenize(text))
    features.update(LANGUAGE_FEATURE_PREFIX + lang for lang in metadata.code_languages)
    return frozenset(features)


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    union = len(a | b)
    return len(a & b) / union if union else 0.0


class CrossReferenceResolver:
    """Computes sibling edges per blob and thresholded topical edges corpus-wide.

    Topical scoring is an exhaustive pairwise Jaccard over feature sets.
    Features are kept as a feature -> documents map, so one row of overlap
    counts is scored at a time and only edges above threshold are kept.
    """

    def __init__(self, threshold: float = 0.15):
        self.threshold = threshold

    def resolve(
        self, documents: Iterable[Document], features: Mapping[str, frozenset[str]]
    ) -> list[RelationEdge]:
        documents = list(documents)
        edges = self.sibling_edges(documents)
        edges.extend(self.topical_edges(documents, features))
        edges.sort(key=RelationEdge.sort_key)
        logger.debug("Resolved %d relation edges for %d documents", len(edges), len(documents))
        return edges

    def sibling_edges(self, documents: Iterable[Document]) -> list[RelationEdge]:
        """Connect every pair of documents that came from the same blob."""
        by_blob: dict[str, list[Document]] = defaultdict(list)
        for doc in documents:
            by_blob[doc.blob_path].append(doc)

        edges = []
        for blob_path in sorted(by_blob):
            siblings = sorted(by_blob[blob_path], key=lambda d: d.ordinal)
            for a, b in combinations(siblings, 2):
                edges.append(RelationEdge(a.id, b.id, EdgeKind.SIBLING, 1.0))
        return edges

    def topical_edges(
        self, documents: Iterable[Document], features: Mapping[str, frozenset[str]]
    ) -> list[RelationEdge]:
        """Jaccard-similarity edges between documents of different blobs.

        Args:
            documents: Documents to compare
            features: Feature set per document ID (missing means empty)

        Returns:
            Edges whose strength is strictly above the threshold
        """
        docs = sorted(documents, key=lambda d: d.id)
        n = len(docs)
        if n < 2:
            return []

        holders: dict[str, list[int]] = defaultdict(list)
        for i, doc in enumerate(docs):
            for feature in features.get(doc.id, ()):
                holders[feature].append(i)
        rows = {feature: np.array(idx, dtype=np.int32) for feature, idx in holders.items()}

        sizes = np.array([len(features.get(d.id, ())) for d in docs], dtype=np.int32)
        blob_codes = {path: k for k, path in enumerate(sorted({d.blob_path for d in docs}))}
        blobs = np.array([blob_codes[d.blob_path] for d in docs], dtype=np.int32)
        overlap = np.zeros(n, dtype=np.int32)

        edges = []
        for i, doc in enumerate(docs):
            own = features.get(doc.id, ())
            if not own:
                continue
            for feature in own:
                overlap[rows[feature]] += 1
            touched = np.nonzero(overlap)[0]
            shared = overlap[touched]
            overlap[touched] = 0

            keep = (touched > i) & (blobs[touched] != blobs[i])
            touched, shared = touched[keep], shared[keep]
            scores = shared / (sizes[i] + sizes[touched] - shared)
            for j, score in zip(touched, scores):
                if score > self.threshold:
                    edges.append(
                        RelationEdge(doc.id, docs[int(j)].id, EdgeKind.TOPICAL, float(score))
                    )
        return edges
