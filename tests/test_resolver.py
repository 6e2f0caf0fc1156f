"""Tests for sibling and topical cross-reference resolution."""

import pytest

from docweave.indexing import CrossReferenceResolver, Tokenizer, topical_features
from docweave.indexing.resolver import jaccard
from docweave.models import Document, DocumentMetadata, EdgeKind, RelationEdge


def doc(path, ordinal):
    return Document(blob_path=path, ordinal=ordinal, text="x")


def features(*terms):
    return frozenset(terms)


class TestTopicalFeatures:
    """Test topical_features()"""

    def test_heading_terms_and_languages(self):
        meta = DocumentMetadata(
            title="Async IO",
            outline=((1, "Async IO", "async-io"), (2, "Event loop", "event-loop"), (4, "Deep detail", "deep-detail")),
            code_languages=("python",),
        )

        assert topical_features(meta, Tokenizer()) == {"async", "io", "event", "loop", "lang:python"}

    def test_missing_metadata_is_empty(self):
        assert topical_features(None, Tokenizer()) == frozenset()


class TestSiblingEdges:
    """Test sibling edge generation"""

    def test_every_pair_in_a_blob_is_connected(self):
        docs = [doc("a.md", i) for i in range(4)] + [doc("b.md", 0)]
        edges = CrossReferenceResolver().sibling_edges(docs)

        assert len(edges) == 6
        assert all(e.kind is EdgeKind.SIBLING and e.strength == 1.0 for e in edges)
        assert all(e.source.startswith("a.md") and e.target.startswith("a.md") for e in edges)

    def test_single_document_blob_has_no_siblings(self):
        assert CrossReferenceResolver().sibling_edges([doc("a.md", 0)]) == []


class TestTopicalEdges:
    """Test topical edge generation"""

    def test_threshold_is_strict(self):
        """A score exactly at the threshold produces no edge"""
        shared = {f"s{i}" for i in range(3)}
        a = frozenset(shared | {f"a{i}" for i in range(9)})
        b = frozenset(shared | {f"b{i}" for i in range(8)})
        assert jaccard(a, b) == pytest.approx(0.15)

        docs = [doc("a.md", 0), doc("b.md", 0)]
        feats = {"a.md#0": a, "b.md#0": b}

        assert CrossReferenceResolver(threshold=0.15).topical_edges(docs, feats) == []
        (edge,) = CrossReferenceResolver(threshold=0.1).topical_edges(docs, feats)
        assert edge.strength == pytest.approx(0.15)

    def test_same_blob_pairs_are_not_topical(self):
        docs = [doc("a.md", 0), doc("a.md", 1)]
        feats = {"a.md#0": features("x", "y"), "a.md#1": features("x", "y")}

        assert CrossReferenceResolver().topical_edges(docs, feats) == []

    def test_empty_features_never_link(self):
        docs = [doc("a.md", 0), doc("b.md", 0)]

        assert CrossReferenceResolver().topical_edges(docs, {}) == []

    def test_scores_only_pairs_sharing_a_feature(self):
        docs = [doc(f"{name}.md", 0) for name in "abcde"]
        feats = {
            "a.md#0": features("x", "y"),
            "b.md#0": features("x", "y", "z"),
            "c.md#0": features("z"),
            "d.md#0": features("q"),
            "e.md#0": features("x"),
        }
        edges = CrossReferenceResolver().topical_edges(docs, feats)
        pairs = sorted((e.source, e.target, round(e.strength, 4)) for e in edges)

        assert pairs == [
            ("a.md#0", "b.md#0", 0.6667),
            ("a.md#0", "e.md#0", 0.5),
            ("b.md#0", "c.md#0", 0.3333),
            ("b.md#0", "e.md#0", 0.3333),
        ]

    def test_matches_pairwise_jaccard(self):
        docs = [doc(f"d{i:02d}.md", 0) for i in range(30)]
        feats = {
            d.id: frozenset(f"t{(i * k) % 11}" for k in range(1, 1 + i % 5)) for i, d in enumerate(docs)
        }
        edges = CrossReferenceResolver(threshold=0.2).topical_edges(docs, feats)

        expected = {
            (a.id, b.id)
            for i, a in enumerate(docs)
            for b in docs[i + 1 :]
            if jaccard(feats[a.id], feats[b.id]) > 0.2
        }
        assert {(e.source, e.target) for e in edges} == expected
        for e in edges:
            assert e.strength == pytest.approx(jaccard(feats[e.source], feats[e.target]))


class TestResolve:
    """Test resolve() ordering"""

    def test_siblings_first_then_strength(self):
        docs = [doc("a.md", 0), doc("a.md", 1), doc("b.md", 0), doc("c.md", 0)]
        feats = {
            "a.md#0": features("x", "y"),
            "b.md#0": features("x", "y"),
            "c.md#0": features("x", "y", "z", "w"),
        }
        edges = CrossReferenceResolver().resolve(docs, feats)

        assert edges[0] == RelationEdge("a.md#0", "a.md#1", EdgeKind.SIBLING, 1.0)
        assert [(e.source, e.target) for e in edges[1:]] == [
            ("a.md#0", "b.md#0"),
            ("a.md#0", "c.md#0"),
            ("b.md#0", "c.md#0"),
        ]
        assert edges == sorted(edges, key=RelationEdge.sort_key)

    def test_edges_are_undirected(self):
        edge = RelationEdge("z#0", "a#0", EdgeKind.TOPICAL, 0.5)

        assert (edge.source, edge.target) == ("a#0", "z#0")
        assert edge.other("a#0") == "z#0" and edge.other("z#0") == "a#0"
