"""Tests for the ingestion pipeline and the single-writer index builder."""

from dataclasses import replace

import pytest

from docweave.config import IndexConfig
from docweave.errors import IngestionFailure
from docweave.models import EdgeKind, ParseStatus, RawBlob
from docweave.parsing import MarkdownParser
from docweave.pipeline import IndexBuilder, IngestionPipeline, process_blob
from docweave.protocols import DocumentParser
from docweave.snapshot import SnapshotHolder

SEP = "<SEP>"


def blob(path, text):
    return RawBlob(path=path, text=text, byte_length=len(text.encode("utf-8")))


def edge_keys(snapshot):
    return [(e.source, e.target, e.kind, round(e.strength, 6)) for e in snapshot.edges]


class TestProcessBlob:
    """Test process_blob()"""

    def test_two_documents_one_sibling_edge(self, config):
        """"A <SEP> B" gives two documents joined by one sibling edge"""
        builder = IndexBuilder(config)
        builder.add(process_blob(blob("ab.md", f"A\n{SEP}\nB"), config))
        snapshot = builder.build()

        assert sorted(snapshot.documents) == ["ab.md#0", "ab.md#1"]
        (edge,) = snapshot.edges
        assert (edge.source, edge.target, edge.kind, edge.strength) == (
            "ab.md#0",
            "ab.md#1",
            EdgeKind.SIBLING,
            1.0,
        )

    def test_unclosed_fence_document_is_indexed(self, config):
        result = process_blob(blob("code.md", "```python\nprint(1)"), config)

        (parsed,) = result.documents
        assert parsed.document.status is ParseStatus.PARSED
        assert parsed.document.malformed
        assert parsed.document.title == "```python"
        assert {(p.term, p.field) for p in parsed.postings} >= {
            ("python", "code:python"),
            ("print", "code:python"),
        }

    def test_parse_failure_is_isolated_to_one_document(self, config, monkeypatch):
        original = MarkdownParser.parse

        def flaky_parse(self, text):
            if "BOOM" in text:
                raise RuntimeError("parser exploded")
            return original(self, text)

        monkeypatch.setattr(MarkdownParser, "parse", flaky_parse)
        result = process_blob(blob("mixed.md", f"# Fine\n{SEP}\nBOOM here\n{SEP}\n# Also fine"), config)

        statuses = [(p.document.id, p.document.status) for p in result.documents]
        assert statuses == [
            ("mixed.md#0", ParseStatus.PARSED),
            ("mixed.md#1", ParseStatus.FAILED),
            ("mixed.md#2", ParseStatus.PARSED),
        ]
        failed = result.documents[1]
        assert failed.tree is None and failed.postings == []
        assert failed.document.title == "BOOM here"

    def test_blob_record_lists_document_ids(self, config):
        result = process_blob(blob("x.md", f"one\n{SEP}\n{SEP}\ntwo"), config)

        assert result.blob.document_ids == ("x.md#0", "x.md#1")


class TestIngestionPipeline:
    """Test IngestionPipeline.run() over a folder"""

    def test_sample_corpus(self, built):
        snapshot, report = built

        assert sorted(snapshot.documents) == [
            "javascript/promises.md#0",
            "notes.txt#0",
            "python/async.md#0",
            "python/async.md#1",
        ]
        assert report.blobs == 3
        assert report.documents == 4
        assert report.failures == []
        assert report.failed_documents == []

    def test_sample_corpus_edges(self, snapshot):
        assert edge_keys(snapshot) == [
            ("python/async.md#0", "python/async.md#1", EdgeKind.SIBLING, 1.0),
            ("javascript/promises.md#0", "python/async.md#0", EdgeKind.TOPICAL, 0.25),
        ]

    def test_undecodable_blobs_are_skipped(self, corpus, config):
        (corpus / "image.md").write_bytes(b"\x89PNG\x00\x00\x00")
        (corpus / "latin1.md").write_bytes("caf\xe9".encode("latin-1"))

        snapshot, report = IngestionPipeline(config).run(corpus)

        assert sorted(f.path for f in report.failures) == ["image.md", "latin1.md"]
        assert report.documents == 4
        assert "image.md#0" not in snapshot.documents

    def test_build_is_deterministic(self, make_corpus, config):
        first, _ = IngestionPipeline(config).run(make_corpus("one"))
        second, _ = IngestionPipeline(config).run(make_corpus("two"))

        assert edge_keys(first) == edge_keys(second)
        assert first.index.all_postings() == second.index.all_postings()
        assert [d.title for _, d in sorted(first.documents.items())] == [
            d.title for _, d in sorted(second.documents.items())
        ]

    def test_thread_workers_match_inline_build(self, corpus, snapshot):
        threaded, _ = IngestionPipeline(IndexConfig(separator=SEP, workers=2)).run(corpus)

        assert edge_keys(threaded) == edge_keys(snapshot)
        assert threaded.index.all_postings() == snapshot.index.all_postings()

    def test_run_swaps_holder(self, corpus, config):
        holder = SnapshotHolder()
        pipeline = IngestionPipeline(config, holder)

        snapshot, _ = pipeline.run(corpus)

        assert holder.current is snapshot
        assert holder.generation == 1

    def test_unsupported_source(self, tmp_path, config):
        missing = tmp_path / "nope.tar"

        with pytest.raises(IngestionFailure):
            IngestionPipeline(config).run(missing)


class TestUpdate:
    """Test incremental updates on top of a build"""

    def test_reingested_blob_replaces_documents(self, corpus, config):
        pipeline = IngestionPipeline(config)
        pipeline.run(corpus)

        snapshot, _ = pipeline.update([blob("python/async.md", "# Only one now")])

        assert "python/async.md#1" not in snapshot.documents
        assert snapshot.documents["python/async.md#0"].title == "Only one now"
        assert not any(e.kind is EdgeKind.SIBLING for e in snapshot.edges)
        assert snapshot.index.rank(["coroutines"]) == []

    def test_removed_blob_is_dropped(self, corpus, config):
        pipeline = IngestionPipeline(config)
        pipeline.run(corpus)

        snapshot, report = pipeline.update([], removed=["notes.txt"])

        assert "notes.txt#0" not in snapshot.documents
        assert report.blobs == 2
        assert pipeline.holder.generation == 2


class _UpperTitleParser:
    """Stand-in parser that wraps the markdown parser."""

    def parse(self, text):
        result = MarkdownParser().parse(text)
        return replace(result, metadata=replace(result.metadata, title=result.metadata.title.upper()))


def test_process_blob_accepts_custom_parser(config):
    parser = _UpperTitleParser()
    assert isinstance(parser, DocumentParser)

    result = process_blob(blob("c.md", "# Custom"), config, parser=parser)

    assert result.documents[0].document.title == "CUSTOM"
