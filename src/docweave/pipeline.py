"""Batch ingestion: parallel per-blob parsing, then a single-writer merge."""

import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Optional

from docweave.config import IndexConfig
from docweave.errors import IngestionFailure
from docweave.indexing import (
    CrossReferenceResolver,
    InvertedIndex,
    TokenIndexer,
    Tokenizer,
    find_duplicate_sections,
    topical_features,
)
from docweave.ingesters import get_ingester
from docweave.models import Document, ParseStatus, Posting, RawBlob, StructureNode
from docweave.parsing import MarkdownParser, fallback_title
from docweave.protocols import DocumentParser
from docweave.segmenter import segment
from docweave.snapshot import BlobRecord, IndexSnapshot, SnapshotHolder

logger = logging.getLogger(__name__)


@dataclass
class ParsedDocument:
    document: Document
    tree: Optional[StructureNode]
    postings: list[Posting] = field(default_factory=list)


@dataclass
class BlobResult:
    """Everything derived from one blob, ready to be merged."""

    blob: BlobRecord
    documents: list[ParsedDocument]


@dataclass
class BuildReport:
    """Statistics tracked during an index build."""

    blobs: int = 0
    documents: int = 0
    failed_documents: list[str] = field(default_factory=list)
    malformed_documents: list[str] = field(default_factory=list)
    failures: list[IngestionFailure] = field(default_factory=list)
    terms: int = 0
    edges: int = 0
    duplicate_groups: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "blobs": self.blobs,
            "documents": self.documents,
            "failed_documents": list(self.failed_documents),
            "malformed_documents": list(self.malformed_documents),
            "failures": [{"path": f.path, "reason": f.reason} for f in self.failures],
            "terms": self.terms,
            "edges": self.edges,
            "duplicate_groups": self.duplicate_groups,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


def process_blob(
    blob: RawBlob, config: IndexConfig, parser: Optional[DocumentParser] = None
) -> BlobResult:
    """Segment, parse and tokenize one blob.

    Touches no shared state, so it can run on any worker. A document that
    fails to parse is marked failed; its siblings are still processed.
    """
    parser = parser or MarkdownParser.from_config(config)
    indexer = TokenIndexer(Tokenizer(config.min_token_length, config.extra_stopwords))

    parsed = []
    for stub in segment(blob.text, config.separator):
        doc = Document(blob_path=blob.path, ordinal=stub.ordinal, text=stub.text)
        try:
            result = parser.parse(stub.text)
        except Exception:
            logger.exception("Failed to parse %s", doc.id)
            doc = replace(
                doc,
                title=fallback_title(stub.text, config.title_max_length),
                status=ParseStatus.FAILED,
            )
            parsed.append(ParsedDocument(doc, None))
            continue

        doc = replace(
            doc, title=result.metadata.title, status=ParseStatus.PARSED, metadata=result.metadata
        )
        if result.metadata.malformed:
            logger.warning("Malformed %s: %s", doc.id, "; ".join(result.metadata.issues))
        parsed.append(ParsedDocument(doc, result.tree, indexer.index(doc.id, result.tree)))

    record = BlobRecord(
        path=blob.path,
        byte_length=blob.byte_length,
        ingested_at=blob.ingested_at,
        document_ids=tuple(p.document.id for p in parsed),
    )
    return BlobResult(blob=record, documents=parsed)


class IndexBuilder:
    """Single writer that merges per-blob results into a snapshot.

    Results are keyed by blob path, so adding a blob again replaces every
    document, posting and edge previously derived from it.
    """

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = config or IndexConfig()
        self._results: dict[str, BlobResult] = {}

    def __len__(self) -> int:
        return len(self._results)

    def add(self, result: BlobResult) -> None:
        self._results[result.blob.path] = result

    def remove(self, blob_path: str) -> None:
        self._results.pop(blob_path, None)

    def build(self) -> IndexSnapshot:
        """Merge all blob results (in path order) into a new snapshot."""
        tokenizer = Tokenizer(self.config.min_token_length, self.config.extra_stopwords)
        index = InvertedIndex()
        documents: dict[str, Document] = {}
        trees: dict[str, StructureNode] = {}
        features = {}

        for path in sorted(self._results):
            for item in self._results[path].documents:
                doc = item.document
                documents[doc.id] = doc
                if item.tree is not None:
                    trees[doc.id] = item.tree
                index.add_document(doc.id, item.postings)
                features[doc.id] = topical_features(
                    doc.metadata, tokenizer, self.config.heading_max_level
                )

        resolver = CrossReferenceResolver(threshold=self.config.topical_threshold)
        edges = resolver.resolve(documents.values(), features)
        duplicates = find_duplicate_sections(trees, self.config.dedup_min_words)

        return IndexSnapshot(
            config=self.config,
            blobs={path: result.blob for path, result in self._results.items()},
            documents=documents,
            trees=trees,
            index=index,
            edges=tuple(edges),
            duplicates=tuple(duplicates),
        )


class IngestionPipeline:
    """Runs a full build from a source folder or zip and publishes the snapshot."""

    def __init__(
        self, config: Optional[IndexConfig] = None, holder: Optional[SnapshotHolder] = None
    ):
        self.config = config or IndexConfig()
        self.holder = holder or SnapshotHolder(IndexSnapshot.empty(self.config))
        self.builder = IndexBuilder(self.config)

    def run(self, source: Path | str) -> tuple[IndexSnapshot, BuildReport]:
        """Ingest ``source``, build a snapshot and swap it into the holder.

        Raises:
            IngestionFailure: If no ingester can handle the source at all
        """
        started = time.perf_counter()
        source_path = Path(source)
        ingester = get_ingester(source_path, self.config.include_extensions)
        if ingester is None:
            raise IngestionFailure(str(source), "not a folder or .zip file")

        report = BuildReport()
        logger.info("Ingesting %s (%s)", source_path, ingester.source_type)
        blobs = list(ingester.ingest(source_path, on_error=report.failures.append))

        self.builder = IndexBuilder(self.config)
        snapshot = self.build(blobs, report)
        report.elapsed_seconds = time.perf_counter() - started
        self.holder.swap(snapshot)
        logger.info(
            "Indexed %d documents from %d blobs (%d terms, %d edges, %d skipped)",
            report.documents,
            report.blobs,
            report.terms,
            report.edges,
            len(report.failures),
        )
        return snapshot, report

    def update(
        self, blobs: Iterable[RawBlob], removed: Iterable[str] = ()
    ) -> tuple[IndexSnapshot, BuildReport]:
        """Re-ingest some blobs on top of the last build and swap in the result.

        Every blob replaces whatever was derived from the same path before;
        ``removed`` paths are dropped. Derived data is rebuilt in full.
        """
        started = time.perf_counter()
        for path in removed:
            self.builder.remove(path)
        report = BuildReport()
        snapshot = self.build(blobs, report)
        report.elapsed_seconds = time.perf_counter() - started
        self.holder.swap(snapshot)
        return snapshot, report

    def build(self, blobs: Iterable[RawBlob], report: Optional[BuildReport] = None) -> IndexSnapshot:
        """Process blobs in parallel, then merge on the calling thread."""
        report = report if report is not None else BuildReport()
        known_failures = len(report.failures)
        for result in self._process_all(list(blobs), report):
            self.builder.add(result)
        # A blob that failed this time must not keep serving stale results.
        for failure in report.failures[known_failures:]:
            self.builder.remove(failure.path)

        snapshot = self.builder.build()
        report.blobs = len(snapshot.blobs)
        report.documents = len(snapshot.documents)
        report.failed_documents = sorted(
            doc_id for doc_id, doc in snapshot.documents.items() if doc.status is ParseStatus.FAILED
        )
        report.malformed_documents = sorted(
            doc_id for doc_id, doc in snapshot.documents.items() if doc.malformed
        )
        report.terms = len(snapshot.index)
        report.edges = len(snapshot.edges)
        report.duplicate_groups = len(snapshot.duplicates)
        return snapshot

    def _process_all(self, blobs: list[RawBlob], report: BuildReport) -> list[BlobResult]:
        if self.config.workers == 1 or len(blobs) <= 1:
            results = []
            for blob in blobs:
                result = self._guarded(blob, report, lambda: process_blob(blob, self.config))
                if result is not None:
                    results.append(result)
            return results

        results = []
        with self._executor() as pool:
            futures = {pool.submit(process_blob, blob, self.config): blob for blob in blobs}
            for future in as_completed(futures):
                blob = futures[future]
                result = self._guarded(blob, report, future.result)
                if result is not None:
                    results.append(result)
        return results

    @staticmethod
    def _guarded(blob: RawBlob, report: BuildReport, compute) -> Optional[BlobResult]:
        """Run ``compute``; on error drop just this blob and record the failure."""
        try:
            result = compute()
        except Exception as e:
            failure = IngestionFailure(blob.path, f"processing failed: {e}")
            logger.error("Skipping %s: %s", failure.path, failure.reason)
            report.failures.append(failure)
            return None
        logger.debug("  %s (%d documents)", blob.path, len(result.documents))
        return result

    def _executor(self) -> Executor:
        if self.config.executor == "process":
            return ProcessPoolExecutor(max_workers=self.config.workers)
        return ThreadPoolExecutor(max_workers=self.config.workers)
