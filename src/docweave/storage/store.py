"""SQLite-backed storage for .weave index files."""

import json
import logging
import sqlite3
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from docweave.config import IndexConfig
from docweave.indexing import InvertedIndex, find_duplicate_sections
from docweave.models import (
    Document,
    DocumentMetadata,
    EdgeKind,
    NodeKind,
    ParseStatus,
    Posting,
    RelationEdge,
    StructureNode,
)
from docweave.snapshot import BlobRecord, IndexSnapshot
from docweave.storage.schema import SCHEMA, SCHEMA_VERSION

logger = logging.getLogger(__name__)


class IndexStore:
    """SQLite-backed storage for index snapshots.

    ``save`` always rewrites the whole file content; rows are written in
    sorted order so unchanged input yields identical tables.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, snapshot: IndexSnapshot, extra_metadata: Optional[dict] = None) -> None:
        """Replace the stored index with ``snapshot``."""
        self.initialize()
        with self.connection() as conn:
            for table in ("postings", "nodes", "edges", "documents", "blobs", "metadata"):
                conn.execute(f"DELETE FROM {table}")

            conn.executemany(
                "INSERT INTO blobs (path, byte_length, ingested_at) VALUES (?, ?, ?)",
                [
                    (b.path, b.byte_length, b.ingested_at.isoformat())
                    for b in sorted(snapshot.blobs.values(), key=lambda b: b.path)
                ],
            )

            for doc_id in sorted(snapshot.documents):
                doc = snapshot.documents[doc_id]
                conn.execute(
                    """INSERT INTO documents (id, blob_path, ordinal, title, text, status, metadata)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        doc.id,
                        doc.blob_path,
                        doc.ordinal,
                        doc.title,
                        doc.text,
                        doc.status.value,
                        json.dumps(doc.metadata.to_dict(), sort_keys=True) if doc.metadata else None,
                    ),
                )
                tree = snapshot.trees.get(doc_id)
                if tree is not None:
                    conn.executemany(
                        """INSERT INTO nodes (document_id, node_index, parent_index, kind, level,
                                              text, start_char, end_char, language, callout)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                        list(_node_rows(doc_id, tree)),
                    )

            conn.executemany(
                """INSERT INTO postings (term, field, document_id, frequency, positions)
                   VALUES (?, ?, ?, ?, ?)""",
                [
                    (p.term, p.field, p.document_id, p.frequency, json.dumps(list(p.positions)))
                    for p in snapshot.index.all_postings()
                ],
            )

            conn.executemany(
                "INSERT INTO edges (source, target, kind, strength) VALUES (?, ?, ?, ?)",
                [(e.source, e.target, e.kind.value, e.strength) for e in snapshot.edges],
            )

            metadata = {
                "schema_version": SCHEMA_VERSION,
                "built_at": snapshot.built_at.isoformat(),
                "config": json.dumps(snapshot.config.to_dict(), sort_keys=True),
            }
            metadata.update(extra_metadata or {})
            conn.executemany(
                "INSERT INTO metadata (key, value) VALUES (?, ?)",
                sorted((k, str(v)) for k, v in metadata.items()),
            )
        logger.debug("Saved %d documents to %s", len(snapshot.documents), self.path)

    def load(self) -> IndexSnapshot:
        """Rebuild the snapshot stored in this file."""
        if not self.exists():
            raise FileNotFoundError(f"Index file not found: {self.path}")

        with self.connection() as conn:
            config = IndexConfig.from_dict(json.loads(self.get_metadata("config") or "{}"))

            documents = {}
            for row in conn.execute("SELECT * FROM documents ORDER BY id"):
                metadata = DocumentMetadata.from_dict(json.loads(row["metadata"])) if row["metadata"] else None
                doc = Document(
                    blob_path=row["blob_path"],
                    ordinal=row["ordinal"],
                    text=row["text"],
                    title=row["title"],
                    status=ParseStatus(row["status"]),
                    metadata=metadata,
                )
                documents[doc.id] = doc

            blob_docs = defaultdict(list)
            for doc in sorted(documents.values(), key=lambda d: (d.blob_path, d.ordinal)):
                blob_docs[doc.blob_path].append(doc.id)
            blobs = {
                row["path"]: BlobRecord(
                    path=row["path"],
                    byte_length=row["byte_length"],
                    ingested_at=datetime.fromisoformat(row["ingested_at"]),
                    document_ids=tuple(blob_docs.get(row["path"], ())),
                )
                for row in conn.execute("SELECT * FROM blobs ORDER BY path")
            }

            trees = _load_trees(conn)

            postings = defaultdict(list)
            for row in conn.execute("SELECT * FROM postings ORDER BY term, field, document_id"):
                postings[row["document_id"]].append(
                    Posting(
                        term=row["term"],
                        field=row["field"],
                        document_id=row["document_id"],
                        positions=tuple(json.loads(row["positions"])),
                    )
                )
            index = InvertedIndex()
            for doc_id in documents:
                index.add_document(doc_id, postings.get(doc_id, ()))

            edges = tuple(
                RelationEdge(row["source"], row["target"], EdgeKind(row["kind"]), row["strength"])
                for row in conn.execute("SELECT * FROM edges")
            )

        built_at = self.get_metadata("built_at")
        return IndexSnapshot(
            config=config,
            blobs=blobs,
            documents=documents,
            trees=trees,
            index=index,
            edges=tuple(sorted(edges, key=RelationEdge.sort_key)),
            duplicates=tuple(find_duplicate_sections(trees, config.dedup_min_words)),
            built_at=datetime.fromisoformat(built_at) if built_at else datetime.now(),
        )

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def counts(self) -> dict[str, int]:
        """Row counts per table (for ``docweave info``)."""
        with self.connection() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ("blobs", "documents", "nodes", "postings", "edges")
            }


def _node_rows(document_id: str, tree: StructureNode) -> Iterator[tuple]:
    """Flatten a tree to rows in pre-order, each pointing at its parent's index."""
    index = 0
    stack: list[tuple[StructureNode, Optional[int]]] = [(tree, None)]
    while stack:
        node, parent = stack.pop()
        node_index = index
        index += 1
        yield (
            document_id,
            node_index,
            parent,
            node.kind.value,
            node.level,
            node.text,
            node.start,
            node.end,
            node.language,
            node.callout,
        )
        stack.extend((child, node_index) for child in reversed(node.children))


def _load_trees(conn: sqlite3.Connection) -> dict[str, StructureNode]:
    trees: dict[str, StructureNode] = {}
    nodes: dict[int, StructureNode] = {}
    current = None
    for row in conn.execute("SELECT * FROM nodes ORDER BY document_id, node_index"):
        if row["document_id"] != current:
            current = row["document_id"]
            nodes = {}
        node = StructureNode(
            kind=NodeKind(row["kind"]),
            text=row["text"],
            start=row["start_char"],
            end=row["end_char"],
            level=row["level"],
            language=row["language"],
            callout=row["callout"],
        )
        nodes[row["node_index"]] = node
        if row["parent_index"] is None:
            trees[current] = node
        else:
            nodes[row["parent_index"]].children.append(node)
    return trees
