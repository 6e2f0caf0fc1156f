"""Database schema for .weave index files."""

SCHEMA_VERSION = "1"

SCHEMA = """
-- Raw blobs: one row per ingested source file
CREATE TABLE IF NOT EXISTS blobs (
    path TEXT PRIMARY KEY,
    byte_length INTEGER NOT NULL,
    ingested_at TEXT NOT NULL
);

-- Documents segmented from blobs
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    blob_path TEXT NOT NULL,
    ordinal INTEGER NOT NULL,
    title TEXT NOT NULL,
    text TEXT NOT NULL,
    status TEXT NOT NULL,
    metadata TEXT,             -- JSON, NULL until parsed
    UNIQUE (blob_path, ordinal),
    FOREIGN KEY (blob_path) REFERENCES blobs(path)
);

-- Structure nodes, stored in document (pre-)order
CREATE TABLE IF NOT EXISTS nodes (
    document_id TEXT NOT NULL,
    node_index INTEGER NOT NULL,
    parent_index INTEGER,      -- NULL for the root
    kind TEXT NOT NULL,
    level INTEGER NOT NULL DEFAULT 0,
    text TEXT NOT NULL,
    start_char INTEGER NOT NULL,
    end_char INTEGER NOT NULL,
    language TEXT,
    callout TEXT,
    PRIMARY KEY (document_id, node_index),
    FOREIGN KEY (document_id) REFERENCES documents(id)
);

-- Postings: positions are a JSON array of token ordinals
CREATE TABLE IF NOT EXISTS postings (
    term TEXT NOT NULL,
    field TEXT NOT NULL,
    document_id TEXT NOT NULL,
    frequency INTEGER NOT NULL,
    positions TEXT NOT NULL,
    PRIMARY KEY (term, field, document_id),
    FOREIGN KEY (document_id) REFERENCES documents(id)
);

-- Relation edges (source < target)
CREATE TABLE IF NOT EXISTS edges (
    source TEXT NOT NULL,
    target TEXT NOT NULL,
    kind TEXT NOT NULL,
    strength REAL NOT NULL,
    PRIMARY KEY (source, target)
);

-- Metadata table: build configuration and provenance
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_documents_blob ON documents(blob_path);
CREATE INDEX IF NOT EXISTS idx_postings_document ON postings(document_id);
CREATE INDEX IF NOT EXISTS idx_nodes_document ON nodes(document_id);
"""
