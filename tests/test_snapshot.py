"""Tests for immutable snapshots and the swapping holder."""

import threading

import pytest

from docweave.errors import NotFound
from docweave.snapshot import IndexSnapshot, SnapshotHolder


class TestIndexSnapshot:
    """Test IndexSnapshot"""

    def test_mappings_are_read_only(self, snapshot):
        with pytest.raises(TypeError):
            snapshot.documents["new#0"] = None

    def test_document_lookup(self, snapshot):
        assert snapshot.document("notes.txt#0").blob_path == "notes.txt"
        with pytest.raises(NotFound):
            snapshot.document("absent#0")

    def test_edges_for_both_endpoints(self, snapshot):
        edges = snapshot.edges_for("python/async.md#0")

        assert len(edges) == 2
        assert snapshot.edges_for("notes.txt#0") == ()

    def test_empty_snapshot(self):
        empty = IndexSnapshot.empty()

        assert len(empty.documents) == 0
        assert empty.index.document_count == 0


class TestSnapshotHolder:
    """Test SnapshotHolder.swap()"""

    def test_swap_returns_previous(self, snapshot):
        holder = SnapshotHolder()
        first = holder.current

        previous = holder.swap(snapshot)

        assert previous is first
        assert holder.current is snapshot
        assert holder.generation == 1

    def test_concurrent_swaps_are_counted(self, snapshot):
        holder = SnapshotHolder()
        threads = [threading.Thread(target=holder.swap, args=(snapshot,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert holder.generation == 8
        assert holder.current is snapshot
