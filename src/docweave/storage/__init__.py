"""SQLite persistence for built index snapshots."""

from docweave.storage.store import IndexStore

__all__ = ["IndexStore"]
