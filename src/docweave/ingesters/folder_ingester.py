"""Ingester for local folders."""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from docweave.errors import IngestionFailure
from docweave.ingesters.text import decode_blob, has_extension, should_skip
from docweave.models import RawBlob
from docweave.protocols.ingester import FailureCallback

logger = logging.getLogger(__name__)


class FolderIngester:
    """Ingester for local filesystem folders."""

    source_type = "folder"

    def __init__(self, extensions: Iterable[str] = (".md", ".markdown", ".txt")):
        self.extensions = tuple(e.lower() for e in extensions)

    def can_handle(self, source: Path) -> bool:
        """Check if this is an existing directory."""
        return source.is_dir()

    def ingest(
        self, source: Path, on_error: Optional[FailureCallback] = None
    ) -> Iterator[RawBlob]:
        """Yield raw blobs from a folder recursively, in sorted path order.

        Args:
            source: Path to the folder
            on_error: Called with an IngestionFailure for each unreadable file

        Yields:
            RawBlob objects for each matching text file
        """
        for root, dirs, files in os.walk(source):
            dirs.sort()
            for filename in sorted(files):
                full_path = Path(root) / filename
                rel_path = full_path.relative_to(source)

                if should_skip(rel_path) or not has_extension(rel_path, self.extensions):
                    continue

                blob_path = rel_path.as_posix()
                try:
                    raw = full_path.read_bytes()
                    text = decode_blob(blob_path, raw)
                except OSError as e:
                    self._report(IngestionFailure(blob_path, str(e)), on_error)
                    continue
                except IngestionFailure as failure:
                    self._report(failure, on_error)
                    continue

                yield RawBlob(path=blob_path, text=text, byte_length=len(raw))

    @staticmethod
    def _report(failure: IngestionFailure, on_error: Optional[FailureCallback]) -> None:
        logger.warning("Skipping %s: %s", failure.path, failure.reason)
        if on_error is not None:
            on_error(failure)
