"""Ingester for ZIP archive files."""

import logging
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Optional

from docweave.errors import IngestionFailure
from docweave.ingesters.text import decode_blob, has_extension, should_skip
from docweave.models import RawBlob
from docweave.protocols.ingester import FailureCallback

logger = logging.getLogger(__name__)


class ZipIngester:
    """Ingester for ZIP archive files."""

    source_type = "zip"

    def __init__(self, extensions: Iterable[str] = (".md", ".markdown", ".txt")):
        self.extensions = tuple(e.lower() for e in extensions)

    def can_handle(self, source: Path) -> bool:
        """Check if this is a zip file."""
        return source.suffix.lower() == ".zip" and source.is_file()

    def ingest(
        self, source: Path, on_error: Optional[FailureCallback] = None
    ) -> Iterator[RawBlob]:
        """Yield raw blobs from a ZIP archive, in sorted member order.

        Args:
            source: Path to the ZIP file
            on_error: Called with an IngestionFailure for each unreadable member

        Yields:
            RawBlob objects for each matching text member
        """
        with zipfile.ZipFile(source, "r") as zf:
            for info in sorted(zf.infolist(), key=lambda i: i.filename):
                if info.is_dir():
                    continue

                member = PurePosixPath(info.filename)
                if should_skip(member) or not has_extension(member, self.extensions):
                    continue

                try:
                    raw = zf.read(info.filename)
                    text = decode_blob(info.filename, raw)
                except (
                    zipfile.BadZipFile,
                    OSError,
                    EOFError,
                    zlib.error,
                    NotImplementedError,
                    RuntimeError,
                ) as e:
                    # zipfile reports unsupported compression and encrypted members this way.
                    failure = IngestionFailure(info.filename, str(e))
                except IngestionFailure as e:
                    failure = e
                else:
                    yield RawBlob(path=member.as_posix(), text=text, byte_length=info.file_size)
                    continue

                logger.warning("Skipping %s: %s", failure.path, failure.reason)
                if on_error is not None:
                    on_error(failure)
