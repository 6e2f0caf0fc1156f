"""Protocol for raw blob sources."""

from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol, runtime_checkable

from docweave.errors import IngestionFailure
from docweave.models import RawBlob

FailureCallback = Callable[[IngestionFailure], None]


@runtime_checkable
class Ingester(Protocol):
    """Protocol for input source handlers.

    Implementations handle different containers (folder, zip).
    Uses structural subtyping - no inheritance required.
    """

    @property
    def source_type(self) -> str:
        """Return identifier for this source type (e.g., 'zip', 'folder')."""
        ...

    def can_handle(self, source: Path) -> bool:
        """Check if this ingester can process the given source."""
        ...

    def ingest(
        self, source: Path, on_error: Optional[FailureCallback] = None
    ) -> Iterator[RawBlob]:
        """Yield raw blobs from the source.

        Blobs that cannot be read are reported to ``on_error`` and skipped.
        """
        ...
