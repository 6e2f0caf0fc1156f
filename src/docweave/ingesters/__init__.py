"""Input source handlers (ingesters) for docweave."""

from pathlib import Path
from typing import Iterable, Optional

from docweave.ingesters.folder_ingester import FolderIngester
from docweave.ingesters.zip_ingester import ZipIngester
from docweave.protocols import Ingester

# Extra ingesters registered by plugins, tried before the built-ins.
_REGISTERED: list[Ingester] = []


def get_ingester(
    source: Path | str, extensions: Iterable[str] = (".md", ".markdown", ".txt")
) -> Optional[Ingester]:
    """Find an ingester that can handle the given source.

    Args:
        source: Path to the input source (folder or zip file)
        extensions: File extensions treated as raw blobs

    Returns:
        An Ingester instance that can handle the source, or None
    """
    source_path = Path(source)
    extensions = tuple(extensions)
    candidates = [*_REGISTERED, ZipIngester(extensions), FolderIngester(extensions)]
    for ingester in candidates:
        if ingester.can_handle(source_path):
            return ingester
    return None


def register_ingester(ingester: Ingester) -> None:
    """Register a custom ingester (for plugins/extensions).

    Args:
        ingester: An object implementing the Ingester protocol
    """
    _REGISTERED.append(ingester)


__all__ = ["get_ingester", "register_ingester", "ZipIngester", "FolderIngester"]
