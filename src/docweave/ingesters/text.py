"""Helpers shared by ingesters: path filtering and text decoding."""

from pathlib import PurePath

from docweave.errors import IngestionFailure

SKIP_PARTS = frozenset(
    {
        "__pycache__",
        "node_modules",
        "venv",
        "env",
        "dist",
        "build",
        "site-packages",
    }
)


def should_skip(path: PurePath) -> bool:
    """Skip hidden files/folders, build artifacts and vendored trees."""
    return any(part.startswith(".") or part in SKIP_PARTS for part in path.parts)


def has_extension(path: PurePath, extensions: tuple[str, ...]) -> bool:
    return path.suffix.lower() in extensions


def decode_blob(path: str, raw: bytes) -> str:
    """Decode raw bytes as UTF-8 text.

    Raises:
        IngestionFailure: If the content is binary or not valid UTF-8
    """
    if b"\x00" in raw[:8192]:
        raise IngestionFailure(path, "binary content")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IngestionFailure(path, f"not valid UTF-8 ({e.reason} at byte {e.start})") from e
    return text.removeprefix("\ufeff")
