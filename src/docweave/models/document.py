"""Core data models for raw blobs and the documents segmented from them."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class RawBlob:
    """One ingested source file, possibly holding several documents."""

    path: str
    text: str
    byte_length: int
    ingested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def id(self) -> str:
        return self.path


@dataclass(frozen=True)
class DocumentStub:
    """A span of a blob produced by the segmenter, before parsing."""

    ordinal: int
    text: str
    start: int
    end: int


class ParseStatus(str, Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentMetadata:
    """Flat metadata record extracted by the structural parser."""

    title: str
    word_count: int = 0
    code_languages: tuple[str, ...] = ()
    outline: tuple[tuple[int, str, str], ...] = ()  # (level, text, anchor)
    malformed: bool = False
    issues: tuple[str, ...] = ()
    description: str = ""
    reading_minutes: int = 1
    callouts: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["code_languages"] = list(self.code_languages)
        data["outline"] = [
            {"level": level, "text": text, "anchor": anchor}
            for level, text, anchor in self.outline
        ]
        data["issues"] = list(self.issues)
        data["callouts"] = list(self.callouts)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentMetadata":
        return cls(
            title=data["title"],
            word_count=data.get("word_count", 0),
            code_languages=tuple(data.get("code_languages", ())),
            outline=tuple(
                (item["level"], item["text"], item["anchor"])
                for item in data.get("outline", ())
            ),
            malformed=data.get("malformed", False),
            issues=tuple(data.get("issues", ())),
            description=data.get("description", ""),
            reading_minutes=data.get("reading_minutes", 1),
            callouts=tuple(data.get("callouts", ())),
        )


def make_document_id(blob_path: str, ordinal: int) -> str:
    """Positional identity: blob path plus ordinal within the blob."""
    return f"{blob_path}#{ordinal}"


@dataclass(frozen=True)
class Document:
    """A segmented, independently addressable article."""

    blob_path: str
    ordinal: int
    text: str
    title: str = ""
    status: ParseStatus = ParseStatus.UNPARSED
    metadata: Optional[DocumentMetadata] = None

    @property
    def id(self) -> str:
        return make_document_id(self.blob_path, self.ordinal)

    @property
    def malformed(self) -> bool:
        return bool(self.metadata and self.metadata.malformed)
