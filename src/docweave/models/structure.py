"""Structure tree produced by the markdown parser."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class NodeKind(str, Enum):
    ROOT = "root"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE = "code"
    BLOCKQUOTE = "blockquote"
    LIST_ITEM = "list_item"


def slugify(text: str) -> str:
    """Turn heading text into a URL anchor ("Getting Started!" -> "getting-started")."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


@dataclass
class StructureNode:
    """A node of a document's heading/content tree.

    ``start``/``end`` are character offsets into the document text.
    """

    kind: NodeKind
    text: str = ""
    start: int = 0
    end: int = 0
    level: int = 0
    language: Optional[str] = None
    callout: Optional[str] = None
    children: list["StructureNode"] = field(default_factory=list)

    @property
    def anchor(self) -> Optional[str]:
        if self.kind is not NodeKind.HEADING:
            return None
        return slugify(self.text)

    def walk(self) -> Iterator["StructureNode"]:
        """Yield this node and its descendants in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def headings_only(self) -> "StructureNode":
        """Return a copy of this tree keeping only heading nodes.

        Headings are only ever children of the root or of other headings,
        so nesting is preserved as-is.
        """
        copy = StructureNode(
            kind=self.kind,
            text=self.text,
            start=self.start,
            end=self.end,
            level=self.level,
        )
        for child in self.children:
            if child.kind is NodeKind.HEADING:
                copy.children.append(child.headings_only())
        return copy

    def to_dict(self) -> dict:
        data = {
            "kind": self.kind.value,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "level": self.level,
            "children": [child.to_dict() for child in self.children],
        }
        if self.kind is NodeKind.HEADING:
            data["anchor"] = self.anchor
        if self.language is not None:
            data["language"] = self.language
        if self.callout is not None:
            data["callout"] = self.callout
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StructureNode":
        return cls(
            kind=NodeKind(data["kind"]),
            text=data.get("text", ""),
            start=data.get("start", 0),
            end=data.get("end", 0),
            level=data.get("level", 0),
            language=data.get("language"),
            callout=data.get("callout"),
            children=[cls.from_dict(child) for child in data.get("children", [])],
        )
