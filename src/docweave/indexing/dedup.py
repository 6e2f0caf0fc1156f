"""Detect sections repeated across (or within) documents."""

import hashlib
from collections import defaultdict
from typing import Iterable, Iterator, Mapping

from docweave.models import DuplicateGroup, NodeKind, SectionLocation, StructureNode


def iter_sections(tree: StructureNode) -> Iterator[tuple[StructureNode, str]]:
    """Yield (heading, section text) for every heading in the tree.

    A section is the heading text followed by the heading's own non-heading
    content; nested sub-sections belong to their own heading.
    """
    for node in tree.walk():
        if node.kind is not NodeKind.HEADING:
            continue
        body = [child.text for child in node.children if child.kind is not NodeKind.HEADING]
        yield node, "\n".join([node.text, *body])


def fingerprint(text: str) -> str:
    normalized = " ".join(text.lower().split())
    return hashlib.sha1(normalized.encode("utf-8")).hexdigest()


def find_duplicate_sections(
    trees: Mapping[str, StructureNode], min_words: int = 20
) -> list[DuplicateGroup]:
    """Group sections with identical normalized text.

    Args:
        trees: Structure tree per document ID
        min_words: Sections shorter than this are ignored

    Returns:
        Groups with more than one location, ordered by fingerprint
    """
    found: dict[str, list[SectionLocation]] = defaultdict(list)
    meta: dict[str, tuple[str, int]] = {}

    for doc_id in sorted(trees):
        for heading, text in iter_sections(trees[doc_id]):
            words = len(text.split())
            if words < min_words:
                continue
            key = fingerprint(text)
            meta.setdefault(key, (heading.text, words))
            section_end = _section_end(heading)
            found[key].append(SectionLocation(doc_id, heading.text, heading.start, section_end))

    return [
        DuplicateGroup(key, meta[key][0], meta[key][1], tuple(locations))
        for key, locations in sorted(found.items())
        if len(locations) > 1
    ]


def _section_end(heading: StructureNode) -> int:
    end = heading.end
    for child in heading.children:
        if child.kind is not NodeKind.HEADING:
            end = max(end, child.end)
    return end


def duplicate_locations(groups: Iterable[DuplicateGroup], document_id: str) -> list[DuplicateGroup]:
    return [g for g in groups if any(loc.document_id == document_id for loc in g.locations)]
