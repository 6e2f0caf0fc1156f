"""Content catalog: documents grouped into categories by directory."""

import json
from pathlib import Path, PurePosixPath

from docweave.snapshot import IndexSnapshot


def title_case(name: str) -> str:
    """``javascript_basics`` / ``java-basics`` -> ``Javascript Basics``."""
    words = name.replace("-", "_").split("_")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def _new_category(dir_name: str) -> dict:
    return {"id": dir_name, "name": title_case(dir_name), "subcategories": [], "files": []}


def build_catalog(snapshot: IndexSnapshot) -> dict:
    """Build a ``{"categories": [...], "files": [...]}`` tree.

    Blobs at the ingestion root land in the top-level ``files`` list; a blob
    holding several documents contributes one entry per document.
    """
    root = _new_category("")
    lookup = {(): root}

    ordered = sorted(snapshot.documents.values(), key=lambda d: (d.blob_path, d.ordinal))
    for doc in ordered:
        parts = PurePosixPath(doc.blob_path).parent.parts
        parent = root
        for depth in range(1, len(parts) + 1):
            key = parts[:depth]
            if key not in lookup:
                lookup[key] = _new_category(parts[depth - 1])
                parent["subcategories"].append(lookup[key])
            parent = lookup[key]

        parent["files"].append(
            {
                "id": doc.id,
                "path": doc.blob_path,
                "title": doc.title,
                "description": doc.metadata.description if doc.metadata else "",
            }
        )

    _sort(root)
    return {"categories": root["subcategories"], "files": root["files"]}


def _sort(category: dict) -> None:
    category["subcategories"].sort(key=lambda c: c["name"])
    for sub in category["subcategories"]:
        _sort(sub)


def write_catalog(snapshot: IndexSnapshot, output: Path | str) -> dict:
    """Write the catalog as pretty-printed JSON and return it."""
    catalog = build_catalog(snapshot)
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(catalog, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return catalog
