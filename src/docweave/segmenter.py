"""Split raw blobs into document spans on a literal separator."""

from docweave.models import DocumentStub


def segment(text: str, separator: str) -> list[DocumentStub]:
    """Split ``text`` on every exact occurrence of ``separator``.

    N occurrences give N+1 candidate spans. Each span is whitespace-trimmed
    and empty spans are dropped; ordinals count only the kept spans. Offsets
    point at the trimmed span inside ``text``.

    Args:
        text: The raw blob content
        separator: Literal separator token (never interpreted as a regex)

    Returns:
        Document stubs in blob order
    """
    stubs: list[DocumentStub] = []
    offset = 0

    for span in text.split(separator) if separator else [text]:
        span_start = offset
        offset += len(span) + len(separator)

        stripped = span.strip()
        if not stripped:
            continue

        start = span_start + (len(span) - len(span.lstrip()))
        stubs.append(
            DocumentStub(
                ordinal=len(stubs),
                text=stripped,
                start=start,
                end=start + len(stripped),
            )
        )

    return stubs


def count_candidates(text: str, separator: str) -> int:
    """Number of spans before empty ones are dropped."""
    return text.count(separator) + 1 if separator else 1
