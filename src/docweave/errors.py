"""Exception hierarchy for docweave."""


class DocWeaveError(Exception):
    """Base class for all docweave errors."""


class ConfigError(DocWeaveError, ValueError):
    """Raised when configuration values are invalid."""


class MalformedDocument(DocWeaveError):
    """A document whose markdown structure is broken (e.g. an unclosed fence).

    Non-fatal: the parser records the problem on the document metadata and
    keeps going. Only a strict parser raises it.
    """

    def __init__(self, message: str, offset: int | None = None):
        super().__init__(message)
        self.offset = offset


class IngestionFailure(DocWeaveError):
    """A raw blob could not be ingested. Fatal for that blob only."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class NotFound(DocWeaveError, LookupError):
    """Raised when a document ID is not present in the index."""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class InvalidQuery(DocWeaveError, ValueError):
    """Raised for empty or unsearchable query text."""

    def __init__(self, query: str, reason: str = "query is empty"):
        super().__init__(f"Invalid query {query!r}: {reason}")
        self.query = query
        self.reason = reason
