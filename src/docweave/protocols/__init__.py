"""Protocol definitions for extensible components."""

from docweave.protocols.ingester import Ingester
from docweave.protocols.parser import DocumentParser

__all__ = ["Ingester", "DocumentParser"]
