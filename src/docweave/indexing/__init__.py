"""Tokenization, inverted index, cross-references and section dedup."""

from docweave.indexing.dedup import find_duplicate_sections
from docweave.indexing.inverted_index import InvertedIndex, TokenIndexer, flatten_tree
from docweave.indexing.resolver import CrossReferenceResolver, topical_features
from docweave.indexing.tokenizer import STOPWORDS, Tokenizer

__all__ = [
    "Tokenizer",
    "STOPWORDS",
    "TokenIndexer",
    "InvertedIndex",
    "flatten_tree",
    "CrossReferenceResolver",
    "topical_features",
    "find_duplicate_sections",
]
