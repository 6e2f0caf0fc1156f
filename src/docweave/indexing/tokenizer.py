"""Term normalization shared by the indexer, the resolver and queries."""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

# Runs of letters/digits in any script; underscores count as boundaries.
_TOKEN_RE = re.compile(r"[^\W_]+")

STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from",
        "has", "have", "if", "in", "into", "is", "it", "its", "of", "on", "or",
        "so", "that", "the", "their", "then", "there", "these", "this", "to",
        "was", "we", "were", "will", "with", "you", "your",
    }
)


@dataclass(frozen=True)
class Token:
    term: str
    start: int
    end: int


class Tokenizer:
    """Split on non-alphanumeric boundaries, lowercase, drop short and stop words."""

    def __init__(self, min_length: int = 2, extra_stopwords: Iterable[str] = ()):
        self.min_length = min_length
        self.stopwords = STOPWORDS | {w.lower() for w in extra_stopwords}

    def tokens(self, text: str) -> Iterator[Token]:
        """Yield kept tokens with their character spans in ``text``."""
        for match in _TOKEN_RE.finditer(text):
            term = match.group().lower()
            if len(term) < self.min_length or term in self.stopwords:
                continue
            yield Token(term, match.start(), match.end())

    def tokenize(self, text: str) -> list[str]:
        return [token.term for token in self.tokens(text)]
