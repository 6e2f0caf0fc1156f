"""Tests for tokenization, per-document postings and the inverted index."""

import math

import pytest

from docweave.indexing import InvertedIndex, TokenIndexer, Tokenizer, flatten_tree
from docweave.parsing import MarkdownParser


def postings_of(doc_id, text):
    tree = MarkdownParser().parse(text).tree
    return TokenIndexer().index(doc_id, tree)


class TestTokenizer:
    """Test Tokenizer"""

    def test_lowercases_and_splits_on_punctuation(self):
        assert Tokenizer().tokenize("Hello, World! snake_case x2y") == ["hello", "world", "snake", "case", "x2y"]

    def test_drops_short_and_stop_words(self):
        assert Tokenizer().tokenize("a cat is on the mat") == ["cat", "mat"]

    def test_extra_stopwords_and_min_length(self):
        tokenizer = Tokenizer(min_length=4, extra_stopwords=["Python"])

        assert tokenizer.tokenize("Python code runs fast") == ["code", "runs", "fast"]

    def test_token_spans(self):
        text = "Event loop"
        spans = [(t.term, text[t.start : t.end]) for t in Tokenizer().tokens(text)]

        assert spans == [("event", "Event"), ("loop", "loop")]


class TestTokenIndexer:
    """Test TokenIndexer"""

    def test_fence_language_is_indexed_in_code_field(self):
        """An unclosed python fence still yields code:python postings"""
        postings = postings_of("d#0", "```python\nprint(1)")
        by_term = {(p.term, p.field) for p in postings}

        assert ("python", "code:python") in by_term
        assert ("print", "code:python") in by_term

    def test_prose_and_code_fields_are_separate(self):
        text = "# Loop\n\nloop forever\n\n```js\nloop()\n```\n"
        tree = MarkdownParser().parse(text).tree

        assert flatten_tree(tree) == {"text": "Loop\nloop forever", "code:js": "js\nloop()"}

    def test_frequency_equals_positions(self):
        postings = postings_of("d#0", "# Cache\n\ncache the cache, then evict the cache")
        (cache,) = [p for p in postings if p.term == "cache"]

        assert cache.positions == (0, 1, 2, 4)
        assert cache.frequency == len(cache.positions) == 4

    def test_indexing_is_idempotent(self):
        text = "# Title\n\nSome words here and some more words.\n\n```sh\necho words\n```"
        assert postings_of("d#0", text) == postings_of("d#0", text)

    def test_postings_are_sorted(self):
        postings = postings_of("d#0", "zeta alpha\n\n```go\nbeta\n```")
        keys = [(p.term, p.field) for p in postings]

        assert keys == sorted(keys)


@pytest.fixture
def index():
    idx = InvertedIndex()
    idx.add_document("a#0", postings_of("a#0", "apple banana apple"))
    idx.add_document("b#0", postings_of("b#0", "banana cherry"))
    idx.add_document("c#0", postings_of("c#0", "cherry apple\n\n```py\ncherry pie\n```"))
    return idx


class TestInvertedIndex:
    """Test InvertedIndex"""

    def test_counts(self, index):
        assert index.document_count == 3
        assert index.document_frequency("apple") == 2
        assert index.term_frequency("apple", "a#0") == 2
        assert index.term_frequency("cherry", "c#0") == 2
        assert index.term_frequency("cherry", "c#0", fields=("text",)) == 1
        assert index.term_frequency("cherry", "c#0", fields=("code:",)) == 1

    def test_idf_is_smoothed(self, index):
        assert index.idf("apple") == pytest.approx(math.log(4 / 3) + 1)
        assert index.idf("missing") == pytest.approx(math.log(4) + 1)

    def test_rank_orders_by_score(self, index):
        ranked = index.rank(["apple"])

        assert [doc for doc, _ in ranked] == ["a#0", "c#0"]
        assert ranked[0][1] == pytest.approx(2 * (math.log(4 / 3) + 1))

    def test_rank_ties_break_by_document_id(self):
        idx = InvertedIndex()
        for doc_id in ["z#0", "m#0", "b#0"]:
            idx.add_document(doc_id, postings_of(doc_id, "shared term"))

        assert [doc for doc, _ in idx.rank(["shared"])] == ["b#0", "m#0", "z#0"]

    def test_rank_ignores_unknown_terms_and_duplicates(self, index):
        assert index.rank(["nothing"]) == []
        assert index.rank(["banana", "banana"]) == index.rank(["banana"])

    def test_rank_restricted_to_fields(self, index):
        assert [doc for doc, _ in index.rank(["pie"], fields=["text"])] == []
        assert [doc for doc, _ in index.rank(["pie"], fields=["code:py"])] == ["c#0"]

    def test_phrase_match(self, index):
        assert index.phrase_match(["apple", "banana"], "a#0")
        assert not index.phrase_match(["banana", "cherry"], "a#0")
        assert index.phrase_match(["cherry", "pie"], "c#0")
        assert not index.phrase_match(["cherry", "pie"], "c#0", fields=("text",))
        assert index.phrase_match(["cherry", "pie"], "c#0", fields=("code:",))
        assert not index.phrase_match([], "a#0")

    def test_add_document_replaces(self, index):
        index.add_document("a#0", postings_of("a#0", "durian"))

        assert index.document_frequency("apple") == 1
        assert index.rank(["durian"])[0][0] == "a#0"
        assert [p.term for p in index.postings_for("a#0")] == ["durian"]

    def test_remove_document_drops_orphan_terms(self, index):
        index.remove_document("b#0")

        assert index.document_count == 2
        assert index.document_frequency("banana") == 1
        index.remove_document("a#0")
        assert "banana" not in {p.term for p in index.all_postings()}

    def test_all_postings_order(self, index):
        keys = [(p.term, p.field, p.document_id) for p in index.all_postings()]

        assert keys == sorted(keys)
        assert len(index) == len({k[0] for k in keys})
