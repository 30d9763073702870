"""Tests for text cleaning and chunking."""

import math

import pytest

from supportrag.rag import Chunk, WordChunker, chunk_text, clean_text


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


class TestChunkText:
    """Tests for chunk_text."""

    def test_empty_input(self):
        """Empty input gives no chunks."""
        assert chunk_text("", 500, 50, "f") == []

    def test_whitespace_only_input(self):
        """Whitespace-only input gives no chunks."""
        assert chunk_text("  \n\t ", 500, 50, "f") == []

    def test_short_input_single_chunk(self):
        """Input shorter than chunk_size is one chunk."""
        chunks = chunk_text("a b c", 500, 50, "f")

        assert len(chunks) == 1
        assert chunks[0].content == "a b c"
        assert chunks[0].metadata.chunk_index == 0
        assert chunks[0].metadata.source == "f"
        assert chunks[0].metadata.page_number is None

    @pytest.mark.parametrize(
        "word_count,chunk_size,overlap",
        [
            (10, 4, 1),
            (100, 10, 3),
            (7, 3, 0),
            (501, 500, 50),
            (1000, 500, 50),
            (12, 4, 3),
        ],
    )
    def test_chunk_count(self, word_count, chunk_size, overlap):
        """Chunk count follows the overlap formula."""
        chunks = chunk_text(_words(word_count), chunk_size, overlap, "f")

        expected = math.ceil((word_count - overlap) / (chunk_size - overlap))
        assert len(chunks) == expected

    def test_exact_chunk_size_single_chunk(self):
        """Input of exactly chunk_size words does not leave an overlap-only chunk."""
        chunks = chunk_text(_words(10), 10, 3, "f")
        assert len(chunks) == 1

    def test_reconstruction(self):
        """Dropping each chunk's leading overlap rebuilds the input."""
        text = _words(57)
        overlap = 4
        chunks = chunk_text(text, 10, overlap, "f")

        words = chunks[0].content.split()
        for chunk in chunks[1:]:
            words.extend(chunk.content.split()[overlap:])

        assert words == text.split()

    def test_consecutive_chunks_share_overlap(self):
        """The tail of one chunk starts the next."""
        chunks = chunk_text(_words(30), 8, 2, "f")

        for prev, nxt in zip(chunks, chunks[1:]):
            assert prev.content.split()[-2:] == nxt.content.split()[:2]

    def test_chunk_size_respected(self):
        """No chunk exceeds chunk_size words."""
        chunks = chunk_text(_words(95), 10, 3, "f")
        assert all(len(c.content.split()) <= 10 for c in chunks)

    def test_sequential_indices(self):
        """Chunk indices count up from zero."""
        chunks = chunk_text(_words(40), 10, 2, "doc.txt")
        assert [c.metadata.chunk_index for c in chunks] == list(range(len(chunks)))

    def test_zero_overlap(self):
        """With no overlap, chunks partition the words."""
        chunks = chunk_text(_words(9), 3, 0, "f")

        assert [c.content for c in chunks] == ["w0 w1 w2", "w3 w4 w5", "w6 w7 w8"]

    def test_whitespace_runs_collapsed(self):
        """Words are joined by single spaces."""
        chunks = chunk_text("a   b\n\nc\td", 10, 2, "f")
        assert chunks[0].content == "a b c d"

    def test_page_number_propagated(self):
        """page_number is stored when given."""
        chunks = chunk_text("a b c", 10, 2, "f", page_number=3)
        assert chunks[0].metadata.page_number == 3

    @pytest.mark.parametrize("chunk_size,overlap", [(10, 10), (10, 11), (0, 0), (10, -1)])
    def test_invalid_parameters(self, chunk_size, overlap):
        """Overlap must be below chunk_size and sizes must be valid."""
        with pytest.raises(ValueError):
            chunk_text("a b c", chunk_size, overlap, "f")


class TestCleanText:
    """Tests for clean_text."""

    def test_collapses_spaces(self):
        assert clean_text("a   b \t c") == "a b c"

    def test_collapses_newlines(self):
        assert clean_text("first\n\n\n  second  \n third") == "first\nsecond\nthird"

    def test_trims(self):
        assert clean_text("  \n hello \n ") == "hello"

    def test_empty(self):
        assert clean_text("") == ""


class TestWordChunker:
    """Tests for WordChunker."""

    def test_chunk(self):
        """The chunker cleans then chunks."""
        chunker = WordChunker(chunk_size=3, overlap=1)

        chunks = chunker.chunk("one  two\n\nthree four five", "a.txt")

        assert all(isinstance(c, Chunk) for c in chunks)
        assert [c.content for c in chunks] == ["one two three", "three four five"]
        assert {c.metadata.source for c in chunks} == {"a.txt"}

    def test_invalid_overlap(self):
        """Invalid overlap is rejected at construction."""
        with pytest.raises(ValueError):
            WordChunker(chunk_size=10, overlap=10)
