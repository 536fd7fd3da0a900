"""Tests for splitting files into passages."""

import pytest

from passage_sync.core.chunker import (
    CONTINUED_SUFFIX,
    Chunk,
    chunk_file,
    file_header,
)


def substantive_lines(text: str) -> list[str]:
    return [line.rstrip() for line in text.split("\n") if line.strip()]


def paragraphs(count: int, width: int = 60) -> str:
    return "\n\n".join(
        "\n".join(f"p{i} line {j} " + "x" * width for j in range(3))
        for i in range(count)
    )


class TestEmptyContent:
    """Blank files produce no passages."""

    @pytest.mark.parametrize("content", ["", " ", "\n\n", "\t \n  \n"])
    def test_blank_content_returns_no_chunks(self, content):
        """Test that empty or whitespace-only content yields nothing."""
        assert chunk_file("src/app.py", content) == []


class TestSingleChunk:
    """Small files fit into one passage."""

    def test_short_file_is_one_chunk(self):
        """Test that a short file produces exactly one chunk."""
        content = "def main():\n    return 1\n"

        chunks = chunk_file("src/app.py", content)

        assert len(chunks) == 1
        assert "src/app.py" in chunks[0].text
        assert "def main():\n    return 1" in chunks[0].text
        assert chunks[0].source_path == "src/app.py"

    def test_header_format(self):
        """Test the header line and separator."""
        chunks = chunk_file("README.md", "# Title")

        assert chunks[0].text == "FILE: README.md\n\n# Title"
        assert chunks[0].body == "# Title"
        assert not chunks[0].is_continuation

    def test_leading_blank_lines_are_stripped(self):
        """Test that blank lines before the first content are dropped."""
        chunks = chunk_file("a.txt", "\n\n  \nhello\n\n")

        assert chunks[0].body == "hello"

    def test_exact_fit_stays_single(self):
        """Test a file whose chunk is exactly max_chars long."""
        header = file_header("a.txt") + "\n\n"
        content = "y" * (100 - len(header))

        chunks = chunk_file("a.txt", content, max_chars=100)

        assert len(chunks) == 1
        assert len(chunks[0].text) == 100


class TestMultipleChunks:
    """Large files are split across several passages."""

    def test_every_chunk_respects_max_chars(self):
        """Test that no chunk exceeds the size bound."""
        chunks = chunk_file("big.py", paragraphs(40), max_chars=500)

        assert len(chunks) > 1
        assert all(len(chunk.text) <= 500 for chunk in chunks)

    def test_continuation_headers(self):
        """Test that only the first chunk uses the plain header."""
        chunks = chunk_file("big.py", paragraphs(40), max_chars=500)

        assert chunks[0].text.startswith("FILE: big.py\n\n")
        assert not chunks[0].is_continuation
        for chunk in chunks[1:]:
            assert chunk.text.startswith(f"FILE: big.py{CONTINUED_SUFFIX}\n\n")
            assert chunk.is_continuation

    def test_round_trip_preserves_lines_in_order(self):
        """Test that chunk bodies reproduce every substantive line once."""
        content = "#!/usr/bin/env python\n\n" + paragraphs(25) + "\n\n\n\ntrailer\n"

        chunks = chunk_file("big.py", content, max_chars=400)

        rebuilt = [line for chunk in chunks for line in substantive_lines(chunk.body)]
        assert rebuilt == substantive_lines(content)

    def test_oversized_paragraph_splits_at_lines(self):
        """Test that a paragraph larger than a chunk is split by lines."""
        content = "\n".join(f"line {i:03d} " + "z" * 40 for i in range(50))

        chunks = chunk_file("one_block.txt", content, max_chars=300)

        assert len(chunks) > 1
        assert all(len(chunk.text) <= 300 for chunk in chunks)
        rebuilt = [line for chunk in chunks for line in substantive_lines(chunk.body)]
        assert rebuilt == substantive_lines(content)

    def test_overlong_line_is_sliced(self):
        """Test that a single line longer than a chunk is cut into pieces."""
        content = "q" * 1000

        chunks = chunk_file("min.js", content, max_chars=200)

        assert all(len(chunk.text) <= 200 for chunk in chunks)
        assert "".join(chunk.body for chunk in chunks) == content

    def test_chunks_are_deterministic(self):
        """Test that chunking the same input twice gives equal results."""
        content = paragraphs(30)

        assert chunk_file("a.py", content, 450) == chunk_file("a.py", content, 450)


class TestChunk:
    """Tests for the Chunk record."""

    def test_body_without_separator(self):
        """Test body of text that has no header separator."""
        assert Chunk(text="FILE: a", source_path="a").body == ""

    def test_file_header(self):
        assert file_header("x/y.py") == "FILE: x/y.py"
        assert file_header("x/y.py", continued=True) == "FILE: x/y.py (continued)"
