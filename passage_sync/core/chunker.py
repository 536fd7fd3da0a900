"""Split file content into passage-sized chunks.

Every chunk starts with a header line naming the source file so that a passage
retrieved on its own still says where it came from. Content is split at blank
lines first, then at line breaks, and only as a last resort inside a line.
"""

import re
from dataclasses import dataclass

FILE_PREFIX = "FILE: "
CONTINUED_SUFFIX = " (continued)"
DEFAULT_MAX_CHARS = 2000

_SECTION_BREAK = re.compile(r"\n{2,}")
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\n)+")
_HEADER_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class Chunk:
    """A single chunk of a file, ready to become a passage."""

    text: str
    source_path: str

    @property
    def body(self) -> str:
        """Chunk text without the header line."""
        _, _, body = self.text.partition(_HEADER_SEPARATOR)
        return body

    @property
    def is_continuation(self) -> bool:
        header, _, _ = self.text.partition("\n")
        return header.endswith(CONTINUED_SUFFIX)


def file_header(file_path: str, continued: bool = False) -> str:
    """Return the header line used for chunks of ``file_path``."""
    header = f"{FILE_PREFIX}{file_path}"
    if continued:
        header += CONTINUED_SUFFIX
    return header


def chunk_file(
    file_path: str, content: str, max_chars: int = DEFAULT_MAX_CHARS
) -> list[Chunk]:
    """Split a file into chunks that each fit within ``max_chars``.

    Args:
        file_path: Path used in the header of every chunk
        content: Raw file content
        max_chars: Upper bound on the length of each chunk, header included

    Returns:
        Ordered list of chunks. Empty when the content is blank.
    """
    if not content.strip():
        return []

    body = _LEADING_BLANK_LINES.sub("", content).rstrip()
    single = f"{file_header(file_path)}{_HEADER_SEPARATOR}{body}"
    if len(single) <= max_chars:
        return [Chunk(text=single, source_path=file_path)]

    # The continuation header is the longer of the two, so budgeting against it
    # keeps the first chunk within bounds as well.
    overhead = len(file_header(file_path, continued=True)) + len(_HEADER_SEPARATOR)
    budget = max(1, max_chars - overhead)

    bodies = _pack(_pieces(body, budget), budget)
    return [
        Chunk(
            text=f"{file_header(file_path, continued=index > 0)}{_HEADER_SEPARATOR}{text}",
            source_path=file_path,
        )
        for index, text in enumerate(bodies)
    ]


def _pieces(body: str, budget: int) -> list[str]:
    """Break ``body`` into paragraph-sized pieces no longer than ``budget``."""
    pieces: list[str] = []
    for section in _SECTION_BREAK.split(body):
        section = section.rstrip()
        if not section.strip():
            continue
        if len(section) <= budget:
            pieces.append(section)
            continue
        pieces.extend(_split_lines(section, budget))
    return pieces


def _split_lines(section: str, budget: int) -> list[str]:
    """Split an oversized section at line breaks, slicing overlong lines."""
    parts: list[str] = []
    current = ""
    for line in section.split("\n"):
        if len(line) > budget:
            if current:
                parts.append(current)
                current = ""
            parts.extend(line[start : start + budget] for start in range(0, len(line), budget))
            continue
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > budget:
            parts.append(current)
            candidate = line
        current = candidate
    if current:
        parts.append(current)
    return [part for part in parts if part.strip()]


def _pack(pieces: list[str], budget: int) -> list[str]:
    """Greedily join pieces with blank lines while staying within ``budget``."""
    bodies: list[str] = []
    current = ""
    for piece in pieces:
        candidate = f"{current}\n\n{piece}" if current else piece
        if current and len(candidate) > budget:
            bodies.append(current)
            candidate = piece
        current = candidate
    if current:
        bodies.append(current)
    return bodies
