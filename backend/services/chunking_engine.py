"""Structure-aware chunking engine with section and page tagging."""
import bisect
import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from models.chunk import Chunk, ChunkMetadata
from models.document import Page
from config import CHARS_PER_TOKEN, CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

MIN_HEADING_LENGTH = 3
MAX_HEADING_LENGTH = 120
MAX_SECTION_HEADER_LENGTH = 100

# Break search window around the target offset
BREAK_LOOKBEHIND_CHARS = 400
BREAK_LOOKAHEAD_CHARS = 200

_MARKDOWN_HEADING = re.compile(r"#{1,4}\s+.+")
_FORMAL_LABEL = re.compile(r"(?:CHAPTER|SECTION|PART|ARTICLE)\s+\w+", re.IGNORECASE)
_NUMBERED_HEADING = re.compile(r"\d+(?:\.\d+)*\s+[A-Z].+")
_ALL_CAPS_LINE = re.compile(r"[A-Z][A-Z\s]{4,}")
_STRUCTURE_KEYWORD = re.compile(
    r"(?:Introduction|Conclusion|Summary|Abstract|Appendix|References|Table of Contents)",
    re.IGNORECASE,
)
_HEADING_HASHES = re.compile(r"^#{1,4}\s+")

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"[.!?]\s+")


def is_markdown_heading(line: str) -> bool:
    """`# Title` through `#### Title`."""
    return _MARKDOWN_HEADING.match(line) is not None


def is_formal_label(line: str) -> bool:
    """`CHAPTER 3`, `Section IV`, `Part One`, `Article 12`."""
    return _FORMAL_LABEL.match(line) is not None


def is_numbered_heading(line: str) -> bool:
    """`12.3 Title` style numbering followed by a capitalised word."""
    return _NUMBERED_HEADING.match(line) is not None


def is_all_caps_line(line: str) -> bool:
    return _ALL_CAPS_LINE.fullmatch(line) is not None


def is_structure_keyword(line: str) -> bool:
    return _STRUCTURE_KEYWORD.match(line) is not None


HEADING_RULES: List[Callable[[str], bool]] = [
    is_markdown_heading,
    is_formal_label,
    is_numbered_heading,
    is_all_caps_line,
    is_structure_keyword,
]


def is_heading(line: str) -> bool:
    """Return True if any heading rule accepts the trimmed line."""
    trimmed = line.strip()
    if not MIN_HEADING_LENGTH <= len(trimmed) <= MAX_HEADING_LENGTH:
        return False
    return any(rule(trimmed) for rule in HEADING_RULES)


def extract_heading(line: str) -> str:
    """Heading text without markdown hashes, capped for storage."""
    return _HEADING_HASHES.sub("", line.strip(), count=1)[:MAX_SECTION_HEADER_LENGTH]


def find_break_point(text: str, start: int, target: int) -> int:
    """
    Find the best split offset near `target`.

    Scans the window [max(start, target - 400), min(len, target + 200)) and
    returns the end of the last paragraph break in it, else the end of the
    last sentence break, else `target` itself.

    Args:
        text: Full document text
        start: Offset where the current chunk begins
        target: Preferred end offset

    Returns:
        Offset where the current chunk should end
    """
    search_start = max(start, target - BREAK_LOOKBEHIND_CHARS)
    search_end = min(len(text), target + BREAK_LOOKAHEAD_CHARS)
    window = text[search_start:search_end]

    for pattern in (_PARAGRAPH_BREAK, _SENTENCE_BREAK):
        best_break = -1
        for match in pattern.finditer(window):
            pos = search_start + match.end()
            if start < pos <= target + BREAK_LOOKAHEAD_CHARS:
                best_break = pos
        if best_break > start:
            return best_break

    return target


def page_for_offset(pages: Optional[Sequence[Page]], offset: int) -> Optional[int]:
    """Map a character offset to a page number using cumulative page lengths."""
    if not pages:
        return None

    char_count = 0
    for page in pages:
        char_count += len(page.text)
        if offset < char_count:
            return page.page_number
    return pages[-1].page_number


class ChunkingEngine:
    """Splits document text into overlapping, structure-aware chunks."""

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        chars_per_token: int = CHARS_PER_TOKEN
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in tokens
            chunk_overlap: Overlap between chunks in tokens
            chars_per_token: Characters assumed per token
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be non-negative and smaller than chunk_size")

        self.target_chars = chunk_size * chars_per_token
        self.overlap_chars = chunk_overlap * chars_per_token

    def chunk(self, text: str, pages: Optional[Sequence[Page]] = None) -> List[Chunk]:
        """
        Split text into chunks tagged with page number and section heading.

        Args:
            text: Extracted document text
            pages: Optional per-page texts, in order, used for page tagging

        Returns:
            Chunks in document order with gapless chunk_index from 0
        """
        if not text:
            return []

        heading_offsets, headings = self._index_headings(text)
        text_length = len(text)

        chunks: List[Chunk] = []
        current_section: Optional[str] = None
        start = 0

        while start < text_length:
            target = min(start + self.target_chars, text_length)
            if target >= text_length:
                end = text_length
            else:
                end = find_break_point(text, start, target)

            content = text[start:end].strip()
            if content:
                section = self._section_for_offset(heading_offsets, headings, start)
                if section is None:
                    section = current_section
                current_section = section

                chunks.append(Chunk(
                    content=content,
                    chunk_index=len(chunks),
                    metadata=ChunkMetadata(
                        page=page_for_offset(pages, start),
                        section_header=section
                    )
                ))

            if end >= text_length:
                break

            next_start = end - self.overlap_chars
            previous_window = end - self.target_chars if chunks else 0
            if next_start <= previous_window or next_start <= start:
                next_start = end
            start = next_start

        logger.info(f"Created {len(chunks)} chunks from {text_length} characters")
        return chunks

    @staticmethod
    def _index_headings(text: str) -> Tuple[List[int], List[str]]:
        """Line-start offsets and texts of every heading line, in order."""
        offsets: List[int] = []
        headings: List[str] = []
        offset = 0
        for line in text.split("\n"):
            if is_heading(line):
                offsets.append(offset)
                headings.append(extract_heading(line))
            offset += len(line) + 1
        return offsets, headings

    @staticmethod
    def _section_for_offset(offsets: List[int], headings: List[str], offset: int) -> Optional[str]:
        """Most recent heading starting at or before `offset`."""
        position = bisect.bisect_right(offsets, offset)
        if position == 0:
            return None
        return headings[position - 1]
