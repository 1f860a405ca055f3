"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ChunkMetadata:
    """Traceability data attached to a chunk."""
    page: Optional[int] = None
    section_header: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage, omitting absent fields."""
        data: Dict[str, Any] = {}
        if self.page is not None:
            data["page"] = self.page
        if self.section_header:
            data["section_header"] = self.section_header
        return data

    @classmethod
    def from_raw(cls, raw: Any) -> "ChunkMetadata":
        """
        Build metadata from a stored value, dropping anything malformed.

        Storage rows may carry null, a non-object, or fields of the wrong
        type; those fields come back as absent rather than raising.
        """
        if not isinstance(raw, dict):
            return cls()

        page = raw.get("page")
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            page = None

        section_header = raw.get("section_header")
        if not isinstance(section_header, str) or not section_header:
            section_header = None

        return cls(page=page, section_header=section_header)


@dataclass
class Chunk:
    """A contiguous span of a document's extracted text."""
    content: str
    chunk_index: int
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)


@dataclass
class RetrievedChunk:
    """Stored chunk plus the relevance score of one retrieval.

    `similarity` is a cosine-like score for vector hits and a text rank for
    lexical-only hits; the two are not comparable without fusion.
    """
    id: str
    document_id: str
    content: str
    chunk_index: int
    metadata: ChunkMetadata
    similarity: float
