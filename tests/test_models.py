"""Unit tests for chunk and document models."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.chunk import Chunk, ChunkMetadata
from models.document import Document, Page


class TestChunkMetadata:
    """Test suite for ChunkMetadata."""

    def test_to_dict_omits_absent_fields(self):
        assert ChunkMetadata().to_dict() == {}
        assert ChunkMetadata(page=3).to_dict() == {"page": 3}
        assert ChunkMetadata(page=3, section_header="Scope").to_dict() == {"page": 3, "section_header": "Scope"}

    def test_from_raw_valid(self):
        assert ChunkMetadata.from_raw({"page": 2, "section_header": "Warranty"}) == ChunkMetadata(
            page=2, section_header="Warranty"
        )

    @pytest.mark.parametrize("raw", [None, "text", 42, ["page", 1], {}])
    def test_from_raw_non_object(self, raw):
        assert ChunkMetadata.from_raw(raw) == ChunkMetadata()

    @pytest.mark.parametrize("page", ["2", 0, -1, True, 2.5, None])
    def test_from_raw_bad_page(self, page):
        assert ChunkMetadata.from_raw({"page": page}).page is None

    @pytest.mark.parametrize("header", ["", 12, ["A"], None])
    def test_from_raw_bad_section(self, header):
        assert ChunkMetadata.from_raw({"section_header": header}).section_header is None

    def test_chunk_default_metadata_not_shared(self):
        first = Chunk(content="a", chunk_index=0)
        second = Chunk(content="b", chunk_index=1)
        first.metadata.page = 1
        assert second.metadata.page is None


class TestDocument:
    """Test suite for Document."""

    def test_text_joins_pages(self):
        document = Document(
            filename="manual.pdf",
            pages=[Page(page_number=1, text="  First page"), Page(page_number=2, text="Second page\n")]
        )

        assert document.total_pages == 2
        assert document.text == "First page\n\nSecond page"

    def test_empty_document(self):
        document = Document(filename="empty.pdf", pages=[])
        assert document.total_pages == 0
        assert document.text == ""
