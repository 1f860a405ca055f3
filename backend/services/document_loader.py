"""Document loading service for PDF processing."""
import logging
from pathlib import Path
from typing import Optional
import fitz  # PyMuPDF
from supabase import Client

from models.document import Document, Page

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Extracts page-by-page text from PDFs on disk, in memory or in storage."""

    def __init__(self, client: Optional[Client] = None, bucket: str = "documents"):
        """
        Initialize DocumentLoader.

        Args:
            client: Supabase client, required only for load_from_storage
            bucket: Storage bucket holding uploaded PDFs
        """
        self.client = client
        self.bucket = bucket

    def load_file(self, path: str) -> Document:
        """Load a PDF from the local filesystem."""
        pdf_path = Path(path)
        return self.load_bytes(pdf_path.read_bytes(), pdf_path.name)

    def load_from_storage(self, storage_path: str) -> Document:
        """
        Download a PDF from Supabase storage and extract its text.

        Raises:
            ValueError: If no Supabase client was configured
            RuntimeError: If the download fails
        """
        if self.client is None:
            raise ValueError("A Supabase client is required to load from storage")

        try:
            data = self.client.storage.from_(self.bucket).download(storage_path)
        except Exception as e:
            error_msg = f"Failed to download PDF from storage: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        if not data:
            raise RuntimeError(f"Storage returned no data for {storage_path}")

        return self.load_bytes(data, Path(storage_path).name)

    def load_bytes(self, data: bytes, filename: str) -> Document:
        """
        Extract text page-by-page from PDF bytes.

        Args:
            data: Raw PDF content
            filename: Name recorded on the Document

        Returns:
            Document with 1-indexed pages
        """
        pdf_document = fitz.open(stream=data, filetype="pdf")
        try:
            pages = [
                Page(page_number=page_num + 1, text=pdf_document[page_num].get_text() or "")
                for page_num in range(len(pdf_document))
            ]
        finally:
            pdf_document.close()

        document = Document(filename=filename, pages=pages)
        logger.info(f"Loaded {filename}: {document.total_pages} pages, {len(document.text)} characters")
        return document
