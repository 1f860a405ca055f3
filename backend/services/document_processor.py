"""Document processing workflow: extract, index and track progress."""
import logging
from dataclasses import dataclass

from services.document_loader import DocumentLoader
from services.document_repository import DocumentRepository
from services.rag_pipeline import RAGPipeline
from config import MIN_EXTRACTED_CHARS

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of processing one document."""
    chunks_inserted: int
    page_count: int


class DocumentProcessor:
    """
    Turns an uploaded PDF into searchable chunks.

    Progress is written to the document row as it goes: 0 when processing
    starts, 25 after text extraction, 40 to 90 while embedding batches
    complete, 100 once chunks are stored and the document is ready.
    """

    EXTRACTED_PROGRESS = 25
    EMBEDDING_START_PROGRESS = 40
    EMBEDDING_END_PROGRESS = 90

    def __init__(
        self,
        pipeline: RAGPipeline,
        document_loader: DocumentLoader,
        repository: DocumentRepository
    ):
        self.pipeline = pipeline
        self.document_loader = document_loader
        self.repository = repository

    def process(self, document_id: str, storage_path: str) -> ProcessResult:
        """
        Extract, chunk, embed and store a document.

        Raises:
            ValueError: If the PDF yields too little text to index
            RuntimeError: Propagated from storage, embedding or database failures
        """
        self.repository.update_progress(document_id, 0, status="processing")
        page_count = None

        try:
            logger.info(f"Processing document {document_id}: extracting text")
            document = self.document_loader.load_from_storage(storage_path)
            page_count = document.total_pages
            text = document.text
            self.repository.update_progress(document_id, self.EXTRACTED_PROGRESS)

            if len(text) < MIN_EXTRACTED_CHARS:
                raise ValueError(
                    "Could not extract text from PDF. The file may be image-based or empty."
                )

            def report_embedding_progress(completed: int, total: int) -> None:
                span = self.EMBEDDING_END_PROGRESS - self.EMBEDDING_START_PROGRESS
                progress = self.EMBEDDING_START_PROGRESS + round(completed / total * span)
                self.repository.update_progress(document_id, progress)

            chunks = self.pipeline.index(
                document_id,
                text,
                pages=document.pages,
                on_progress=report_embedding_progress
            )

            self.repository.update_progress(
                document_id,
                100,
                status="ready",
                page_count=page_count,
                chunk_count=len(chunks),
                extracted_char_count=len(text)
            )

        except Exception as e:
            logger.error(f"Processing failed for document {document_id}: {e}", exc_info=True)
            self.repository.update_progress(document_id, 0, status="error", page_count=page_count)
            raise

        logger.info(
            f"Document {document_id} processed: {len(chunks)} chunks, {page_count} pages"
        )
        return ProcessResult(chunks_inserted=len(chunks), page_count=page_count)
