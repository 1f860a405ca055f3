"""
Document Indexing Script for DocAI.

This script:
1. Loads a PDF from disk
2. Chunks it with section and page metadata
3. Generates embeddings using HuggingFace API
4. Replaces the document's chunks in Supabase pgvector

Usage:
    python index_document.py path/to/file.pdf --document-id <uuid>
"""
import sys
import argparse
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore
from services.rag_pipeline import RAGPipeline
from config import LOG_LEVEL, MIN_EXTRACTED_CHARS
from logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index a PDF into the DocAI chunk store")
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument("--document-id", required=True, help="Document id the chunks are stored under")
    return parser.parse_args(argv)


def log_progress(completed: int, total: int) -> None:
    logger.info(f"  ✓ Embedded batch {completed}/{total}")


def main(argv=None):
    """Main indexing process."""
    setup_logging(LOG_LEVEL, json_format=False)
    args = parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info(f"Indexing {args.pdf} as document {args.document_id}")
        logger.info("=" * 60)

        # Step 1: Initialize services
        logger.info("[1/4] Initializing services...")
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        pipeline = RAGPipeline(
            chunking_engine=ChunkingEngine(),
            embedding_model=embedding_model,
            vector_store=vector_store
        )
        logger.info("✓ Services initialized")

        # Step 2: Load the PDF
        logger.info("[2/4] Loading PDF...")
        document = DocumentLoader().load_file(args.pdf)
        if len(document.text) < MIN_EXTRACTED_CHARS:
            logger.error("Could not extract text from PDF. The file may be image-based or empty.")
            sys.exit(1)
        logger.info(f"✓ Loaded {document.filename} ({document.total_pages} pages)")

        # Step 3: Warm up embedding model
        logger.info("[3/4] Warming up embedding model...")
        if embedding_model.warmup():
            logger.info("✓ Model warmed up and ready")
        else:
            logger.warning("Warmup failed, continuing anyway")

        # Step 4: Chunk, embed and store
        logger.info("[4/4] Chunking, embedding and storing...")
        chunks = pipeline.index(
            args.document_id,
            document.text,
            pages=document.pages,
            on_progress=log_progress
        )

        logger.info("=" * 60)
        logger.info("INDEXING COMPLETE!")
        logger.info(f"Chunks stored: {len(chunks)}")
        logger.info(f"Chunks in database: {vector_store.count(args.document_id)}")
        logger.info("=" * 60)

    except KeyboardInterrupt:
        logger.warning("Indexing interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Indexing failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
