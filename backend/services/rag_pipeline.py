"""Indexing and query entry points of the retrieval-augmented generation pipeline."""
import asyncio
import logging
from typing import List, Optional, Sequence

from models.chunk import Chunk, RetrievedChunk
from models.document import Page
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel, ProgressCallback
from services.vector_store import VectorStore
from services.retrieval_engine import RetrievalEngine
from services.reranker import Reranker
from services.query_reformulator import QueryReformulator
from config import CHAT_RETRIEVAL_TOP_K, CHAT_RERANK_TOP_K

logger = logging.getLogger(__name__)


class RAGPipeline:
    """
    Document text -> chunks + embeddings at indexing time;
    question -> reformulate -> retrieve -> rerank at query time.

    The query-side services may be left out of an indexing-only pipeline.
    """

    def __init__(
        self,
        chunking_engine: ChunkingEngine,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore,
        retrieval_engine: Optional[RetrievalEngine] = None,
        reranker: Optional[Reranker] = None,
        reformulator: Optional[QueryReformulator] = None,
        retrieval_top_k: int = CHAT_RETRIEVAL_TOP_K,
        rerank_top_k: int = CHAT_RERANK_TOP_K
    ):
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.retrieval_engine = retrieval_engine
        self.reranker = reranker
        self.reformulator = reformulator
        self.retrieval_top_k = retrieval_top_k
        self.rerank_top_k = rerank_top_k

    def index(
        self,
        document_id: str,
        text: str,
        pages: Optional[Sequence[Page]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> List[Chunk]:
        """
        Chunk a document, embed every chunk and replace its stored chunks.

        Args:
            document_id: Document being (re)indexed
            text: Extracted document text
            pages: Optional per-page texts for page tagging
            on_progress: Forwarded to the embedder, called after each batch

        Returns:
            The chunks that were stored, in chunk_index order
        """
        chunks = self.chunking_engine.chunk(text, pages)
        embeddings = self.embedding_model.embed_batch(
            [chunk.content for chunk in chunks],
            on_progress=on_progress
        )
        self.vector_store.replace_chunks(document_id, chunks, embeddings)

        logger.info(f"Indexed document {document_id}: {len(chunks)} chunks")
        return chunks

    async def answer_query(
        self,
        document_id: str,
        user_id: str,
        question: str
    ) -> List[RetrievedChunk]:
        """
        Select the chunks to ground an answer in.

        The reformulated query drives retrieval; reranking uses the original
        question. An empty list means nothing relevant was found.
        """
        if self.retrieval_engine is None or self.reranker is None or self.reformulator is None:
            raise RuntimeError("RAGPipeline was built for indexing only and cannot answer queries")

        search_query = await asyncio.to_thread(self.reformulator.reformulate, question)

        candidates = await self.retrieval_engine.retrieve(
            document_id,
            user_id,
            search_query,
            top_k=self.retrieval_top_k
        )
        chunks = self.reranker.rerank(question, candidates, top_k=self.rerank_top_k)

        logger.info(
            f"Selected {len(chunks)} of {len(candidates)} candidate chunks",
            extra={"document_id": document_id}
        )
        return chunks
