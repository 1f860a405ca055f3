"""Hybrid retrieval engine: vector + full-text search fused by reciprocal rank."""
import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional
import numpy as np
from models.chunk import RetrievedChunk
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel
from config import DEFAULT_TOP_K, MAX_TOP_K, RETRIEVAL_TIMEOUT

logger = logging.getLogger(__name__)

RRF_K = 60
THRESHOLD_STDDEV_FACTOR = 0.5
THRESHOLD_TOP_SCORE_RATIO = 0.4
THRESHOLD_FLOOR = 0.15


def compute_dynamic_threshold(chunks: List[RetrievedChunk]) -> float:
    """
    Similarity cutoff derived from a candidate set's own score distribution.

    threshold = max(mean - 0.5 * stddev, top * 0.4, 0.15), using the
    population standard deviation. An empty set yields 0.
    """
    if not chunks:
        return 0.0

    scores = np.array([chunk.similarity for chunk in chunks], dtype=float)
    mean = float(scores.mean())
    std_dev = float(scores.std())
    top_score = float(scores.max())

    return max(
        mean - THRESHOLD_STDDEV_FACTOR * std_dev,
        top_score * THRESHOLD_TOP_SCORE_RATIO,
        THRESHOLD_FLOOR
    )


def fuse_results(
    vector_results: List[RetrievedChunk],
    text_results: List[RetrievedChunk],
    max_results: int,
    rrf_k: int = RRF_K
) -> List[RetrievedChunk]:
    """
    Merge ranked lists with Reciprocal Rank Fusion.

    A chunk at 0-based rank r in a list contributes 1 / (rrf_k + r); the
    contributions are summed per chunk id. Each fused chunk is a copy of the
    first occurrence seen (vector list first) and keeps that copy's
    similarity. Ties keep first-seen order.
    """
    rrf_scores: Dict[str, float] = {}
    first_seen: Dict[str, RetrievedChunk] = {}

    for results in (vector_results, text_results):
        for rank, chunk in enumerate(results):
            rrf_scores[chunk.id] = rrf_scores.get(chunk.id, 0.0) + 1.0 / (rrf_k + rank)
            first_seen.setdefault(chunk.id, chunk)

    ordered_ids = sorted(rrf_scores, key=lambda chunk_id: rrf_scores[chunk_id], reverse=True)
    return [replace(first_seen[chunk_id]) for chunk_id in ordered_ids[:max_results]]


class RetrievalEngine:
    """Retrieve the candidate chunks of one document for a question."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        timeout: Optional[float] = RETRIEVAL_TIMEOUT
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Store providing vector and full-text search
            embedding_model: Model used to embed the query
            timeout: Seconds allowed for embedding plus both searches; None disables
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.timeout = timeout
        logger.info("Initialized RetrievalEngine")

    async def retrieve(
        self,
        document_id: str,
        user_id: str,
        query: str,
        top_k: int = DEFAULT_TOP_K
    ) -> List[RetrievedChunk]:
        """
        Hybrid retrieval for one document.

        1. Embed the query
        2. Run vector search and full-text search concurrently, each for
           min(top_k * 2, 30) candidates; a full-text failure counts as no
           results
        3. Without text hits, return vector hits at or above the dynamic
           threshold
        4. Otherwise fuse both lists with RRF, then drop fused chunks whose
           vector similarity is below the threshold; text-only hits are kept

        Args:
            document_id: Document to search
            user_id: Owner of the document
            query: Search text (possibly reformulated)
            top_k: Maximum results, clamped to [1, 30]

        Returns:
            Retrieved chunks, possibly empty

        Raises:
            RuntimeError: If embedding or vector search fails, or on timeout
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        k = min(max(1, top_k), MAX_TOP_K)
        fetch_count = min(k * 2, MAX_TOP_K)

        try:
            return await asyncio.wait_for(
                self._hybrid_search(document_id, user_id, query, k, fetch_count),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            error_msg = f"Retrieval timed out after {self.timeout}s for document {document_id}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e
        except Exception as e:
            error_msg = f"Failed to retrieve chunks for query: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    async def _hybrid_search(
        self,
        document_id: str,
        user_id: str,
        query: str,
        k: int,
        fetch_count: int
    ) -> List[RetrievedChunk]:
        query_embedding = await asyncio.to_thread(self.embedding_model.embed_text, query)

        vector_results, text_results = await asyncio.gather(
            asyncio.to_thread(
                self.vector_store.vector_search, document_id, user_id, query_embedding, fetch_count
            ),
            self._text_search(document_id, user_id, query, fetch_count)
        )

        logger.info(
            f"Hybrid search results: vector={len(vector_results)}, text={len(text_results)}",
            extra={"document_id": document_id}
        )

        if not vector_results and not text_results:
            return []

        threshold = compute_dynamic_threshold(vector_results)

        if not text_results:
            return [c for c in vector_results if c.similarity >= threshold][:k]

        fused = fuse_results(vector_results, text_results, k)
        if not vector_results:
            return fused

        vector_scores = {chunk.id: chunk.similarity for chunk in vector_results}
        results = [
            chunk for chunk in fused
            if chunk.id not in vector_scores or vector_scores[chunk.id] >= threshold
        ]

        logger.debug(
            f"Kept {len(results)}/{len(fused)} fused chunks (threshold: {threshold:.3f})"
        )
        return results

    async def _text_search(
        self,
        document_id: str,
        user_id: str,
        query: str,
        limit: int
    ) -> List[RetrievedChunk]:
        try:
            return await asyncio.to_thread(
                self.vector_store.lexical_search, document_id, user_id, query, limit
            )
        except Exception as e:
            logger.warning(f"Full-text search failed, falling back to vector-only: {e}")
            return []
