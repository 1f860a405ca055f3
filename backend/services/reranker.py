"""
Second-stage reranker for retrieved chunks.

Retrieval aims for recall; this stage orders the candidates that end up in
the answer prompt. The score is a hand-tuned linear blend, not a learned
model:

    0.65 * similarity + 0.25 * keyword overlap + 0.10 * position

The weights were picked empirically and are kept fixed.
"""
import logging
import re
from typing import List, Set, Tuple

from models.chunk import RetrievedChunk
from config import DEFAULT_TOP_K

logger = logging.getLogger(__name__)

# ASCII word characters; accented letters split a token like any punctuation
_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


class Reranker:
    """Rescore retrieved chunks by similarity, keyword overlap and position."""

    WEIGHT_SIMILARITY = 0.65
    WEIGHT_KEYWORD = 0.25
    WEIGHT_POSITION = 0.10

    MIN_TOKEN_LENGTH = 3

    def rerank(
        self,
        query: str,
        chunks: List[RetrievedChunk],
        top_k: int = DEFAULT_TOP_K
    ) -> List[RetrievedChunk]:
        """
        Order chunks by combined score and keep the first top_k.

        Args:
            query: The user's original question
            chunks: Candidates from retrieval
            top_k: Number of chunks to return

        Returns:
            Reranked chunks, highest combined score first
        """
        if not chunks:
            return []

        scored = self.score_chunks(query, chunks)
        scored.sort(key=lambda pair: pair[1], reverse=True)

        logger.debug(
            f"Reranked {len(chunks)} chunks; top score "
            f"{scored[0][1]:.3f} (chunk {scored[0][0].chunk_index})"
        )
        return [chunk for chunk, _ in scored[:top_k]]

    def score_chunks(
        self,
        query: str,
        chunks: List[RetrievedChunk]
    ) -> List[Tuple[RetrievedChunk, float]]:
        """Pair each chunk with its combined score, preserving input order."""
        if not chunks:
            return []

        query_tokens = self.tokenize(query)
        max_index = max(max(chunk.chunk_index for chunk in chunks), 1)

        return [
            (chunk, self.combined_score(
                similarity=chunk.similarity,
                keyword_score=self.keyword_overlap(query_tokens, chunk.content),
                position_score=1 - chunk.chunk_index / (max_index + 1)
            ))
            for chunk in chunks
        ]

    def combined_score(self, similarity: float, keyword_score: float, position_score: float) -> float:
        return (
            self.WEIGHT_SIMILARITY * similarity
            + self.WEIGHT_KEYWORD * keyword_score
            + self.WEIGHT_POSITION * position_score
        )

    @classmethod
    def tokenize(cls, text: str) -> Set[str]:
        """Lowercase, punctuation-stripped tokens longer than two characters."""
        cleaned = _NON_WORD.sub(" ", text.lower())
        return {
            token for token in _WHITESPACE.split(cleaned)
            if len(token) >= cls.MIN_TOKEN_LENGTH
        }

    @staticmethod
    def keyword_overlap(query_tokens: Set[str], content: str) -> float:
        """Fraction of query tokens found as substrings of the content."""
        if not query_tokens:
            return 0.0
        content_lower = content.lower()
        matches = sum(1 for token in query_tokens if token in content_lower)
        return matches / len(query_tokens)
