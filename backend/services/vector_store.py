"""Chunk store backed by Supabase pgvector and Postgres full-text search."""
import logging
from typing import Any, List, Optional, Sequence
from supabase import create_client, Client
from models.chunk import Chunk, ChunkMetadata, RetrievedChunk
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)

# Postgres functions expected in the database:
#   match_document_chunks(p_query_embedding vector, p_document_id uuid, p_user_id uuid, p_match_count int)
#     -> id, document_id, content, chunk_index, metadata, similarity   (1 - cosine distance, desc)
#   search_document_chunks_text(p_query text, p_document_id uuid, p_user_id uuid, p_match_count int)
#     -> id, document_id, content, chunk_index, metadata, rank         (ts_rank_cd, desc)
VECTOR_SEARCH_RPC = "match_document_chunks"
TEXT_SEARCH_RPC = "search_document_chunks_text"


class VectorStore:
    """Persist document chunks with embeddings and search them per document."""

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = "document_chunks",
        client: Optional[Client] = None
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the chunk table
            client: Existing client to reuse instead of creating one

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        self.table_name = table_name

        logger.info(f"Initialized VectorStore with table: {table_name}")

    def replace_chunks(
        self,
        document_id: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[List[float]]
    ) -> int:
        """
        Replace every stored chunk of a document with a new set.

        Args:
            document_id: Owning document
            chunks: Chunks in chunk_index order
            embeddings: One embedding per chunk, same order

        Returns:
            Number of chunks inserted

        Raises:
            ValueError: If chunks and embeddings differ in length
            RuntimeError: If database operation fails
        """
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(chunks)} chunks but {len(embeddings)} embeddings"
            )

        try:
            self.client.table(self.table_name).delete().eq("document_id", document_id).execute()

            if chunks:
                records = [
                    {
                        "document_id": document_id,
                        "content": chunk.content,
                        "chunk_index": chunk.chunk_index,
                        "metadata": chunk.metadata.to_dict(),
                        "embedding": embedding
                    }
                    for chunk, embedding in zip(chunks, embeddings)
                ]
                self.client.table(self.table_name).insert(records).execute()

            logger.info(f"Stored {len(chunks)} chunks for document {document_id}")
            return len(chunks)

        except Exception as e:
            error_msg = f"Failed to store chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    def vector_search(
        self,
        document_id: str,
        user_id: str,
        query_embedding: List[float],
        limit: int
    ) -> List[RetrievedChunk]:
        """
        Find the chunks of one document most similar to a query embedding.

        Returns:
            Chunks ordered by descending cosine similarity

        Raises:
            ValueError: If query_embedding is empty or limit is invalid
            RuntimeError: If database operation fails
        """
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")
        if limit <= 0:
            raise ValueError("limit must be positive")

        try:
            response = self.client.rpc(
                VECTOR_SEARCH_RPC,
                {
                    "p_query_embedding": query_embedding,
                    "p_document_id": document_id,
                    "p_user_id": user_id,
                    "p_match_count": limit
                }
            ).execute()
        except Exception as e:
            error_msg = f"Vector search failed: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        results = self._parse_rows(response.data, document_id, score_key="similarity")
        logger.debug(f"Vector search found {len(results)} chunks in document {document_id}")
        return results

    def lexical_search(
        self,
        document_id: str,
        user_id: str,
        query_text: str,
        limit: int
    ) -> List[RetrievedChunk]:
        """
        Full-text search over one document's chunks.

        The text rank is returned in `similarity`.

        Raises:
            RuntimeError: If database operation fails
        """
        if limit <= 0:
            raise ValueError("limit must be positive")

        try:
            response = self.client.rpc(
                TEXT_SEARCH_RPC,
                {
                    "p_query": query_text,
                    "p_document_id": document_id,
                    "p_user_id": user_id,
                    "p_match_count": limit
                }
            ).execute()
        except Exception as e:
            raise RuntimeError(f"Full-text search failed: {str(e)}") from e

        results = self._parse_rows(response.data, document_id, score_key="rank")
        logger.debug(f"Full-text search found {len(results)} chunks in document {document_id}")
        return results

    def fetch_chunk_contents(self, document_id: str) -> List[str]:
        """
        Get every chunk's content of a document in chunk_index order.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = (
                self.client.table(self.table_name)
                .select("content, chunk_index")
                .eq("document_id", document_id)
                .order("chunk_index", desc=False)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to fetch chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        return [row["content"] for row in (response.data or [])]

    def count(self, document_id: str) -> int:
        """
        Get the number of chunks stored for a document.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = (
                self.client.table(self.table_name)
                .select("id", count="exact")
                .eq("document_id", document_id)
                .execute()
            )
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    @staticmethod
    def _parse_rows(data: Any, document_id: str, score_key: str) -> List[RetrievedChunk]:
        """Convert RPC rows to RetrievedChunk, keeping only the requested document."""
        if not isinstance(data, list):
            return []

        results: List[RetrievedChunk] = []
        for row in data:
            row_document_id = str(row.get("document_id"))
            if row_document_id != str(document_id):
                logger.warning(
                    f"Dropping chunk {row.get('id')} from document {row_document_id} "
                    f"returned for document {document_id}"
                )
                continue

            results.append(RetrievedChunk(
                id=str(row["id"]),
                document_id=row_document_id,
                content=row.get("content") or "",
                chunk_index=int(row.get("chunk_index") or 0),
                metadata=ChunkMetadata.from_raw(row.get("metadata")),
                similarity=float(row.get(score_key) or 0.0)
            ))
        return results
