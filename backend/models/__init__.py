"""Data models for DocAI."""
from .document import Document, Page
from .chunk import Chunk, ChunkMetadata, RetrievedChunk
from .api import ChatRequest, SummarizeRequest, ProcessResponse, SummaryResponse, Source

__all__ = [
    "Document",
    "Page",
    "Chunk",
    "ChunkMetadata",
    "RetrievedChunk",
    "ChatRequest",
    "SummarizeRequest",
    "ProcessResponse",
    "SummaryResponse",
    "Source",
]
