"""Services for DocAI."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorStore
from .retrieval_engine import RetrievalEngine
from .reranker import Reranker
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .query_reformulator import QueryReformulator
from .rag_pipeline import RAGPipeline
from .document_repository import DocumentRepository
from .usage_tracker import UsageTracker
from .document_processor import DocumentProcessor, ProcessResult
from .summarizer import Summarizer, SummaryResult

__all__ = ['DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'VectorStore', 'RetrievalEngine', 'Reranker', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'QueryReformulator', 'RAGPipeline', 'DocumentRepository', 'UsageTracker', 'DocumentProcessor', 'ProcessResult', 'Summarizer', 'SummaryResult']
