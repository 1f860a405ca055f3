"""Main entry point for DocAI document Q&A API."""
import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Iterator, List, Optional
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from supabase import create_client

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, CHAT_MODEL, SUPABASE_URL, SUPABASE_KEY
from logger import setup_logging
from models.api import ChatRequest, SummarizeRequest, ProcessResponse, SummaryResponse, SummaryTypeInfo, Source
from models.chunk import RetrievedChunk
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore
from services.retrieval_engine import RetrievalEngine
from services.reranker import Reranker
from services.llm_client import LLMClient, LLMClientError
from services.query_reformulator import QueryReformulator
from services.rag_pipeline import RAGPipeline
from services.document_loader import DocumentLoader
from services.document_repository import DocumentRepository
from services.document_processor import DocumentProcessor
from services.summarizer import Summarizer
from services.usage_tracker import UsageTracker
from services.prompts import ANSWER_SYSTEM_PROMPT, NO_RELEVANT_CONTENT_MESSAGE, SUMMARY_TYPES

# Initialize logging
setup_logging(LOG_LEVEL, json_format=LOG_FORMAT == "json")
logger = logging.getLogger(__name__)

SOURCE_PREVIEW_CHARS = 300

# Initialize FastAPI app
app = FastAPI(
    title="DocAI",
    description="Ask questions about an uploaded PDF and get answers grounded in it",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
rag_pipeline: RAGPipeline = None
llm_client: LLMClient = None
document_repository: DocumentRepository = None
document_processor: DocumentProcessor = None
summarizer: Summarizer = None
usage_tracker: UsageTracker = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global rag_pipeline, llm_client, document_repository, document_processor
    global summarizer, usage_tracker

    logger.info("Initializing DocAI services...")

    try:
        if not SUPABASE_URL or not SUPABASE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
        supabase_client = create_client(SUPABASE_URL, SUPABASE_KEY)

        embedding_model = EmbeddingModel()
        vector_store = VectorStore(client=supabase_client)
        llm_client = LLMClient()
        logger.info("Initialized model clients")

        rag_pipeline = RAGPipeline(
            chunking_engine=ChunkingEngine(),
            embedding_model=embedding_model,
            vector_store=vector_store,
            retrieval_engine=RetrievalEngine(vector_store, embedding_model),
            reranker=Reranker(),
            reformulator=QueryReformulator(llm_client)
        )
        logger.info("Initialized RAGPipeline")

        document_repository = DocumentRepository(client=supabase_client)
        usage_tracker = UsageTracker(supabase_client)
        document_processor = DocumentProcessor(
            pipeline=rag_pipeline,
            document_loader=DocumentLoader(client=supabase_client),
            repository=document_repository
        )
        summarizer = Summarizer(llm_client, vector_store, document_repository, usage_tracker)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "DocAI API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "docai",
        "version": "1.0.0"
    }


@app.get("/summary-types", response_model=List[SummaryTypeInfo])
async def list_summary_types() -> List[SummaryTypeInfo]:
    """Summary styles accepted by the summarize endpoint."""
    return [
        SummaryTypeInfo(id=t.id, label=t.label, description=t.description, premium=t.premium)
        for t in SUMMARY_TYPES
    ]


def _require_user(x_user_id: Optional[str]) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized. Please sign in.")
    return x_user_id.strip()


def _validate_document_id(document_id: str) -> None:
    try:
        uuid.UUID(document_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid document ID")


def _get_owned_document(document_id: str, user_id: str) -> Dict[str, Any]:
    document = document_repository.get_document(document_id, user_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


def _require_ready(document: Dict[str, Any], action: str) -> None:
    if document.get("status") != "ready" or not document.get("chunk_count"):
        raise HTTPException(status_code=400, detail=f"Document must be processed before {action}")


def _llm_error_response(e: LLMClientError) -> HTTPException:
    logger.error(f"LLM client error: {e.error.message}")
    return HTTPException(
        status_code=503,
        detail={
            "error": {
                "code": e.error.code,
                "message": e.error.message,
                "details": e.error.details
            }
        }
    )


@app.post("/documents/{document_id}/process", response_model=ProcessResponse)
def process_endpoint(document_id: str, x_user_id: Optional[str] = Header(None)) -> ProcessResponse:
    """
    Extract, chunk, embed and store an uploaded document.

    Raises:
        HTTPException: 400 invalid id or unreadable PDF, 401 no user,
            404 unknown document, 409 already processing, 500 failure
    """
    _validate_document_id(document_id)
    user_id = _require_user(x_user_id)
    document = _get_owned_document(document_id, user_id)

    if document.get("status") == "processing":
        raise HTTPException(status_code=409, detail="Document is already being processed.")

    try:
        result = document_processor.process(document_id, document["storage_path"])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Process error for document {document_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process document.")

    return ProcessResponse(chunks_inserted=result.chunks_inserted, page_count=result.page_count)


def _to_source(chunk: RetrievedChunk) -> Dict[str, Any]:
    preview = chunk.content[:SOURCE_PREVIEW_CHARS]
    if len(chunk.content) > SOURCE_PREVIEW_CHARS:
        preview += "…"
    return Source(
        id=chunk.id,
        content=preview,
        page=chunk.metadata.page,
        chunk_index=chunk.chunk_index,
        section=chunk.metadata.section_header
    ).model_dump()


def _event(payload: Dict[str, Any]) -> bytes:
    return (json.dumps(payload) + "\n").encode("utf-8")


def _answer_events(
    document_id: str,
    user_id: str,
    question: str,
    chunks: List[RetrievedChunk]
) -> Iterator[bytes]:
    """NDJSON events: sources, then answer deltas, then done (or error)."""
    yield _event({"type": "sources", "data": [_to_source(chunk) for chunk in chunks]})

    if not chunks:
        yield _event({"type": "delta", "content": NO_RELEVANT_CONTENT_MESSAGE})
        yield _event({"type": "done"})
        return

    usage: Dict[str, Any] = {}
    try:
        for item in llm_client.generate_stream(
            model=CHAT_MODEL,
            prompt=LLMClient.build_prompt(question, chunks),
            system_prompt=ANSWER_SYSTEM_PROMPT
        ):
            if item["type"] == "token":
                yield _event({"type": "delta", "content": item["content"]})
            elif item["type"] == "metadata":
                usage = item["data"]
        yield _event({"type": "done"})
    except Exception as e:
        logger.error(f"Stream error for document {document_id}: {e}", exc_info=True)
        yield _event({"type": "error", "message": "Failed to generate answer"})
    finally:
        usage_tracker.track(
            user_id=user_id,
            endpoint="chat",
            model=CHAT_MODEL,
            prompt_tokens=usage.get("tokens_input", 0),
            completion_tokens=usage.get("tokens_output", 0),
            document_id=document_id
        )


@app.post("/documents/{document_id}/chat")
async def chat_endpoint(
    document_id: str,
    request: ChatRequest,
    x_user_id: Optional[str] = Header(None)
):
    """
    Streaming RAG chat: reformulate -> hybrid retrieval -> rerank -> answer.

    Returns:
        StreamingResponse of newline-delimited JSON events:
        - {"type": "sources", "data": [...]}
        - {"type": "delta", "content": "..."} per answer fragment
        - {"type": "done"} or {"type": "error", "message": "..."}
    """
    _validate_document_id(document_id)
    user_id = _require_user(x_user_id)
    document = await asyncio.to_thread(_get_owned_document, document_id, user_id)
    _require_ready(document, "chat")

    try:
        chunks = await rag_pipeline.answer_query(document_id, user_id, request.message)
    except Exception as e:
        logger.error(f"Chat retrieval error for document {document_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to answer")

    return StreamingResponse(
        _answer_events(document_id, user_id, request.message, chunks),
        media_type="application/x-ndjson",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no"  # Disable buffering in nginx
        }
    )


@app.post("/documents/{document_id}/summarize", response_model=SummaryResponse)
def summarize_endpoint(
    document_id: str,
    request: Optional[SummarizeRequest] = None,
    x_user_id: Optional[str] = Header(None)
) -> SummaryResponse:
    """Return a summary in the requested style, cached unless regenerate is set."""
    _validate_document_id(document_id)
    user_id = _require_user(x_user_id)
    document = _get_owned_document(document_id, user_id)
    _require_ready(document, "summarization")

    request = request or SummarizeRequest()
    try:
        result = summarizer.summarize(
            document_id,
            user_id,
            summary_type=request.type,
            regenerate=request.regenerate
        )
    except LLMClientError as e:
        raise _llm_error_response(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Summarize error for document {document_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to summarize")

    return SummaryResponse(summary=result.summary, cached=result.cached, type=result.type)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting DocAI API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
