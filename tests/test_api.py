"""Integration tests for the DocAI HTTP endpoints."""
import json
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock, patch
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

DOC_ID = "77777777-7777-7777-7777-777777777777"
HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def client():
    """Create a test client with mocked services."""
    # Import after path is set
    from main import app

    # Mock the startup event to avoid initializing real services
    with patch('main.startup_event'):
        client = TestClient(app)

        # Manually set the global services to mocks
        import main
        main.rag_pipeline = Mock()
        main.llm_client = Mock()
        main.document_repository = Mock()
        main.document_processor = Mock()
        main.summarizer = Mock()
        main.usage_tracker = Mock()

        main.document_repository.get_document.return_value = {
            "id": DOC_ID,
            "user_id": "user-1",
            "storage_path": "user-1/manual.pdf",
            "status": "ready",
            "chunk_count": 12
        }

        yield client


def make_chunk(content="Mount the bracket on the wall.", page=4, section="Installation"):
    from models.chunk import ChunkMetadata, RetrievedChunk
    return RetrievedChunk(
        id="chunk-1",
        document_id=DOC_ID,
        content=content,
        chunk_index=3,
        metadata=ChunkMetadata(page=page, section_header=section),
        similarity=0.82
    )


def set_answer_chunks(chunks):
    import main

    async def fake_answer_query(document_id, user_id, question):
        return chunks

    main.rag_pipeline.answer_query = Mock(side_effect=fake_answer_query)


def read_events(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_summary_types(client):
    response = client.get("/summary-types")
    assert response.status_code == 200

    types = response.json()
    assert len(types) == 7
    assert types[0]["id"] == "summary"
    assert types[0]["label"] == "Summary"
    assert types[0]["description"]
    assert {t["id"] for t in types if t["premium"]} == {"chapters", "core", "meeting", "legal"}


class TestProcessEndpoint:
    """POST /documents/{id}/process"""

    def test_success(self, client):
        import main
        from services.document_processor import ProcessResult
        main.document_repository.get_document.return_value["status"] = "uploaded"
        main.document_processor.process.return_value = ProcessResult(chunks_inserted=12, page_count=5)

        response = client.post(f"/documents/{DOC_ID}/process", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"chunks_inserted": 12, "page_count": 5}
        main.document_processor.process.assert_called_once_with(DOC_ID, "user-1/manual.pdf")
        main.document_repository.get_document.assert_called_once_with(DOC_ID, "user-1")

    def test_missing_user(self, client):
        response = client.post(f"/documents/{DOC_ID}/process")
        assert response.status_code == 401

    def test_invalid_document_id(self, client):
        response = client.post("/documents/not-a-uuid/process", headers=HEADERS)
        assert response.status_code == 400

    def test_unknown_document(self, client):
        import main
        main.document_repository.get_document.return_value = None

        response = client.post(f"/documents/{DOC_ID}/process", headers=HEADERS)
        assert response.status_code == 404

    def test_already_processing(self, client):
        import main
        main.document_repository.get_document.return_value["status"] = "processing"

        response = client.post(f"/documents/{DOC_ID}/process", headers=HEADERS)

        assert response.status_code == 409
        main.document_processor.process.assert_not_called()

    def test_unreadable_pdf(self, client):
        import main
        main.document_processor.process.side_effect = ValueError(
            "Could not extract text from PDF. The file may be image-based or empty."
        )

        response = client.post(f"/documents/{DOC_ID}/process", headers=HEADERS)

        assert response.status_code == 400
        assert "Could not extract text" in response.json()["detail"]

    def test_processing_failure(self, client):
        import main
        main.document_processor.process.side_effect = RuntimeError("Vector search failed")

        response = client.post(f"/documents/{DOC_ID}/process", headers=HEADERS)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process document."


class TestChatEndpoint:
    """POST /documents/{id}/chat"""

    def test_streams_sources_then_answer(self, client):
        import main
        from services.prompts import ANSWER_SYSTEM_PROMPT
        set_answer_chunks([make_chunk()])
        main.llm_client.generate_stream.return_value = iter([
            {"type": "token", "content": "Mount "},
            {"type": "token", "content": "it."},
            {"type": "metadata", "data": {"tokens_input": 300, "tokens_output": 2, "latency_ms": 10, "model_used": "m"}},
        ])

        response = client.post(
            f"/documents/{DOC_ID}/chat",
            json={"message": "how do I install it"},
            headers=HEADERS
        )

        assert response.status_code == 200
        events = read_events(response)
        assert events[0] == {
            "type": "sources",
            "data": [{
                "id": "chunk-1",
                "content": "Mount the bracket on the wall.",
                "page": 4,
                "chunk_index": 3,
                "section": "Installation"
            }]
        }
        assert events[1:] == [
            {"type": "delta", "content": "Mount "},
            {"type": "delta", "content": "it."},
            {"type": "done"},
        ]

        kwargs = main.llm_client.generate_stream.call_args.kwargs
        assert kwargs["system_prompt"] == ANSWER_SYSTEM_PROMPT
        assert "how do I install it" in kwargs["prompt"]
        assert "[1] | Section: Installation | Page 4" in kwargs["prompt"]

        main.usage_tracker.track.assert_called_once_with(
            user_id="user-1",
            endpoint="chat",
            model=main.CHAT_MODEL,
            prompt_tokens=300,
            completion_tokens=2,
            document_id=DOC_ID
        )

    def test_source_preview_truncated(self, client):
        import main
        set_answer_chunks([make_chunk(content="a" * 400)])
        main.llm_client.generate_stream.return_value = iter([])

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        source = read_events(response)[0]["data"][0]
        assert source["content"] == "a" * 300 + "…"

    def test_no_relevant_chunks(self, client):
        import main
        from services.prompts import NO_RELEVANT_CONTENT_MESSAGE
        set_answer_chunks([])

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        assert read_events(response) == [
            {"type": "sources", "data": []},
            {"type": "delta", "content": NO_RELEVANT_CONTENT_MESSAGE},
            {"type": "done"},
        ]
        main.llm_client.generate_stream.assert_not_called()

    def test_stream_error_event(self, client):
        import main
        from services.llm_client import LLMClientError, LLMError
        set_answer_chunks([make_chunk()])

        def failing_stream(**kwargs):
            yield {"type": "token", "content": "Partial"}
            raise LLMClientError(LLMError(code="API_ERROR", message="Groq API error", details={}))

        main.llm_client.generate_stream.side_effect = failing_stream

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        events = read_events(response)
        assert events[-1] == {"type": "error", "message": "Failed to generate answer"}
        assert {"type": "done"} not in events
        main.usage_tracker.track.assert_called_once()

    def test_document_not_ready(self, client):
        import main
        main.document_repository.get_document.return_value["status"] = "processing"

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        assert response.status_code == 400

    def test_no_chunks_indexed(self, client):
        import main
        main.document_repository.get_document.return_value["chunk_count"] = 0

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        assert response.status_code == 400

    def test_message_validation(self, client):
        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": ""}, headers=HEADERS)
        assert response.status_code == 422

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "x" * 2001}, headers=HEADERS)
        assert response.status_code == 422

    def test_retrieval_failure(self, client):
        import main

        async def failing_answer_query(*args):
            raise RuntimeError("Failed to retrieve chunks for query: Vector search failed")

        main.rag_pipeline.answer_query = Mock(side_effect=failing_answer_query)

        response = client.post(f"/documents/{DOC_ID}/chat", json={"message": "q"}, headers=HEADERS)

        assert response.status_code == 500


class TestSummarizeEndpoint:
    """POST /documents/{id}/summarize"""

    def test_success(self, client):
        import main
        from services.summarizer import SummaryResult
        main.summarizer.summarize.return_value = SummaryResult(summary="## Legal Summary", cached=False, type="legal")

        response = client.post(
            f"/documents/{DOC_ID}/summarize",
            json={"type": "legal", "regenerate": True},
            headers=HEADERS
        )

        assert response.status_code == 200
        assert response.json() == {"summary": "## Legal Summary", "cached": False, "type": "legal"}
        main.summarizer.summarize.assert_called_once_with(DOC_ID, "user-1", summary_type="legal", regenerate=True)

    def test_defaults_without_body(self, client):
        import main
        from services.summarizer import SummaryResult
        main.summarizer.summarize.return_value = SummaryResult(summary="text", cached=True, type="summary")

        response = client.post(f"/documents/{DOC_ID}/summarize", headers=HEADERS)

        assert response.status_code == 200
        main.summarizer.summarize.assert_called_once_with(DOC_ID, "user-1", summary_type="summary", regenerate=False)

    def test_llm_error_returns_503(self, client):
        import main
        from services.llm_client import LLMClientError, LLMError
        main.summarizer.summarize.side_effect = LLMClientError(LLMError(
            code="RATE_LIMIT_ERROR",
            message="Rate limit exceeded. Please try again in a few moments.",
            details={"retry_after": 60}
        ))

        response = client.post(f"/documents/{DOC_ID}/summarize", json={}, headers=HEADERS)

        assert response.status_code == 503
        assert response.json()["detail"]["error"]["code"] == "RATE_LIMIT_ERROR"

    def test_no_content_returns_400(self, client):
        import main
        main.summarizer.summarize.side_effect = ValueError("No content found. Re-index the document.")

        response = client.post(f"/documents/{DOC_ID}/summarize", json={}, headers=HEADERS)

        assert response.status_code == 400

    def test_unexpected_error_returns_500(self, client):
        import main
        main.summarizer.summarize.side_effect = RuntimeError("Failed to generate summary")

        response = client.post(f"/documents/{DOC_ID}/summarize", json={}, headers=HEADERS)

        assert response.status_code == 500
