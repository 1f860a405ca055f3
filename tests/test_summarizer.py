"""Unit tests for Summarizer and summary prompts."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.summarizer import Summarizer, SummaryResult, TRUNCATION_MARKER
from services.llm_client import LLMResponse, LLMClientError, LLMError
from services.prompts import (
    SUMMARY_TYPES,
    TRUNCATION_NOTE,
    get_summary_type,
    get_summary_system_prompt,
    get_summary_user_prompt,
)
from config import CHAT_MODEL, PREMIUM_MODEL

DOC_ID = "66666666-6666-6666-6666-666666666666"
USER_ID = "user-1"


class TestSummaryPrompts:
    """Test suite for summary prompt helpers."""

    def test_style_ids(self):
        assert [t.id for t in SUMMARY_TYPES] == [
            "summary", "smart", "chapters", "core", "insights", "meeting", "legal"
        ]

    def test_premium_styles(self):
        assert {t.id for t in SUMMARY_TYPES if t.premium} == {"chapters", "core", "meeting", "legal"}

    def test_unknown_type_falls_back(self):
        assert get_summary_type("haiku").id == "summary"

    def test_system_prompt_pins_heading(self):
        prompt = get_summary_system_prompt("legal")
        assert f'"## {get_summary_type("legal").heading}"' in prompt
        assert "### Constraints" in prompt

    def test_user_prompt_truncation_note(self):
        assert get_summary_user_prompt("smart", True).endswith(TRUNCATION_NOTE)
        assert not get_summary_user_prompt("smart", False).endswith(TRUNCATION_NOTE)


class TestSummarizer:
    """Test suite for Summarizer."""

    @pytest.fixture
    def llm_client(self):
        client = Mock()
        client.generate.return_value = LLMResponse(
            text="  ## Summary of the PDF File\n- point  ",
            tokens_input=900,
            tokens_output=150,
            latency_ms=2000,
            model_used=CHAT_MODEL
        )
        return client

    @pytest.fixture
    def vector_store(self):
        store = Mock()
        store.fetch_chunk_contents.return_value = ["First part.", "Second part."]
        return store

    @pytest.fixture
    def repository(self):
        repository = Mock()
        repository.get_cached_summary.return_value = None
        return repository

    @pytest.fixture
    def usage_tracker(self):
        return Mock()

    @pytest.fixture
    def summarizer(self, llm_client, vector_store, repository, usage_tracker):
        return Summarizer(llm_client, vector_store, repository, usage_tracker, max_context_chars=1000)

    def test_cached_summary(self, summarizer, repository, llm_client):
        repository.get_cached_summary.return_value = "Cached"

        result = summarizer.summarize(DOC_ID, USER_ID, "smart")

        assert result == SummaryResult(summary="Cached", cached=True, type="smart")
        repository.get_cached_summary.assert_called_once_with(DOC_ID, "smart")
        llm_client.generate.assert_not_called()

    def test_generates_and_caches(self, summarizer, llm_client, repository, usage_tracker):
        result = summarizer.summarize(DOC_ID, USER_ID, "summary")

        assert result == SummaryResult(summary="## Summary of the PDF File\n- point", cached=False, type="summary")

        kwargs = llm_client.generate.call_args.kwargs
        assert kwargs["model"] == CHAT_MODEL
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 4000
        assert kwargs["system_prompt"] == get_summary_system_prompt("summary")
        assert kwargs["prompt"].endswith("First part.\n\nSecond part.")

        repository.save_summary.assert_called_once_with(DOC_ID, "summary", "## Summary of the PDF File\n- point")
        usage_tracker.track.assert_called_once_with(
            user_id=USER_ID,
            endpoint="summarize",
            model=CHAT_MODEL,
            prompt_tokens=900,
            completion_tokens=150,
            document_id=DOC_ID
        )

    def test_regenerate_skips_cache(self, summarizer, repository, llm_client):
        repository.get_cached_summary.return_value = "Cached"

        result = summarizer.summarize(DOC_ID, USER_ID, "summary", regenerate=True)

        assert result.cached is False
        repository.get_cached_summary.assert_not_called()
        llm_client.generate.assert_called_once()

    def test_premium_style_uses_premium_model(self, summarizer, llm_client):
        summarizer.summarize(DOC_ID, USER_ID, "legal")
        assert llm_client.generate.call_args.kwargs["model"] == PREMIUM_MODEL

    def test_unknown_style_falls_back(self, summarizer, repository):
        result = summarizer.summarize(DOC_ID, USER_ID, "haiku")

        assert result.type == "summary"
        repository.get_cached_summary.assert_called_once_with(DOC_ID, "summary")

    def test_truncates_long_documents(self, summarizer, vector_store, llm_client):
        vector_store.fetch_chunk_contents.return_value = ["x" * 800, "y" * 800]

        summarizer.summarize(DOC_ID, USER_ID, "summary")

        prompt = llm_client.generate.call_args.kwargs["prompt"]
        # 1000 characters kept: 800 x, the blank line, then 198 y
        assert prompt.endswith("x" * 800 + "\n\n" + "y" * 198 + TRUNCATION_MARKER)
        assert TRUNCATION_NOTE in prompt

    def test_no_content(self, summarizer, vector_store):
        vector_store.fetch_chunk_contents.return_value = []

        with pytest.raises(ValueError, match="No content found"):
            summarizer.summarize(DOC_ID, USER_ID)

    def test_empty_generation(self, summarizer, llm_client, repository):
        llm_client.generate.return_value = LLMResponse(
            text="   ", tokens_input=1, tokens_output=0, latency_ms=1, model_used=CHAT_MODEL
        )

        with pytest.raises(RuntimeError, match="Failed to generate summary"):
            summarizer.summarize(DOC_ID, USER_ID)

        repository.save_summary.assert_not_called()

    def test_llm_error_propagates(self, summarizer, llm_client):
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="RATE_LIMIT_ERROR", message="Rate limit exceeded.", details={})
        )

        with pytest.raises(LLMClientError):
            summarizer.summarize(DOC_ID, USER_ID)

    def test_cache_write_failure_is_not_raised(self, summarizer, repository):
        repository.save_summary.side_effect = Exception("upsert failed")

        result = summarizer.summarize(DOC_ID, USER_ID)

        assert result.cached is False
