"""Cached, style-specific document summaries."""
import logging
from dataclasses import dataclass

from services.llm_client import LLMClient
from services.vector_store import VectorStore
from services.document_repository import DocumentRepository
from services.usage_tracker import UsageTracker
from services.prompts import get_summary_type, get_summary_system_prompt, get_summary_user_prompt
from config import CHAT_MODEL, PREMIUM_MODEL, SUMMARY_MAX_CONTEXT_CHARS

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... document truncated for length ...]"


@dataclass
class SummaryResult:
    summary: str
    cached: bool
    type: str


class Summarizer:
    """Generate a summary in one of the offered styles, reusing cached ones."""

    def __init__(
        self,
        llm_client: LLMClient,
        vector_store: VectorStore,
        repository: DocumentRepository,
        usage_tracker: UsageTracker,
        max_context_chars: int = SUMMARY_MAX_CONTEXT_CHARS
    ):
        self.llm_client = llm_client
        self.vector_store = vector_store
        self.repository = repository
        self.usage_tracker = usage_tracker
        self.max_context_chars = max_context_chars

    def summarize(
        self,
        document_id: str,
        user_id: str,
        summary_type: str = "summary",
        regenerate: bool = False
    ) -> SummaryResult:
        """
        Return the summary of a document in the requested style.

        Args:
            document_id: Processed document to summarize
            user_id: Requesting user, recorded in usage logs
            summary_type: Style id; unknown ids use the default style
            regenerate: Ignore any cached summary

        Raises:
            ValueError: If the document has no stored chunks
            RuntimeError: If the model returns an empty summary
            LLMClientError: If the generation call fails
        """
        style = get_summary_type(summary_type)

        if not regenerate:
            cached = self.repository.get_cached_summary(document_id, style.id)
            if cached:
                logger.info(f"Serving cached {style.id} summary for document {document_id}")
                return SummaryResult(summary=cached, cached=True, type=style.id)

        contents = self.vector_store.fetch_chunk_contents(document_id)
        if not contents:
            raise ValueError("No content found. Re-index the document.")

        full_text = "\n\n".join(contents)
        is_truncated = len(full_text) > self.max_context_chars
        if is_truncated:
            full_text = full_text[:self.max_context_chars] + TRUNCATION_MARKER

        model = PREMIUM_MODEL if style.premium else CHAT_MODEL
        logger.info(f"Generating {style.id} summary for document {document_id} with {model}")

        response = self.llm_client.generate(
            model=model,
            prompt=f"### Document to Summarize\n\n{get_summary_user_prompt(style.id, is_truncated)}\n\n{full_text}",
            system_prompt=get_summary_system_prompt(style.id),
            max_tokens=4000,
            temperature=0.3
        )

        summary_text = response.text.strip()
        if not summary_text:
            raise RuntimeError("Failed to generate summary")

        self.usage_tracker.track(
            user_id=user_id,
            endpoint="summarize",
            model=model,
            prompt_tokens=response.tokens_input,
            completion_tokens=response.tokens_output,
            document_id=document_id
        )

        try:
            self.repository.save_summary(document_id, style.id, summary_text)
        except Exception as e:
            logger.error(f"Summary cache write failed for document {document_id} ({style.id}): {e}")

        return SummaryResult(summary=summary_text, cached=False, type=style.id)
