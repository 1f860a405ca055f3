"""Best-effort logging of LLM token usage to Supabase."""
import logging
from typing import Optional
from supabase import Client

logger = logging.getLogger(__name__)


class UsageTracker:
    """Writes one ai_usage_log row per LLM call. Failures never reach the caller."""

    def __init__(self, client: Client, table_name: str = "ai_usage_log"):
        self.client = client
        self.table_name = table_name

    def track(
        self,
        user_id: str,
        endpoint: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        document_id: Optional[str] = None
    ) -> None:
        try:
            self.client.table(self.table_name).insert({
                "user_id": user_id,
                "endpoint": endpoint,
                "model": model,
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
                "document_id": document_id
            }).execute()
        except Exception as e:
            logger.error(
                f"Failed to track AI usage: {e}",
                extra={"endpoint": endpoint, "model": model}
            )
