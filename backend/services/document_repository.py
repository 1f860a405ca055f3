"""Document and summary records stored in Supabase PostgreSQL."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Reads document ownership/status and caches generated summaries."""

    def __init__(self, client: Optional[Client] = None):
        """Initialize with an existing client or one built from environment settings."""
        if client is None:
            if not SUPABASE_URL or not SUPABASE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")
            client = create_client(SUPABASE_URL, SUPABASE_KEY)

        self.client: Client = client
        logger.info("DocumentRepository initialized with Supabase")

    def get_document(self, document_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a document row owned by user_id.

        Returns:
            The row, or None when it does not exist or belongs to someone else
        """
        result = (
            self.client.table("documents")
            .select("id, user_id, storage_path, status, chunk_count")
            .eq("id", document_id)
            .eq("user_id", user_id)
            .execute()
        )
        return result.data[0] if result.data else None

    def update_progress(self, document_id: str, progress: int, **fields: Any) -> None:
        """Record processing progress (0-100) plus any other document columns."""
        record = {
            "processing_progress": progress,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            **fields
        }
        self.client.table("documents").update(record).eq("id", document_id).execute()
        logger.debug(f"Document {document_id} progress {progress}%")

    def get_cached_summary(self, document_id: str, summary_type: str) -> Optional[str]:
        result = (
            self.client.table("summaries")
            .select("summary_text")
            .eq("document_id", document_id)
            .eq("summary_type", summary_type)
            .execute()
        )
        if result.data:
            return result.data[0].get("summary_text") or None
        return None

    def save_summary(self, document_id: str, summary_type: str, summary_text: str) -> None:
        self.client.table("summaries").upsert(
            {
                "document_id": document_id,
                "summary_type": summary_type,
                "summary_text": summary_text
            },
            on_conflict="document_id,summary_type"
        ).execute()
