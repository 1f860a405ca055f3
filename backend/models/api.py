"""Request and response models for the DocAI API."""
from typing import Optional
from pydantic import BaseModel, Field

from config import MAX_MESSAGE_CHARS


class ChatRequest(BaseModel):
    """Question about a processed document."""
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)


class SummarizeRequest(BaseModel):
    """Summary request; unknown types fall back to the default style."""
    type: str = "summary"
    regenerate: bool = False


class ProcessResponse(BaseModel):
    chunks_inserted: int
    page_count: int


class SummaryResponse(BaseModel):
    summary: str
    cached: bool
    type: str


class Source(BaseModel):
    """Citation shown next to a streamed answer."""
    id: str
    content: str
    page: Optional[int] = None
    chunk_index: int
    section: Optional[str] = None


class SummaryTypeInfo(BaseModel):
    """A summary style the client can offer in its picker."""
    id: str
    label: str
    description: str
    premium: bool
