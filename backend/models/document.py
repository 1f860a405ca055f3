"""Document data models."""
from dataclasses import dataclass
from typing import List


@dataclass
class Page:
    """Represents a single page from a document."""
    page_number: int
    text: str


@dataclass
class Document:
    """Represents a loaded PDF document."""
    filename: str
    pages: List[Page]

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        """Full document text, pages separated by a blank line."""
        return "\n\n".join(page.text for page in self.pages).strip()
