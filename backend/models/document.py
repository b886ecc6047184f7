"""Document data models."""
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Page:
    """Represents a single page of the book."""
    number: int  # 1-indexed
    content: str


@dataclass(frozen=True)
class Document:
    """Represents the loaded book. Immutable after load."""
    title: str
    pages: Tuple[Page, ...]

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def page(self, number: int) -> Optional[Page]:
        """Return the page with the given 1-indexed number, or None if out of range."""
        if 1 <= number <= len(self.pages):
            return self.pages[number - 1]
        return None
