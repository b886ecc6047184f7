"""Reading view models: search hits and bionic segments."""
from dataclasses import dataclass


@dataclass(frozen=True)
class SearchResult:
    """First match of a query on one page."""
    page: int
    snippet: str


@dataclass(frozen=True)
class Segment:
    """
    One unit of bionic-rendered text.

    Attributes:
        text: The original characters, unmodified
        bold_length: Number of leading characters to emphasize
        is_whitespace: True for whitespace runs, which are never emphasized
    """
    text: str
    bold_length: int = 0
    is_whitespace: bool = False

    @property
    def bold(self) -> str:
        return self.text[:self.bold_length]

    @property
    def normal(self) -> str:
        return self.text[self.bold_length:]
