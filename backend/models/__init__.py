"""Data models for Reader App."""
from .document import Document, Page
from .conversation import Message, Role
from .reading import SearchResult, Segment
from .api import (
    ChatRequest,
    ChatResponse,
    PageResponse,
    SearchResponse,
    MessagesResponse,
    TranscriptionResponse,
)

__all__ = [
    "Document",
    "Page",
    "Message",
    "Role",
    "SearchResult",
    "Segment",
    "ChatRequest",
    "ChatResponse",
    "PageResponse",
    "SearchResponse",
    "MessagesResponse",
    "TranscriptionResponse",
]
