"""API request/response models."""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class SegmentModel(BaseModel):
    text: str
    bold: str
    normal: str
    is_whitespace: bool = False


class DocumentInfo(BaseModel):
    title: str
    total_pages: int


class PageResponse(BaseModel):
    """Current page, rendered according to the bionic preference."""
    number: int
    total_pages: int
    content: str
    segments: Optional[List[SegmentModel]] = None
    html: Optional[str] = None
    is_bookmarked: bool
    has_prev: bool
    has_next: bool
    scroll_to_top: bool = False


class JumpRequest(BaseModel):
    page: Union[int, str]


class BookmarksResponse(BaseModel):
    bookmarks: List[int]
    current_page_bookmarked: bool


class SearchResultModel(BaseModel):
    page: int
    snippet: str


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultModel]


class PreferencesResponse(BaseModel):
    dark_mode: bool
    bionic_mode: bool


class ChatRequest(BaseModel):
    question: str = Field(..., description="Question about the current page")


class ChatResponse(BaseModel):
    answer: Optional[str] = None
    accepted: bool
    page_number: int


class MessageModel(BaseModel):
    id: Union[int, str]
    content: str
    role: str
    page_number: int
    created_at: datetime


class MessagesResponse(BaseModel):
    messages: List[MessageModel]
    pipeline_state: str


class TranscriptionResponse(BaseModel):
    state: str
    supported: bool
    last_error: Optional[str] = None
    pending_input: Optional[str] = None
