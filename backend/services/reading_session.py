"""Reading session: one reader's document, position, chat and voice input."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from models.document import Document
from models.reading import SearchResult, Segment
from services.assistant_pipeline import AssistantPipeline, PageContext
from services.navigator import Navigator
from services.preferences import SessionPreferences
from services.search_engine import SearchEngine
from services.text_renderer import TextRenderer
from services.transcription import TranscriptionEngine, VoiceRecorder

logger = logging.getLogger(__name__)


@dataclass
class PageView:
    """Everything the presentation layer needs to draw the current page."""
    number: int
    total_pages: int
    content: str
    rendered: Union[str, List[Segment]]
    is_bookmarked: bool
    has_prev: bool
    has_next: bool


class ReadingSession:
    """Wires the reading services together for a single reader."""

    def __init__(
        self,
        document: Document,
        preferences: SessionPreferences,
        pipeline: AssistantPipeline,
        transcription_engine: TranscriptionEngine,
    ):
        self.document = document
        self.preferences = preferences
        self.navigator = Navigator(document, preferences)
        self.search_engine = SearchEngine(document)
        self.renderer = TextRenderer(preferences)
        self.pipeline = pipeline
        self.recorder = VoiceRecorder(transcription_engine, on_transcript=self._adopt_transcript)
        self.pending_input: Optional[str] = None
        self.scroll_to_top = False
        self.navigator.add_listener(self._on_page_change)

    def _on_page_change(self, page: int) -> None:
        self.scroll_to_top = True

    def consume_scroll_signal(self) -> bool:
        signal, self.scroll_to_top = self.scroll_to_top, False
        return signal

    def page_view(self) -> PageView:
        content = self.navigator.current_content
        return PageView(
            number=self.navigator.current_page,
            total_pages=self.document.total_pages,
            content=content,
            rendered=self.renderer.render(content),
            is_bookmarked=self.navigator.is_bookmarked,
            has_prev=self.navigator.has_prev,
            has_next=self.navigator.has_next,
        )

    # Search

    def search(self, query: str) -> List[SearchResult]:
        return self.search_engine.search(query)

    def select_result(self, result: SearchResult) -> bool:
        return self.search_engine.select(result, self.navigator)

    # Display preferences

    def toggle_dark_mode(self) -> bool:
        return self.preferences.toggle_dark_mode()

    def toggle_bionic_mode(self) -> bool:
        return self.renderer.toggle()

    # Chat

    def page_context(self) -> PageContext:
        return PageContext(
            book_title=self.document.title,
            page_number=self.navigator.current_page,
            page_content=self.navigator.current_content,
        )

    async def ask(self, question: str) -> Optional[str]:
        """Submit a question scoped to the page currently shown."""
        return await self.pipeline.submit(question, self.page_context())

    # Voice input

    def start_recording(self, audio: Optional[bytes] = None) -> bool:
        """Start voice capture; refused while a chat request is in flight."""
        if self.pipeline.is_busy:
            logger.warning("Ignoring recording request while a question is being answered")
            return False
        return self.recorder.start(audio)

    async def stop_recording(self) -> None:
        await self.recorder.stop()

    def _adopt_transcript(self, transcript: str) -> None:
        self.pending_input = transcript
        logger.info("Transcript adopted as pending chat input")

    def consume_pending_input(self) -> Optional[str]:
        pending, self.pending_input = self.pending_input, None
        return pending
