"""Main entry point for Reader App API."""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from config import (
    PORT,
    LOG_LEVEL,
    LOG_FORMAT,
    CORS_ORIGINS,
    DOCUMENT_PATH,
    PREFERENCES_PATH,
)
from logger import setup_logging
from models.api import (
    BookmarksResponse,
    ChatRequest,
    ChatResponse,
    DocumentInfo,
    JumpRequest,
    MessageModel,
    MessagesResponse,
    PageResponse,
    PreferencesResponse,
    SearchResponse,
    SearchResultModel,
    SegmentModel,
    TranscriptionResponse,
)
from models.reading import SearchResult
from services.assistant_pipeline import AssistantPipeline
from services.conversation_log import ConversationLogError, create_conversation_log
from services.document_loader import DocumentLoader
from services.llm_client import LLMClient
from services.preferences import JsonFilePreferenceStore, SessionPreferences
from services.reading_session import ReadingSession
from services.text_renderer import segments_to_html
from services.transcription import GroqTranscriptionEngine

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Reader App",
    description="Paginated reader with a page-scoped reading assistant",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
session: ReadingSession = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global session

    logger.info("Initializing Reader App services...")

    try:
        document = DocumentLoader(DOCUMENT_PATH).load()
        preferences = SessionPreferences(JsonFilePreferenceStore(PREFERENCES_PATH))

        conversation_log = await create_conversation_log()
        pipeline = AssistantPipeline(LLMClient(), conversation_log)
        logger.info("Initialized AssistantPipeline")

        session = ReadingSession(
            document=document,
            preferences=preferences,
            pipeline=pipeline,
            transcription_engine=GroqTranscriptionEngine(),
        )
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _page_response() -> PageResponse:
    view = session.page_view()
    segments = None
    html = None
    if isinstance(view.rendered, list):
        segments = [
            SegmentModel(text=s.text, bold=s.bold, normal=s.normal, is_whitespace=s.is_whitespace)
            for s in view.rendered
        ]
        html = segments_to_html(view.rendered)
    return PageResponse(
        number=view.number,
        total_pages=view.total_pages,
        content=view.content,
        segments=segments,
        html=html,
        is_bookmarked=view.is_bookmarked,
        has_prev=view.has_prev,
        has_next=view.has_next,
        scroll_to_top=session.consume_scroll_signal(),
    )


def _transcription_response() -> TranscriptionResponse:
    recorder = session.recorder
    return TranscriptionResponse(
        state=recorder.state.value,
        supported=recorder.is_supported,
        last_error=recorder.last_error,
        pending_input=session.consume_pending_input(),
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Reader App API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "reader-app",
        "version": "1.0.0"
    }


@app.get("/document", response_model=DocumentInfo)
async def document_info() -> DocumentInfo:
    return DocumentInfo(title=session.document.title, total_pages=session.document.total_pages)


# Navigation

@app.get("/page", response_model=PageResponse)
async def current_page() -> PageResponse:
    return _page_response()


@app.post("/page/next", response_model=PageResponse)
async def next_page() -> PageResponse:
    session.navigator.next()
    return _page_response()


@app.post("/page/prev", response_model=PageResponse)
async def prev_page() -> PageResponse:
    session.navigator.prev()
    return _page_response()


@app.post("/page/jump", response_model=PageResponse)
async def jump_to_page(request: JumpRequest) -> PageResponse:
    """Page-jump form. Invalid or out-of-range input leaves the position unchanged."""
    session.navigator.jump_to(str(request.page))
    return _page_response()


@app.post("/page/{page_number}", response_model=PageResponse)
async def go_to_page(page_number: int) -> PageResponse:
    session.navigator.go_to(page_number)
    return _page_response()


# Bookmarks

@app.get("/bookmarks", response_model=BookmarksResponse)
async def bookmarks() -> BookmarksResponse:
    return BookmarksResponse(
        bookmarks=session.navigator.bookmarks,
        current_page_bookmarked=session.navigator.is_bookmarked,
    )


@app.post("/bookmarks/toggle", response_model=BookmarksResponse)
async def toggle_bookmark() -> BookmarksResponse:
    bookmarked = session.navigator.toggle_bookmark()
    return BookmarksResponse(bookmarks=session.navigator.bookmarks, current_page_bookmarked=bookmarked)


# Search

@app.get("/search", response_model=SearchResponse)
async def search(q: str = "") -> SearchResponse:
    results = session.search(q)
    return SearchResponse(
        query=q,
        results=[SearchResultModel(page=r.page, snippet=r.snippet) for r in results],
    )


@app.post("/search/select", response_model=PageResponse)
async def select_search_result(result: SearchResultModel) -> PageResponse:
    session.select_result(SearchResult(page=result.page, snippet=result.snippet))
    return _page_response()


# Display preferences

@app.get("/preferences", response_model=PreferencesResponse)
async def preferences() -> PreferencesResponse:
    return PreferencesResponse(
        dark_mode=session.preferences.dark_mode,
        bionic_mode=session.preferences.bionic_mode,
    )


@app.post("/preferences/dark-mode", response_model=PreferencesResponse)
async def toggle_dark_mode() -> PreferencesResponse:
    session.toggle_dark_mode()
    return await preferences()


@app.post("/preferences/bionic-mode", response_model=PreferencesResponse)
async def toggle_bionic_mode() -> PreferencesResponse:
    session.toggle_bionic_mode()
    return await preferences()


# Chat

@app.get("/chat/messages", response_model=MessagesResponse)
async def chat_messages() -> MessagesResponse:
    try:
        messages = await session.pipeline.get_recent()
    except ConversationLogError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return MessagesResponse(
        messages=[
            MessageModel(
                id=m.id,
                content=m.content,
                role=m.role.value,
                page_number=m.page_number,
                created_at=m.created_at,
            )
            for m in messages
        ],
        pipeline_state=session.pipeline.state.value,
    )


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest) -> ChatResponse:
    """
    Ask the reading assistant about the current page.

    Blank questions and questions sent while another answer is pending are
    not accepted. Generation failures still return 200 with the fallback
    answer; only an unavailable message store is an error.
    """
    page_number = session.navigator.current_page
    try:
        answer = await session.ask(request.question)
    except ConversationLogError as e:
        logger.error(f"Conversation log error: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return ChatResponse(answer=answer, accepted=answer is not None, page_number=page_number)


@app.delete("/chat/messages")
async def clear_chat():
    try:
        await session.pipeline.clear_all()
    except ConversationLogError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "cleared"}


# Voice input

@app.get("/transcription", response_model=TranscriptionResponse)
async def transcription_status() -> TranscriptionResponse:
    return _transcription_response()


@app.post("/transcription/start", response_model=TranscriptionResponse)
async def start_transcription(request: Request) -> TranscriptionResponse:
    """Start a recording session. The request body carries the captured audio."""
    audio = await request.body()
    session.start_recording(audio or None)
    return _transcription_response()


@app.post("/transcription/stop", response_model=TranscriptionResponse)
async def stop_transcription() -> TranscriptionResponse:
    await session.stop_recording()
    return _transcription_response()


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Reader App API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
