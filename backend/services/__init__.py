"""Services for Reader App."""
from .document_loader import DocumentLoader
from .preferences import PreferenceStore, InMemoryPreferenceStore, JsonFilePreferenceStore, SessionPreferences
from .navigator import Navigator
from .search_engine import SearchEngine
from .text_renderer import TextRenderer, to_bionic, segments_to_html
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .conversation_log import ConversationLog, ConversationLogError, InMemoryConversationLog, SupabaseConversationLog
from .assistant_pipeline import AssistantPipeline, PageContext, PipelineState
from .transcription import VoiceRecorder, RecorderState, TranscriptionEngine, TranscriptionError
from .reading_session import ReadingSession

__all__ = ['DocumentLoader', 'PreferenceStore', 'InMemoryPreferenceStore', 'JsonFilePreferenceStore', 'SessionPreferences', 'Navigator', 'SearchEngine', 'TextRenderer', 'to_bionic', 'segments_to_html', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'ConversationLog', 'ConversationLogError', 'InMemoryConversationLog', 'SupabaseConversationLog', 'AssistantPipeline', 'PageContext', 'PipelineState', 'VoiceRecorder', 'RecorderState', 'TranscriptionEngine', 'TranscriptionError', 'ReadingSession']
