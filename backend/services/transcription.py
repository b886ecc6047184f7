"""
Speech-to-text input for the chat bar.

A TranscriptionEngine produces a stream of result events for one utterance.
VoiceRecorder drives the engine through an explicit state machine
(IDLE -> RECORDING -> IDLE, or UNSUPPORTED when no engine is available) and
hands the finished transcript to its consumer exactly once per session.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, Iterable, Optional, Tuple

from groq import AsyncGroq
from groq import APIConnectionError, APIError, APIStatusError, AuthenticationError

from config import GROQ_API_KEY, GROQ_BASE_URL, TRANSCRIPTION_LOCALE, TRANSCRIPTION_MODEL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptFragment:
    """One recognised chunk of speech; interim fragments may still change."""
    text: str
    is_final: bool


@dataclass(frozen=True)
class TranscriptionEvent:
    """A batch of fragments delivered by the engine."""
    results: Tuple[TranscriptFragment, ...]


@dataclass(frozen=True)
class SessionSettings:
    """Capture settings for a recording session."""
    locale: str = TRANSCRIPTION_LOCALE
    interim_results: bool = True
    single_utterance: bool = True


class TranscriptionError(Exception):
    """Engine-reported failure. ``kind`` follows the engine's error vocabulary."""

    def __init__(self, kind: str, message: str = ""):
        self.kind = kind
        super().__init__(message or kind)


class TranscriptionEngine:
    """Capability interface for speech-to-text engines."""

    def is_supported(self) -> bool:
        raise NotImplementedError

    def stream(
        self,
        settings: SessionSettings,
        audio: Optional[bytes] = None
    ) -> AsyncIterator[TranscriptionEvent]:
        raise NotImplementedError


class UnsupportedTranscriptionEngine(TranscriptionEngine):
    """Stand-in when no speech engine is available on this deployment."""

    def is_supported(self) -> bool:
        return False

    async def stream(self, settings, audio=None):
        raise TranscriptionError("unsupported", "No transcription engine available")
        yield  # pragma: no cover


class GroqTranscriptionEngine(TranscriptionEngine):
    """
    Whisper transcription through the Groq audio API.

    The API transcribes a whole recorded utterance, so a session yields a
    single event holding one final fragment.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = TRANSCRIPTION_MODEL,
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key or GROQ_API_KEY
        self.model = model
        self.client = None
        if self.api_key:
            self.client = AsyncGroq(api_key=self.api_key, base_url=base_url or GROQ_BASE_URL)

    def is_supported(self) -> bool:
        return self.client is not None

    async def stream(self, settings, audio=None):
        if self.client is None:
            raise TranscriptionError("unsupported", "GROQ_API_KEY is not configured")
        if not audio:
            raise TranscriptionError("audio-capture", "No audio was captured")

        # Whisper takes an ISO-639-1 language code, not a full locale
        language = settings.locale.split("-")[0].lower()
        try:
            result = await self.client.audio.transcriptions.create(
                file=("utterance.webm", audio),
                model=self.model,
                language=language,
            )
        except AuthenticationError as e:
            raise TranscriptionError("not-allowed", str(e)) from e
        except APIConnectionError as e:
            raise TranscriptionError("network", str(e)) from e
        except APIStatusError as e:
            raise TranscriptionError("service-not-allowed", f"HTTP {e.status_code}: {e}") from e
        except APIError as e:
            raise TranscriptionError("service-not-allowed", str(e)) from e

        text = (getattr(result, "text", "") or "").strip()
        if not text:
            raise TranscriptionError("no-speech", "No speech was detected")
        yield TranscriptionEvent(results=(TranscriptFragment(text=text, is_final=True),))


class FakeTranscriptionEngine(TranscriptionEngine):
    """
    Scripted engine for tests and offline demos.

    Args:
        events: Events to emit in order
        error: Optional TranscriptionError raised after the events
        hold: Keep the session open after the events until stopped
        supported: Value reported by is_supported()
    """

    def __init__(
        self,
        events: Iterable[TranscriptionEvent] = (),
        error: Optional[TranscriptionError] = None,
        hold: bool = False,
        supported: bool = True,
    ):
        self.events = list(events)
        self.error = error
        self.hold = hold
        self.supported = supported
        self.sessions_opened = 0
        self.last_settings: Optional[SessionSettings] = None

    def is_supported(self) -> bool:
        return self.supported

    async def stream(self, settings, audio=None):
        self.sessions_opened += 1
        self.last_settings = settings
        for event in self.events:
            await asyncio.sleep(0)
            yield event
        if self.error is not None:
            raise self.error
        if self.hold:
            await asyncio.Event().wait()


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    UNSUPPORTED = "unsupported"


TranscriptConsumer = Callable[[str], None]


class VoiceRecorder:
    """
    State machine around a TranscriptionEngine.

    Only final fragments are kept. When a session ends with a non-empty
    transcript, the consumer (if any) receives it once and the transcript is
    cleared; without a consumer, ``take_transcript()`` provides the same
    one-shot read.
    """

    def __init__(
        self,
        engine: TranscriptionEngine,
        settings: Optional[SessionSettings] = None,
        on_transcript: Optional[TranscriptConsumer] = None,
    ):
        self.engine = engine
        self.settings = settings or SessionSettings()
        self.on_transcript = on_transcript
        self.state = RecorderState.IDLE
        self.transcript = ""
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_supported(self) -> bool:
        return self.state is not RecorderState.UNSUPPORTED and self.engine.is_supported()

    @property
    def is_recording(self) -> bool:
        return self.state is RecorderState.RECORDING

    def start(self, audio: Optional[bytes] = None) -> bool:
        """
        Open a recording session. Must be called from a running event loop.

        Args:
            audio: Captured audio for engines that transcribe a finished recording

        Returns:
            True if a session was started
        """
        if self.state is RecorderState.RECORDING:
            logger.warning("Recording already in progress; ignoring start")
            return False
        if self.state is RecorderState.UNSUPPORTED or not self.engine.is_supported():
            self.state = RecorderState.UNSUPPORTED
            logger.info("Speech recognition is not supported on this deployment")
            return False

        self.state = RecorderState.RECORDING
        self.transcript = ""
        self.last_error = None
        self._task = asyncio.get_running_loop().create_task(self._run(audio))
        logger.info(f"Recording started (locale={self.settings.locale})")
        return True

    async def _run(self, audio: Optional[bytes]) -> None:
        try:
            async for event in self.engine.stream(self.settings, audio):
                final_text = "".join(r.text for r in event.results if r.is_final)
                if final_text:
                    self.transcript += final_text
        except TranscriptionError as e:
            self.last_error = e.kind
            logger.error(f"Speech recognition error: {e.kind}", extra={"error_kind": e.kind})
        except Exception as e:
            self.last_error = "unknown"
            logger.error(f"Unexpected speech recognition failure: {e}", exc_info=True)
        finally:
            self._finish()

    def _finish(self) -> None:
        if self.state is not RecorderState.RECORDING:
            return
        self.state = RecorderState.IDLE
        logger.info(f"Recording ended ({len(self.transcript)} chars)")
        if self.transcript and self.on_transcript is not None:
            transcript, self.transcript = self.transcript, ""
            self.on_transcript(transcript)

    async def stop(self) -> None:
        """End the current session, keeping whatever final text was captured."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        # A task cancelled before its first step never reaches _run's finally
        self._finish()

    async def wait(self) -> None:
        """Wait for the current session to end on its own."""
        if self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    def take_transcript(self) -> str:
        """Return the finished transcript once, then clear it."""
        if self.state is RecorderState.RECORDING:
            return ""
        transcript, self.transcript = self.transcript, ""
        return transcript
