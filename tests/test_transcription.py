"""Unit tests for the voice recorder and transcription engines."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock, patch
from groq import APIConnectionError
from services.transcription import (
    FakeTranscriptionEngine,
    GroqTranscriptionEngine,
    RecorderState,
    SessionSettings,
    TranscriptFragment,
    TranscriptionError,
    TranscriptionEvent,
    UnsupportedTranscriptionEngine,
    VoiceRecorder,
)


def event(*fragments):
    return TranscriptionEvent(results=tuple(TranscriptFragment(text, final) for text, final in fragments))


class TestVoiceRecorder:
    """Test suite for the recorder state machine."""

    def test_unsupported_engine_is_terminal(self):
        """Test unsupported engine leaves the recorder unsupported."""
        recorder = VoiceRecorder(UnsupportedTranscriptionEngine())

        async def scenario():
            first = recorder.start()
            second = recorder.start()
            return first, second

        assert asyncio.run(scenario()) == (False, False)
        assert recorder.state is RecorderState.UNSUPPORTED
        assert recorder.is_supported is False

    def test_only_final_fragments_are_kept(self):
        """Test only final fragments are kept."""
        engine = FakeTranscriptionEngine(events=[
            event(("what is", False)),
            event(("What is ", True), ("forag", False)),
            event(("foraging?", True)),
        ])
        recorder = VoiceRecorder(engine)

        async def scenario():
            assert recorder.start() is True
            assert recorder.state is RecorderState.RECORDING
            await recorder.wait()

        asyncio.run(scenario())

        assert recorder.state is RecorderState.IDLE
        assert recorder.take_transcript() == "What is foraging?"
        assert recorder.take_transcript() == ""

    def test_session_settings(self):
        """Test session uses the configured capture settings."""
        engine = FakeTranscriptionEngine()
        recorder = VoiceRecorder(engine)

        async def scenario():
            recorder.start()
            await recorder.wait()

        asyncio.run(scenario())

        settings = engine.last_settings
        assert settings == SessionSettings(locale="en-US", interim_results=True, single_utterance=True)

    def test_consumer_receives_transcript_exactly_once(self):
        """Test consumer receives the transcript exactly once."""
        received = []
        engine = FakeTranscriptionEngine(events=[event(("Hello", True))])
        recorder = VoiceRecorder(engine, on_transcript=received.append)

        async def scenario():
            recorder.start()
            await recorder.wait()

        asyncio.run(scenario())

        assert received == ["Hello"]
        assert recorder.transcript == ""

    def test_empty_transcript_is_not_handed_off(self):
        """Test empty transcript is not handed off."""
        received = []
        recorder = VoiceRecorder(
            FakeTranscriptionEngine(events=[event(("um", False))]),
            on_transcript=received.append,
        )

        async def scenario():
            recorder.start()
            await recorder.wait()

        asyncio.run(scenario())

        assert received == []

    def test_start_while_recording_is_ignored(self):
        """Test start while recording is ignored."""
        engine = FakeTranscriptionEngine(hold=True)
        recorder = VoiceRecorder(engine)

        async def scenario():
            assert recorder.start() is True
            assert recorder.start() is False
            await asyncio.sleep(0)
            await recorder.stop()

        asyncio.run(scenario())

        assert engine.sessions_opened == 1
        assert recorder.state is RecorderState.IDLE

    def test_stop_before_engine_starts_returns_to_idle(self):
        """Test stopping immediately after start leaves the recorder idle."""
        engine = FakeTranscriptionEngine(hold=True)
        recorder = VoiceRecorder(engine)

        async def scenario():
            recorder.start()
            await recorder.stop()

        asyncio.run(scenario())

        assert recorder.state is RecorderState.IDLE
        assert recorder.is_recording is False

    def test_restart_accepted_after_early_stop(self):
        """Test a fresh session can start after an immediate stop."""
        engine = FakeTranscriptionEngine(events=[event(("second try", True))])
        recorder = VoiceRecorder(engine)

        async def scenario():
            recorder.start()
            await recorder.stop()
            restarted = recorder.start()
            await recorder.wait()
            return restarted

        assert asyncio.run(scenario()) is True
        assert recorder.state is RecorderState.IDLE
        assert recorder.take_transcript() == "second try"

    def test_stop_keeps_captured_final_text(self):
        """Test stop keeps final text captured so far."""
        received = []
        engine = FakeTranscriptionEngine(events=[event(("Partial sentence", True))], hold=True)
        recorder = VoiceRecorder(engine, on_transcript=received.append)

        async def scenario():
            recorder.start()
            for _ in range(5):
                await asyncio.sleep(0)
            await recorder.stop()

        asyncio.run(scenario())

        assert recorder.state is RecorderState.IDLE
        assert received == ["Partial sentence"]

    def test_error_returns_to_idle(self):
        """Test engine error returns the recorder to idle."""
        engine = FakeTranscriptionEngine(
            events=[event(("Half", True))],
            error=TranscriptionError("network"),
        )
        recorder = VoiceRecorder(engine)

        async def scenario():
            recorder.start()
            await recorder.wait()

        asyncio.run(scenario())

        assert recorder.state is RecorderState.IDLE
        assert recorder.last_error == "network"

    def test_restart_clears_previous_transcript(self):
        """Test restart clears the previous transcript."""
        engine = FakeTranscriptionEngine(events=[event(("again", True))])
        recorder = VoiceRecorder(engine)

        async def scenario():
            recorder.start()
            await recorder.wait()
            recorder.start()
            await recorder.wait()

        asyncio.run(scenario())

        assert recorder.take_transcript() == "again"
        assert engine.sessions_opened == 2


class TestGroqTranscriptionEngine:
    """Test suite for the Groq Whisper engine."""

    def test_unsupported_without_api_key(self):
        """Test Groq engine is unsupported without an API key."""
        with patch('services.transcription.GROQ_API_KEY', None):
            engine = GroqTranscriptionEngine()

        assert engine.is_supported() is False

    @patch('services.transcription.AsyncGroq')
    def test_transcribes_audio_as_final_fragment(self, mock_groq_class):
        """Test audio is transcribed as one final fragment."""
        mock_client = Mock()
        mock_client.audio.transcriptions.create = AsyncMock(return_value=Mock(text=" Hello there "))
        mock_groq_class.return_value = mock_client
        engine = GroqTranscriptionEngine(api_key="test_key")

        async def collect():
            return [e async for e in engine.stream(SessionSettings(), b"audio-bytes")]

        events = asyncio.run(collect())

        assert events == [event(("Hello there", True))]
        kwargs = mock_client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["language"] == "en"
        assert kwargs["file"] == ("utterance.webm", b"audio-bytes")

    @patch('services.transcription.AsyncGroq')
    def test_missing_audio_is_capture_error(self, mock_groq_class):
        """Test missing audio is an audio-capture error."""
        engine = GroqTranscriptionEngine(api_key="test_key")

        async def collect():
            return [e async for e in engine.stream(SessionSettings(), None)]

        with pytest.raises(TranscriptionError) as exc_info:
            asyncio.run(collect())

        assert exc_info.value.kind == "audio-capture"

    @patch('services.transcription.AsyncGroq')
    def test_connection_error_is_network_kind(self, mock_groq_class):
        """Test connection error maps to the network kind."""
        mock_client = Mock()
        mock_client.audio.transcriptions.create = AsyncMock(side_effect=APIConnectionError(request=Mock()))
        mock_groq_class.return_value = mock_client
        recorder = VoiceRecorder(GroqTranscriptionEngine(api_key="test_key"))

        async def scenario():
            recorder.start(b"audio")
            await recorder.wait()

        asyncio.run(scenario())

        assert recorder.state is RecorderState.IDLE
        assert recorder.last_error == "network"
