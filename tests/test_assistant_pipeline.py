"""Unit tests for AssistantPipeline."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock
from config import FALLBACK_MESSAGE
from models.conversation import Role
from services.assistant_pipeline import AssistantPipeline, PageContext, PipelineState
from services.conversation_log import ConversationLogError, InMemoryConversationLog
from services.llm_client import LLMError, LLMClientError, LLMResponse

CONTEXT = PageContext(book_title="Test Book", page_number=4, page_content="The quick brown fox")


def llm_response(text="An answer."):
    return LLMResponse(text=text, tokens_input=10, tokens_output=5, latency_ms=20, model_used="test-model")


@pytest.fixture
def log():
    return InMemoryConversationLog()


@pytest.fixture
def llm_client():
    client = Mock()
    client.generate = AsyncMock(return_value=llm_response())
    return client


@pytest.fixture
def pipeline(llm_client, log):
    return AssistantPipeline(llm_client, log)


class TestSubmit:
    """Test suite for AssistantPipeline.submit."""

    def test_successful_cycle_logs_question_and_answer(self, pipeline, log, llm_client):
        """Test successful submit logs the question and the answer."""
        answer = asyncio.run(pipeline.submit("  Who is quick?  ", CONTEXT))

        assert answer == "An answer."
        messages = asyncio.run(log.query_recent())
        assert [(m.role, m.content, m.page_number) for m in messages] == [
            (Role.USER, "Who is quick?", 4),
            (Role.ASSISTANT, "An answer.", 4),
        ]
        assert pipeline.state is PipelineState.IDLE

    def test_request_is_scoped_to_page(self, pipeline, llm_client):
        """Test generation request carries the current page context."""
        asyncio.run(pipeline.submit("Who is quick?", CONTEXT))

        messages = llm_client.generate.call_args.args[0]
        assert "Test Book" in messages[0]["content"]
        assert "page 4" in messages[0]["content"]
        assert "The quick brown fox" in messages[0]["content"]
        assert messages[1] == {"role": "user", "content": "Who is quick?"}
        assert llm_client.generate.call_args.kwargs["max_tokens"] == 1024

    @pytest.mark.parametrize("question", ["", "   ", "\n"])
    def test_blank_question_is_ignored(self, pipeline, log, llm_client, question):
        """Test blank question issues no request."""
        assert asyncio.run(pipeline.submit(question, CONTEXT)) is None

        llm_client.generate.assert_not_called()
        assert asyncio.run(log.query_recent()) == []

    def test_generation_failure_keeps_question_and_returns_fallback(self, pipeline, log, llm_client):
        """Test generation failure keeps the question and returns the fallback."""
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="API_ERROR", message="HTTP 500", details={})
        )

        answer = asyncio.run(pipeline.submit("Who is quick?", CONTEXT))

        assert answer == FALLBACK_MESSAGE
        messages = asyncio.run(log.query_recent())
        assert [m.role for m in messages] == [Role.USER]
        assert pipeline.state is PipelineState.IDLE

    def test_question_logged_before_request_is_issued(self, log):
        """Test question is logged before the generation request."""
        order = []
        original_append = log.append

        async def recording_append(content, role, page_number):
            order.append(f"append:{Role(role).value}")
            return await original_append(content, role, page_number)

        async def generate(messages, max_tokens):
            order.append("generate")
            return llm_response()

        log.append = recording_append
        client = Mock()
        client.generate = generate
        pipeline = AssistantPipeline(client, log)

        asyncio.run(pipeline.submit("Q", CONTEXT))

        assert order == ["append:user", "generate", "append:assistant"]

    def test_second_submit_while_in_flight_is_rejected(self, log):
        """Test second submit while a request is in flight is rejected."""
        async def scenario():
            release = asyncio.Event()
            calls = []

            async def generate(messages, max_tokens):
                calls.append(messages)
                await release.wait()
                return llm_response()

            client = Mock()
            client.generate = generate
            pipeline = AssistantPipeline(client, log)

            first = asyncio.create_task(pipeline.submit("First", CONTEXT))
            while pipeline.state is not PipelineState.AWAITING_GENERATION:
                await asyncio.sleep(0)

            second = await pipeline.submit("Second", CONTEXT)
            release.set()
            first_answer = await first
            return first_answer, second, calls

        first_answer, second, calls = asyncio.run(scenario())

        assert first_answer == "An answer."
        assert second is None
        assert len(calls) == 1
        messages = asyncio.run(log.query_recent())
        assert [m.content for m in messages] == ["First", "An answer."]

    def test_log_failure_propagates_and_resets_state(self, llm_client):
        """Test log failure propagates and the pipeline returns to idle."""
        log = Mock()
        log.append = AsyncMock(side_effect=ConversationLogError("down"))
        pipeline = AssistantPipeline(llm_client, log)

        with pytest.raises(ConversationLogError):
            asyncio.run(pipeline.submit("Q", CONTEXT))

        llm_client.generate.assert_not_called()
        assert pipeline.state is PipelineState.IDLE


class TestHistory:
    """get_recent / clear_all / listeners."""

    def test_get_recent_limited_to_fifty(self, pipeline, log):
        """Test recent history is limited to fifty messages."""
        async def scenario():
            for i in range(30):
                await pipeline.submit(f"Q{i}", CONTEXT)
            return await pipeline.get_recent()

        messages = asyncio.run(scenario())

        assert len(messages) == 50
        assert messages[-1].role is Role.ASSISTANT
        assert messages[0].content == "Q5"

    def test_clear_all_empties_history(self, pipeline):
        """Test clear_all empties the history."""
        async def scenario():
            await pipeline.submit("Q", CONTEXT)
            await pipeline.clear_all()
            return await pipeline.get_recent()

        assert asyncio.run(scenario()) == []

    def test_listeners_fire_after_each_write(self, pipeline):
        """Test listeners fire after each log write."""
        calls = []
        pipeline.add_listener(lambda: calls.append("changed"))

        async def scenario():
            await pipeline.submit("Q", CONTEXT)
            await pipeline.clear_all()

        asyncio.run(scenario())

        assert calls == ["changed", "changed", "changed"]
