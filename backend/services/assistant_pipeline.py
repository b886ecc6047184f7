"""Assistant pipeline: logs the question, asks the model, logs the answer."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from config import FALLBACK_MESSAGE, MAX_RESPONSE_TOKENS, RECENT_MESSAGE_LIMIT
from models.conversation import Message, Role
from services.conversation_log import ConversationLog
from services.llm_client import LLMClient, LLMClientError

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle of a single chat request."""
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_GENERATION = "awaiting_generation"


@dataclass(frozen=True)
class PageContext:
    """Scoping context sent with every question."""
    book_title: str
    page_number: int
    page_content: str


class AssistantPipeline:
    """
    Coordinates one question/answer exchange at a time.

    The user message is appended before the generation request is issued, so
    a failed request never loses the question. Generation failures are turned
    into FALLBACK_MESSAGE for the caller and produce no assistant entry.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        conversation_log: ConversationLog,
        max_tokens: int = MAX_RESPONSE_TOKENS,
        recent_limit: int = RECENT_MESSAGE_LIMIT,
    ):
        """
        Initialize the pipeline.

        Args:
            llm_client: Generation client
            conversation_log: Message store
            max_tokens: Response length cap for each request
            recent_limit: Number of messages returned by get_recent()
        """
        self.llm_client = llm_client
        self.conversation_log = conversation_log
        self.max_tokens = max_tokens
        self.recent_limit = recent_limit
        self.state = PipelineState.IDLE
        self._listeners: List[Callable[[], None]] = []

    @property
    def is_busy(self) -> bool:
        return self.state is not PipelineState.IDLE

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback fired after every append or clear, as a refresh trigger."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    async def submit(self, question: str, context: PageContext) -> Optional[str]:
        """
        Ask a question about the current page.

        Args:
            question: Reader's question
            context: Page the question is scoped to

        Returns:
            The assistant's answer, FALLBACK_MESSAGE if generation failed, or
            None if the question was blank or another request is in flight

        Raises:
            ConversationLogError: If the message store is unavailable
        """
        if not question or not question.strip():
            return None
        if self.is_busy:
            logger.warning(f"Ignoring question while pipeline is {self.state.value}")
            return None

        question = question.strip()
        self.state = PipelineState.SENDING
        try:
            # Step 1: Persist the question before anything can fail downstream
            await self.conversation_log.append(question, Role.USER, context.page_number)
            self._notify()

            # Step 2: Page-scoped generation request
            self.state = PipelineState.AWAITING_GENERATION
            messages = LLMClient.build_messages(
                book_title=context.book_title,
                page_number=context.page_number,
                page_content=context.page_content,
                question=question,
            )
            try:
                response = await self.llm_client.generate(messages, max_tokens=self.max_tokens)
            except LLMClientError as e:
                logger.error(
                    f"Generation failed for page {context.page_number}: {e.error.message}",
                    extra={"error_code": e.error.code, "error_details": e.error.details}
                )
                return FALLBACK_MESSAGE

            # Step 3: Persist the answer
            await self.conversation_log.append(response.text, Role.ASSISTANT, context.page_number)
            self._notify()
            return response.text
        finally:
            self.state = PipelineState.IDLE

    async def get_recent(self) -> List[Message]:
        """Most recent messages, oldest first."""
        return await self.conversation_log.query_recent(self.recent_limit)

    async def clear_all(self) -> None:
        """Delete every message. Irreversible; confirmation is the caller's job."""
        await self.conversation_log.delete_all()
        logger.info("Conversation cleared")
        self._notify()
