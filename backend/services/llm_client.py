"""LLM Client for page-scoped chat completions over the Groq API."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import AsyncGroq
from groq import (
    RateLimitError,
    AuthenticationError,
    APIError,
    APITimeoutError,
    APIConnectionError,
    APIStatusError,
)
import logging

from config import (
    GROQ_API_KEY,
    GROQ_BASE_URL,
    APP_TITLE,
    APP_URL,
    CHAT_MODEL,
    MAX_RESPONSE_TOKENS,
)

logger = logging.getLogger(__name__)


SYSTEM_PROMPT_TEMPLATE = """You are a helpful reading assistant for "{book_title}".
The user is currently on page {page_number}.

Current page content:
---
{page_content}
---

Help the user understand this content. Be concise and helpful. Reference specific parts of the text when relevant.
If the question isn't about this page, politely mention you only have context for the current page."""


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for the chat-completions endpoint used by the reading assistant."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        base_url: Optional[str] = None,
    ):
        """
        Initialize LLM client.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model name
            base_url: Optional API base URL override (defaults to GROQ_BASE_URL)
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        # Client identification headers ride along on every request
        self.client = AsyncGroq(
            api_key=self.api_key,
            base_url=base_url or GROQ_BASE_URL,
            default_headers={
                "HTTP-Referer": APP_URL,
                "X-Title": APP_TITLE,
            },
        )
        logger.info(f"LLMClient initialized successfully (model={self.model})")

    async def generate(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = MAX_RESPONSE_TOKENS
    ) -> LLMResponse:
        """
        Generate a response for a prepared conversation.

        Args:
            messages: Chat turns, usually from build_messages()
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {self.model}")

            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
            )
        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                start_time, e, retry_after=60,
            )
        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                start_time, e, status_code=e.status_code,
            )
        except APITimeoutError as e:
            raise self._error("TIMEOUT_ERROR", "Request timed out. Please try again.", start_time, e)
        except APIConnectionError as e:
            raise self._error(
                "NETWORK_FAILURE",
                "Could not reach the generation service.",
                start_time, e,
            )
        except APIStatusError as e:
            raise self._error(
                "API_ERROR",
                f"Generation service returned HTTP {e.status_code}",
                start_time, e, status_code=e.status_code,
            )
        except APIError as e:
            # Response body did not match the expected schema
            raise self._error("MALFORMED_RESPONSE", f"Malformed API response: {str(e)}", start_time, e)
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                start_time, e, error_type=type(e).__name__,
            )

        latency_ms = int((time.time() - start_time) * 1000)

        # choices[0].message.content is the only field the caller relies on
        choices = getattr(response, "choices", None) or []
        text = None
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", None)
        if not isinstance(text, str) or not text:
            raise self._error(
                "MALFORMED_RESPONSE",
                "Response did not contain choices[0].message.content",
                start_time, None, choices=len(choices),
            )

        usage = getattr(response, "usage", None)
        tokens_input = getattr(usage, "prompt_tokens", 0) or 0
        tokens_output = getattr(usage, "completion_tokens", 0) or 0

        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=self.model
        )

    def _error(
        self,
        code: str,
        message: str,
        start_time: float,
        cause: Optional[Exception],
        **details: Any
    ) -> LLMClientError:
        """Build and log a structured LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": self.model,
                "latency_ms": latency_ms,
                "original_error": str(cause) if cause is not None else None,
                **details,
            }
        )
        logger.error(
            f"{code}: model={self.model}, latency={latency_ms}ms, error={cause}",
            exc_info=cause is not None,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    @staticmethod
    def build_messages(
        book_title: str,
        page_number: int,
        page_content: str,
        question: str
    ) -> List[Dict[str, str]]:
        """
        Build the page-scoped conversation for one question.

        Args:
            book_title: Title of the document being read
            page_number: Page the reader is on
            page_content: Full text of that page
            question: The reader's question

        Returns:
            System turn with the page context followed by the user turn
        """
        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            book_title=book_title,
            page_number=page_number,
            page_content=page_content,
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": question},
        ]
