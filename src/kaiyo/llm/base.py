from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, LLMResponse, StreamingResponse, ToolSpec


class LLMProvider(ABC):
    """Abstract base class for chat-completion backends.

    This module hides the design decision of which vendor answers a turn.
    Implementations own:
    - client construction and credentials
    - translating ChatMessage/ToolSpec to the wire format and back
    - decoding streamed chunks into CompletionDelta fragments

    No retries happen here. A failed call raises to the orchestrator,
    which decides what the turn does next.

    Usable as an async context manager:
        async with provider:
            response = await provider.chat_completion(messages, tools=specs)
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model (or deployment) used when a call does not name one."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Run one blocking completion over the conversation.

        Args:
            messages: Conversation so far, oldest first
            tools: Callable tools offered to the model; None or [] offers none
            model: Override for the default model
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Cap on generated tokens
            **kwargs: Passed through to the vendor, e.g. tool_choice

        Returns:
            LLMResponse with text, requested tool calls and usage

        Raises:
            Exception: Whatever the vendor client raises
        """

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Start a streamed completion over the conversation.

        Same arguments as chat_completion. The returned StreamingResponse
        yields CompletionDelta fragments; its usage is filled in once the
        iteration has finished.

        Raises:
            Exception: Whatever the vendor client raises when opening the stream
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close on exit.

        "Event loop is closed" during teardown is ignored; httpx raises it
        when the loop shuts down first (https://github.com/encode/httpx/issues/914).
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
