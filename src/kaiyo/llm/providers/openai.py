from collections.abc import AsyncIterator
from typing import Any

from loguru import logger
from openai import AsyncOpenAI

from ..base import LLMProvider
from ..models import (
    ChatMessage,
    CompletionDelta,
    LLMResponse,
    StreamingResponse,
    ToolCallDelta,
    ToolCallRequest,
    ToolSpec,
)


def _messages_to_openai_format(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert chat messages to Chat Completions message params.

    - 'system' and 'user' messages carry plain content
    - 'assistant' messages carry their tool calls as function calls
    - 'tool' messages carry the id of the call they answer

    Returns:
        List of message dicts accepted by chat.completions.create
    """
    openai_messages: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == "assistant" and msg.tool_calls:
            openai_messages.append({
                "role": "assistant",
                "content": msg.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.arguments},
                    }
                    for call in msg.tool_calls
                ],
            })
        elif msg.role == "tool":
            openai_messages.append({
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content,
            })
        else:
            openai_messages.append({"role": msg.role, "content": msg.content})

    return openai_messages


def _tools_to_openai_format(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    """Convert tool signatures to Chat Completions function tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def _usage_to_dict(usage: Any) -> dict[str, int] | None:
    if usage is None:
        return None
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
    }


class OpenAIProvider(LLMProvider):
    """OpenAI LLM provider implementation.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message and tool format conversion
    - Decoding of streamed chunks into CompletionDelta fragments
    - Authentication mechanism
    """

    # Whether the endpoint accepts stream_options={"include_usage": True}
    supports_stream_usage = True

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Default model to use
            base_url: Optional custom API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._client = self._build_client(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    def _build_client(self, **client_kwargs: Any) -> AsyncOpenAI:
        """Create the SDK client. Subclasses swap in compatible clients."""
        return AsyncOpenAI(**client_kwargs)

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def _request_params(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec] | None,
        model: str | None,
        temperature: float,
        max_tokens: int | None,
        **kwargs: Any
    ) -> dict[str, Any]:
        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": _messages_to_openai_format(messages),
            "temperature": temperature,
            **kwargs
        }
        if tools:
            request_params["tools"] = _tools_to_openai_format(tools)
        else:
            request_params.pop("tool_choice", None)
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        return request_params

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a chat completion using OpenAI.

        Args:
            messages: Conversation history
            tools: Tools the model may call
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            LLMResponse with generated content and requested tool calls
        """
        request_params = self._request_params(
            messages, tools, model, temperature, max_tokens, **kwargs
        )
        completion = await self._client.chat.completions.create(**request_params)

        choice = completion.choices[0]
        tool_calls = []
        for call in choice.message.tool_calls or []:
            function = getattr(call, "function", None)
            if function is None:
                # Custom (non-function) tool calls are never advertised
                logger.warning(f"Ignoring non-function tool call {call.id}")
                continue
            tool_calls.append(ToolCallRequest(
                id=call.id,
                name=function.name,
                arguments=function.arguments or "",
            ))

        return LLMResponse(
            content=choice.message.content or "",
            model=completion.model,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason,
            usage=_usage_to_dict(completion.usage),
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming chat completion using OpenAI.

        The HTTP request is issued before this method returns, so connection
        and authentication failures surface here rather than on first
        iteration.

        Args:
            messages: Conversation history
            tools: Tools the model may call
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            StreamingResponse that yields CompletionDelta fragments
        """
        request_params = self._request_params(
            messages, tools, model, temperature, max_tokens, **kwargs
        )
        request_params["stream"] = True
        if self.supports_stream_usage:
            request_params["stream_options"] = {"include_usage": True}

        stream = await self._client.chat.completions.create(**request_params)
        return StreamingResponse(self._delta_generator(stream))

    async def _delta_generator(self, stream: Any) -> AsyncIterator[CompletionDelta]:
        """Decode raw chunks into CompletionDelta fragments.

        The SDK stream is closed when this generator finishes or is closed
        early, so the HTTP response is released either way.
        """
        try:
            async for chunk in stream:
                usage = _usage_to_dict(getattr(chunk, "usage", None))

                if not chunk.choices:
                    # Usage-only chunk at the end of the stream
                    yield CompletionDelta(usage=usage)
                    continue

                choice = chunk.choices[0]
                delta = choice.delta
                tool_deltas = [
                    ToolCallDelta(
                        index=call.index,
                        id=call.id,
                        name=call.function.name if call.function else None,
                        arguments=(call.function.arguments or "") if call.function else "",
                    )
                    for call in (delta.tool_calls or [])
                ]

                yield CompletionDelta(
                    role=delta.role,
                    content=delta.content,
                    tool_calls=tool_deltas,
                    finish_reason=choice.finish_reason,
                    usage=usage,
                )
        finally:
            await stream.close()

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
