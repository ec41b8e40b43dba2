from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Role = Literal["system", "user", "assistant", "tool"]


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Provider-assigned call identifier")
    name: str = Field(description="Name of the tool to invoke")
    arguments: str = Field(default="", description="Raw JSON argument payload")


class ChatMessage(BaseModel):
    """Represents a chat message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Role of the message sender")
    content: str = Field(default="", description="Content of the message")
    tool_calls: list[ToolCallRequest] | None = Field(
        default=None,
        description="Tool calls requested by an assistant message"
    )
    tool_call_id: str | None = Field(
        default=None,
        description="Identifier of the call a tool message answers"
    )

    @model_validator(mode="after")
    def _check_tool_linkage(self) -> "ChatMessage":
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("tool messages must carry a tool_call_id")
        if self.role != "tool" and self.tool_call_id is not None:
            raise ValueError(f"{self.role} messages cannot carry a tool_call_id")
        if self.tool_calls and self.role != "assistant":
            raise ValueError("only assistant messages can request tool calls")
        return self


class ToolSpec(BaseModel):
    """Signature of a callable tool, as advertised to the provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any] = Field(description="JSON schema of the arguments")


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )

    def to_message(self) -> ChatMessage:
        """Convert the response into the assistant message it represents."""
        return ChatMessage(
            role="assistant",
            content=self.content,
            tool_calls=list(self.tool_calls) or None,
        )


class ToolCallDelta(BaseModel):
    """A piece of a tool call spread across streamed fragments."""

    model_config = ConfigDict(frozen=True)

    index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str = ""


class CompletionDelta(BaseModel):
    """One incremental fragment of a streaming completion.

    Fragments may carry no text at all (role-only or usage-only chunks).
    """

    model_config = ConfigDict(frozen=True)

    role: str | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] = Field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] | None = None


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator of completion fragments while storing token
    usage that becomes available at the end of the stream.

    Usage:
        stream = await provider.chat_completion_stream(messages)
        async for delta in stream:
            print(delta.content or "", end="")
        # After iteration, usage is available
        print(stream.usage)
    """

    def __init__(self, async_iter: AsyncIterator[CompletionDelta]):
        """Initialize with an async iterator of fragments.

        Args:
            async_iter: Async iterator yielding CompletionDelta objects
        """
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info (called by provider at end of stream)."""
        self._usage = usage

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> CompletionDelta:
        """Get next fragment from the underlying iterator."""
        delta = await self._iter.__anext__()
        if delta.usage is not None:
            self._usage = delta.usage
        return delta

    async def aclose(self) -> None:
        """Close the underlying generator, releasing the HTTP stream."""
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()
