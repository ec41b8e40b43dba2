"""Reassembly of streamed completion fragments."""

from dataclasses import dataclass, field

from .models import ChatMessage, CompletionDelta, ToolCallRequest


@dataclass
class _PartialToolCall:
    id: str | None = None
    name: str | None = None
    argument_parts: list[str] = field(default_factory=list)


class DeltaAccumulator:
    """Rebuilds the assistant message from a sequence of fragments.

    Text pieces are concatenated in arrival order. Tool calls arrive split
    across fragments and are merged by their index; the first id and name
    seen for an index win, argument pieces are appended.

    The accumulator never decides that a stream has ended. Callers read
    ``to_message()`` once the provider call has returned.

    Usage:
        acc = DeltaAccumulator()
        async for delta in stream:
            text = acc.add(delta)
            if text:
                await forward(text)
        message = acc.to_message()
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self._tool_calls: dict[int, _PartialToolCall] = {}
        self._finish_reason: str | None = None
        self._usage: dict[str, int] | None = None
        self._fragments = 0

    def add(self, delta: CompletionDelta) -> str | None:
        """Fold one fragment into the running message.

        Args:
            delta: Fragment from a streaming provider call

        Returns:
            The fragment's text if it carries any, otherwise None
        """
        self._fragments += 1

        for piece in delta.tool_calls:
            partial = self._tool_calls.setdefault(piece.index, _PartialToolCall())
            if piece.id and partial.id is None:
                partial.id = piece.id
            if piece.name and partial.name is None:
                partial.name = piece.name
            if piece.arguments:
                partial.argument_parts.append(piece.arguments)

        if delta.finish_reason:
            self._finish_reason = delta.finish_reason
        if delta.usage is not None:
            self._usage = delta.usage

        if not delta.content:
            return None
        self._text_parts.append(delta.content)
        return delta.content

    @property
    def text(self) -> str:
        """Concatenation of every non-empty text fragment seen so far."""
        return "".join(self._text_parts)

    @property
    def fragment_count(self) -> int:
        return self._fragments

    @property
    def finish_reason(self) -> str | None:
        return self._finish_reason

    @property
    def usage(self) -> dict[str, int] | None:
        return self._usage

    @property
    def tool_calls(self) -> list[ToolCallRequest]:
        """Tool calls assembled so far, ordered by their stream index.

        Entries that never received a name are dropped, since they cannot
        be dispatched.
        """
        calls = []
        for index in sorted(self._tool_calls):
            partial = self._tool_calls[index]
            if not partial.name:
                continue
            calls.append(ToolCallRequest(
                id=partial.id or f"call_{index}",
                name=partial.name,
                arguments="".join(partial.argument_parts),
            ))
        return calls

    def to_message(self) -> ChatMessage:
        """Build the assistant message represented by the fragments."""
        return ChatMessage(
            role="assistant",
            content=self.text,
            tool_calls=self.tool_calls or None,
        )
