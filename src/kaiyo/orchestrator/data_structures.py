"""Data structures for the turn orchestrator."""

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field

from ..streaming.sse import StreamEvent


class TurnPhase(str, Enum):
    """Phases a turn moves through, always starting from IDLE."""

    IDLE = "idle"
    PLANNING = "planning"
    NARRATING = "narrating"
    EXTRACTING = "extracting"


class OrchestratorConfig(BaseModel):
    """Explicit configuration handed to the orchestrator at construction.

    Attributes:
        model: Model identifier used for every provider call
        temperature: Sampling temperature
        max_tokens: Optional completion token cap per call
        max_planning_iterations: Upper bound on tool-calling rounds per turn
        surface_planning_cutoff: Send a ``notice`` event when planning stops
            with tool calls still pending
        narration_instruction: User-role instruction asking for the answer
        extraction_instruction: User-role instruction asking for save_itinerary
    """

    model: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    max_planning_iterations: int = Field(default=3, ge=1)
    surface_planning_cutoff: bool = False
    narration_instruction: str = Field(min_length=1)
    extraction_instruction: str = Field(min_length=1)


class UsageSummary(BaseModel):
    """Summary of LLM token usage across the calls of one turn.

    Attributes:
        total_calls: Total number of LLM API calls
        total_input_tokens: Total input tokens across all calls
        total_output_tokens: Total output tokens across all calls
    """

    total_calls: int = Field(default=0, description="Total API calls")
    total_input_tokens: int = Field(default=0, description="Total input tokens")
    total_output_tokens: int = Field(default=0, description="Total output tokens")

    def add_usage(self, usage: dict[str, int] | None) -> None:
        """Record one provider call and its token usage, if reported."""
        self.total_calls += 1
        if usage:
            self.total_input_tokens += usage.get("prompt_tokens", 0)
            self.total_output_tokens += usage.get("completion_tokens", 0)


class TurnReport(BaseModel):
    """Outcome of one turn, as seen by the server.

    Attributes:
        chat_id: Conversation the turn belonged to
        phase: Last phase reached (IDLE when the turn ran to completion)
        planning_iterations: Provider calls made while planning
        tool_calls: Tool calls dispatched while planning
        tool_errors: How many of those came back as failures
        planning_cutoff: Planning stopped at the iteration cap with tool
            calls still being requested
        narrative: Text streamed to the client
        narration_error: Provider error that cut narration short
        itinerary_updated: A new itinerary replaced the previous one
        extraction_error: Why extraction produced nothing, when it failed
        processing_time_seconds: Wall time of the whole turn
    """

    chat_id: str
    phase: TurnPhase = TurnPhase.IDLE
    planning_iterations: int = 0
    tool_calls: int = 0
    tool_errors: int = 0
    planning_cutoff: bool = False
    narrative: str = ""
    narration_error: str | None = None
    itinerary_updated: bool = False
    extraction_error: str | None = None
    processing_time_seconds: float = 0.0
    usage: UsageSummary = Field(default_factory=UsageSummary)


class FragmentSink(Protocol):
    """Where a turn writes its user-visible output."""

    async def send(self, event: StreamEvent) -> None:
        ...

    async def close(self, error: BaseException | None = None) -> None:
        ...


class CollectingSink:
    """In-memory sink, optionally echoing each event to a callback.

    Used where no HTTP client is involved (CLI, tests).
    """

    def __init__(self, on_event=None):
        self._on_event = on_event
        self.events: list[StreamEvent] = []
        self.closed = False
        self.error: BaseException | None = None

    async def send(self, event: StreamEvent) -> None:
        self.events.append(event)
        if self._on_event is not None:
            self._on_event(event)

    async def close(self, error: BaseException | None = None) -> None:
        if self.closed:
            return
        self.closed = True
        self.error = error

    @property
    def text(self) -> str:
        """Concatenated narrative fragments (named events excluded)."""
        return "".join(event.data for event in self.events if event.event is None)
