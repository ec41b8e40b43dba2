"""Turn orchestrator: planning, narration and itinerary extraction."""

import asyncio
import time
from typing import Any

from loguru import logger

from ..conversation.models import ConversationState, Itinerary
from ..errors import NarrationError, PlanningError
from ..llm import ChatMessage, DeltaAccumulator, LLMProvider, LLMResponse, ToolSpec
from ..streaming.sse import StreamEvent
from ..tools import SaveItineraryTool, ToolCall, ToolFailure, ToolRegistry
from .data_structures import (
    CollectingSink,
    FragmentSink,
    OrchestratorConfig,
    TurnPhase,
    TurnReport,
)

PLANNING_CUTOFF_NOTICE = (
    "Planning stopped after {iterations} tool rounds; "
    "the answer uses the information gathered so far."
)


class _TurnOutput:
    """Wraps a sink so that it is closed exactly once per turn."""

    def __init__(self, sink: FragmentSink):
        self._sink = sink
        self.closed = False

    async def send(self, event: StreamEvent) -> None:
        await self._sink.send(event)

    async def close(self, error: BaseException | None = None) -> None:
        if self.closed:
            return
        self.closed = True
        await self._sink.close(error)


class ChatOrchestrator:
    """Drives one user turn through its phases.

    A turn appends the user message, then runs up to
    ``max_planning_iterations`` tool-calling rounds, streams the narrative
    answer to the sink, closes the sink, and finally makes a best-effort
    attempt to extract a structured itinerary. Only planning failures reach
    the caller as exceptions; a narration failure is reported through the
    sink, and extraction failures are only logged.

    Hidden design decisions:
    - Prompting used to request narration and extraction
    - Which tools each phase exposes
    - How tool results are recorded in the history
    """

    def __init__(
        self,
        llm: LLMProvider,
        tools: ToolRegistry,
        extraction_tool: SaveItineraryTool,
        config: OrchestratorConfig
    ):
        """Initialize the orchestrator.

        Args:
            llm: Provider used for every phase
            tools: Registry of tools offered while planning
            extraction_tool: Tool exposed during extraction
            config: Model, sampling and prompt settings
        """
        self._llm = llm
        self._tools = tools
        self._extraction_tool = extraction_tool
        self._config = config

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def _call_options(self) -> dict[str, Any]:
        return {
            "model": self._config.model,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }

    async def run_turn(
        self,
        state: ConversationState,
        content: str,
        sink: FragmentSink
    ) -> TurnReport:
        """Run one complete turn for a conversation.

        The sink receives the narrative fragments in order and is closed
        once narration ends, before extraction starts. Turns on the same
        conversation are serialized.

        Args:
            state: Conversation to extend
            content: The user's message
            sink: Destination of the user-visible output

        Returns:
            TurnReport describing what happened

        Raises:
            PlanningError: If a provider call fails while planning; nothing
                has been sent to the sink in that case
        """
        output = _TurnOutput(sink)
        report = TurnReport(chat_id=state.chat_id)
        start_time = time.time()

        try:
            async with state.turn_lock:
                state.append(ChatMessage(role="user", content=content))

                try:
                    await self._plan(state, report)
                except PlanningError as e:
                    await output.close(e)
                    raise

                if report.planning_cutoff and self._config.surface_planning_cutoff:
                    await output.send(StreamEvent(
                        data=PLANNING_CUTOFF_NOTICE.format(iterations=report.planning_iterations),
                        event="notice",
                    ))

                await self._narrate(state, report, output)
                await self._extract(state, report)
                report.phase = TurnPhase.IDLE
        except asyncio.CancelledError:
            logger.info(f"Turn cancelled for chat {state.chat_id} during {report.phase.value}")
            raise
        except PlanningError:
            raise
        except Exception as e:
            logger.exception(f"Turn failed for chat {state.chat_id} during {report.phase.value}")
            await output.close(e)
            raise
        finally:
            await output.close()
            report.processing_time_seconds = time.time() - start_time

        logger.info(
            f"Turn finished for chat {state.chat_id}: "
            f"{report.planning_iterations} planning round(s), {report.tool_calls} tool call(s), "
            f"itinerary updated: {report.itinerary_updated}"
        )
        return report

    async def handle_turn(
        self,
        state: ConversationState,
        content: str
    ) -> tuple[str, TurnReport]:
        """Run a turn without a client stream and return the narrative."""
        sink = CollectingSink()
        report = await self.run_turn(state, content, sink)
        return sink.text, report

    async def _plan(self, state: ConversationState, report: TurnReport) -> None:
        report.phase = TurnPhase.PLANNING
        logger.debug(f"Chat {state.chat_id}: planning")
        specs = self._tools.specs()

        for iteration in range(1, self._config.max_planning_iterations + 1):
            report.planning_iterations = iteration
            try:
                response = await self._complete(state, specs)
            except Exception as e:
                logger.error(f"Planning call failed for chat {state.chat_id}: {e}")
                raise PlanningError(str(e)) from e
            report.usage.add_usage(response.usage)

            if not response.tool_calls:
                state.append(response.to_message())
                return

            results = await self._tools.dispatch(response.tool_calls)
            state.append(response.to_message())
            for result in results:
                state.append(ChatMessage(
                    role="tool",
                    content=result.content,
                    tool_call_id=result.tool_call_id,
                ))
            report.tool_calls += len(results)
            report.tool_errors += sum(1 for result in results if result.error)

        report.planning_cutoff = True
        logger.warning(
            f"Chat {state.chat_id}: planning stopped after "
            f"{self._config.max_planning_iterations} round(s) with tool calls still pending"
        )

    async def _complete(
        self,
        state: ConversationState,
        tools: list[ToolSpec],
        **kwargs: Any
    ) -> LLMResponse:
        messages = list(state.messages)
        logger.info(f"Calling {self._config.model} with {len(messages)} messages")
        return await self._llm.chat_completion(
            messages,
            tools=tools,
            **self._call_options(),
            **kwargs,
        )

    async def _narrate(
        self,
        state: ConversationState,
        report: TurnReport,
        output: _TurnOutput
    ) -> None:
        report.phase = TurnPhase.NARRATING
        logger.debug(f"Chat {state.chat_id}: narrating")
        state.append(ChatMessage(role="user", content=self._config.narration_instruction))

        accumulator = DeltaAccumulator()
        stream = None
        try:
            messages = list(state.messages)
            logger.info(f"Streaming {self._config.model} with {len(messages)} messages")
            stream = await self._llm.chat_completion_stream(messages, **self._call_options())
            async for delta in stream:
                text = accumulator.add(delta)
                if text:
                    await output.send(StreamEvent(data=text))
        except asyncio.CancelledError:
            self._record_narrative(state, report, accumulator, complete=False)
            raise
        except Exception as e:
            error = NarrationError(str(e))
            error.__cause__ = e
            logger.error(f"Narration failed for chat {state.chat_id} after "
                         f"{accumulator.fragment_count} fragment(s): {e}")
            report.narration_error = str(error)
            self._record_narrative(state, report, accumulator, complete=False)
            await output.close(error)
            return
        finally:
            if stream is not None:
                await stream.aclose()

        report.usage.add_usage(stream.usage)
        self._record_narrative(state, report, accumulator, complete=True)
        await output.close()

    def _record_narrative(
        self,
        state: ConversationState,
        report: TurnReport,
        accumulator: DeltaAccumulator,
        complete: bool
    ) -> None:
        text = accumulator.text
        report.narrative = text
        # Partial answers are kept; they were already shown to the client.
        if complete or text:
            state.append(ChatMessage(role="assistant", content=text))

    async def _extract(self, state: ConversationState, report: TurnReport) -> None:
        report.phase = TurnPhase.EXTRACTING
        logger.debug(f"Chat {state.chat_id}: extracting itinerary")
        state.append(ChatMessage(role="user", content=self._config.extraction_instruction))

        try:
            response = await self._complete(
                state,
                [self._extraction_tool.to_spec()],
                tool_choice="auto",
            )
        except Exception as e:
            logger.exception(f"Extraction call failed for chat {state.chat_id}")
            report.extraction_error = f"provider error: {e}"
            return
        report.usage.add_usage(response.usage)

        if not response.tool_calls:
            if response.content:
                state.append(response.to_message())
            logger.warning(f"Chat {state.chat_id}: model did not call {self._extraction_tool.name}")
            report.extraction_error = f"no {self._extraction_tool.name} call"
            return

        state.append(response.to_message())
        for call in response.tool_calls:
            if call.name == self._extraction_tool.name:
                result = await self._extraction_tool.execute(
                    ToolCall(id_=call.id, tool_name=call.name, arguments=call.arguments)
                )
            else:
                result = ToolFailure(
                    tool_call_id=call.id,
                    tool_name=call.name,
                    error_message=f"Unknown tool: {call.name}",
                )
            state.append(ChatMessage(role="tool", content=result.content, tool_call_id=call.id))

            if result.error:
                logger.warning(
                    f"Chat {state.chat_id}: discarded itinerary from {call.id}: {result.error_message}"
                )
                report.extraction_error = result.error_message
            elif isinstance(result.payload, Itinerary):
                state.replace_itinerary(result.payload)
                report.itinerary_updated = True
                report.extraction_error = None
                logger.info(
                    f"Chat {state.chat_id}: itinerary saved for {result.payload.destination} "
                    f"({len(result.payload.days)} day(s))"
                )
