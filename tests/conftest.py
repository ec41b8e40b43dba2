"""Pytest configuration and shared fixtures."""
import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest

from kaiyo.llm import (
    ChatMessage,
    CompletionDelta,
    LLMProvider,
    LLMResponse,
    StreamingResponse,
    ToolCallRequest,
)
from kaiyo.orchestrator import OrchestratorConfig


class FakeLLMProvider(LLMProvider):
    """Scripted provider: replays canned responses and records every call.

    ``responses`` feeds ``chat_completion`` in order; an Exception entry is
    raised instead of returned. ``streams`` feeds ``chat_completion_stream``;
    each entry is a list of text pieces or CompletionDelta objects, and an
    Exception entry inside the list is raised at that point of the stream.
    """

    def __init__(
        self,
        responses: list[LLMResponse | Exception] | None = None,
        streams: list[list[Any] | Exception] | None = None,
        model: str = "fake-model"
    ):
        self._responses = list(responses or [])
        self._streams = list(streams or [])
        self._model = model
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return self._model

    def _record(self, kind: str, messages: list[ChatMessage], tools, kwargs) -> None:
        self.calls.append({
            "kind": kind,
            "messages": list(messages),
            "tools": [spec.name for spec in tools or []],
            "kwargs": kwargs,
        })

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        tools=None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self._record("complete", messages, tools, kwargs)
        if not self._responses:
            return LLMResponse(content="", model=self._model)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools=None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self._record("stream", messages, tools, kwargs)
        script = self._streams.pop(0) if self._streams else []
        if isinstance(script, Exception):
            raise script

        async def _generate() -> AsyncIterator[CompletionDelta]:
            yield CompletionDelta(role="assistant")
            for item in script:
                if isinstance(item, Exception):
                    raise item
                if isinstance(item, CompletionDelta):
                    yield item
                else:
                    yield CompletionDelta(content=item)
            yield CompletionDelta(finish_reason="stop")
            yield CompletionDelta(usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})

        return StreamingResponse(_generate())

    async def close(self) -> None:
        self.closed = True


def tool_call_response(*calls: tuple[str, str, dict[str, Any]], content: str = "") -> LLMResponse:
    """LLMResponse requesting the given (id, name, arguments) tool calls."""
    return LLMResponse(
        content=content,
        model="fake-model",
        tool_calls=[
            ToolCallRequest(id=call_id, name=name, arguments=json.dumps(arguments))
            for call_id, name, arguments in calls
        ],
        finish_reason="tool_calls",
    )


def text_response(content: str) -> LLMResponse:
    return LLMResponse(content=content, model="fake-model", finish_reason="stop")


@pytest.fixture
def sample_itinerary() -> dict[str, Any]:
    """Return a valid itinerary payload in wire format."""
    return {
        "destination": "Paris",
        "startDate": "2025-05-01",
        "endDate": "2025-05-02",
        "currency": "EUR",
        "days": [
            {
                "day": 1,
                "label": "Arrival",
                "items": [
                    {
                        "title": "Louvre Museum",
                        "city": "Paris",
                        "category": "sightseeing",
                        "startTime": "09:00",
                        "endTime": "12:00",
                        "lat": 48.8606,
                        "lon": 2.3376,
                    }
                ],
            },
            {
                "day": 2,
                "items": [{"title": "Montmartre walk", "place": "Sacre-Coeur"}],
            },
        ],
    }


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(
        model="fake-model",
        temperature=0.2,
        max_planning_iterations=3,
        narration_instruction="Write the final answer now.",
        extraction_instruction="Call save_itinerary if there is a final itinerary.",
    )


@pytest.fixture
def nominatim_handler():
    """MockTransport handler answering like the Nominatim search API.

    Cities listed in ``failures`` get a 500; ``Nowhere`` gets an empty list.
    """
    def _make(failures: tuple[str, ...] = ()):
        def handler(request: httpx.Request) -> httpx.Response:
            city = request.url.params.get("city", "")
            if city in failures:
                return httpx.Response(500, text="upstream exploded")
            if city == "Nowhere":
                return httpx.Response(200, json=[])
            hits = [
                {"display_name": f"{city} hit {i}", "lat": str(48.0 + i), "lon": str(2.0 + i), "type": "city"}
                for i in range(3)
            ]
            return httpx.Response(200, json=hits)
        return handler
    return _make
