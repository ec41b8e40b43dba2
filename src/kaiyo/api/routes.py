"""Chat routes: send a message, read history and itinerary."""

import asyncio
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from ..conversation import ConversationState
from ..errors import ProviderError
from ..runtime import ChatRuntime
from ..streaming import FragmentChannel, StreamBridge
from .schemas import ErrorResponse, TurnRequest

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])


def get_runtime(request: Request) -> ChatRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="service is starting")
    return runtime


async def _get_state(runtime: ChatRuntime, chat_id: str) -> ConversationState:
    state = await runtime.store.get(chat_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"chat {chat_id} not found")
    return state


def _track(request: Request, task: asyncio.Task) -> None:
    """Keep a reference to a turn task until it finishes."""
    tasks: set[asyncio.Task] = request.app.state.turn_tasks
    tasks.add(task)

    def _on_done(finished: asyncio.Task) -> None:
        tasks.discard(finished)
        if finished.cancelled():
            return
        error = finished.exception()
        if error is not None and not isinstance(error, ProviderError):
            logger.opt(exception=error).error("Turn task failed")

    task.add_done_callback(_on_done)


@router.post(
    "/",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def send_message(
    payload: TurnRequest,
    request: Request,
    runtime: ChatRuntime = Depends(get_runtime)
):
    """Run one turn and stream the answer as server-sent events.

    The response starts once the first fragment is ready. A failure before
    that point is answered with 502; a failure after it ends the stream
    with an ``error`` event.
    """
    if not payload.content:
        raise HTTPException(status_code=400, detail="content is missing")

    chat_id = payload.chat_id or str(uuid.uuid4())
    state = await runtime.store.get_or_create(chat_id, payload.user_id)
    settings = runtime.settings

    channel = FragmentChannel(capacity=settings.stream_channel_capacity)
    producer = asyncio.create_task(
        runtime.orchestrator.run_turn(state, payload.content, channel),
        name=f"turn-{chat_id}",
    )
    _track(request, producer)

    bridge = StreamBridge(
        channel,
        producer=producer,
        is_disconnected=request.is_disconnected,
        poll_interval=settings.disconnect_poll_interval,
    )
    first = await bridge.first_event()
    if first is None and bridge.error is not None:
        bridge.close()
        logger.warning(f"Turn for chat {chat_id} failed before streaming: {bridge.error}")
        return JSONResponse(
            status_code=502,
            content={"detail": str(bridge.error)},
            headers={"X-Chat-ID": chat_id},
        )

    return StreamingResponse(
        bridge.frames(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Chat-ID": chat_id},
    )


@router.get("/history/{chat_id}", responses={404: {"model": ErrorResponse}})
async def get_history(
    chat_id: str,
    runtime: ChatRuntime = Depends(get_runtime)
) -> list[dict[str, Any]]:
    """Full message history of a chat, oldest first."""
    state = await _get_state(runtime, chat_id)
    return state.to_history()


@router.get("/itinerary/{chat_id}", responses={404: {"model": ErrorResponse}})
async def get_itinerary(
    chat_id: str,
    runtime: ChatRuntime = Depends(get_runtime)
) -> dict[str, Any] | None:
    """Latest extracted itinerary of a chat, or null.

    Extraction finishes after the answer stream has ended, so a turn still
    in progress is waited for.
    """
    state = await _get_state(runtime, chat_id)
    async with state.turn_lock:
        return state.itinerary_json()
