"""Consumer side of the stream: from channel to SSE frames."""

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable

from loguru import logger

from .channel import CLOSED, FragmentChannel
from .sse import StreamEvent, format_event


class StreamBridge:
    """Adapts a producer task's channel to an incrementally flushed response.

    Each read is one multi-way wait over three things: the client's
    disconnect signal, the producer's completion signal, and the next
    queued event. Events come out in the order they were produced. When the
    client goes away, the channel is abandoned and the producer task is
    cancelled so its outstanding provider calls stop as well.

    Hidden design decisions:
    - Disconnect detection (polling an async predicate)
    - Ordering of simultaneous wake-ups
    - Error reporting once the response has started
    """

    def __init__(
        self,
        channel: FragmentChannel,
        producer: asyncio.Task | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
        poll_interval: float = 0.25,
        cancel_producer_on_disconnect: bool = True
    ):
        """Initialize the bridge.

        Args:
            channel: Channel the producer writes to
            producer: Task running the producer, cancelled on disconnect
            is_disconnected: Async predicate reporting client disconnection
            poll_interval: Seconds between disconnect checks
            cancel_producer_on_disconnect: Whether to cancel the producer
                when the client disconnects
        """
        self._channel = channel
        self._producer = producer
        self._is_disconnected = is_disconnected
        self._poll_interval = poll_interval
        self._cancel_producer = cancel_producer_on_disconnect

        self._buffer: deque[StreamEvent] = deque()
        self._watch_task: asyncio.Task | None = None
        self._done_seen = False
        self._finished = False
        self._disconnected = False
        self._error: BaseException | None = None
        self._delivered = 0

    @property
    def error(self) -> BaseException | None:
        """Error the producer closed the channel with, if any."""
        return self._error

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    @property
    def delivered(self) -> int:
        """Number of events handed to the client so far."""
        return self._delivered

    async def _watch_disconnect(self) -> None:
        if self._is_disconnected is None:
            await asyncio.Event().wait()
        while not await self._is_disconnected():
            await asyncio.sleep(self._poll_interval)

    def _drain_after_done(self) -> None:
        # The producer puts the closing marker before resolving ``done``,
        # so everything it sent is already queued.
        while True:
            try:
                item = self._channel.receive_nowait()
            except asyncio.QueueEmpty:
                break
            if item is CLOSED:
                break
            self._buffer.append(item)
        self._finished = True

    async def _next(self) -> StreamEvent | None:
        if self._buffer:
            return self._buffer.popleft()
        if self._finished:
            return None

        if self._watch_task is None:
            self._watch_task = asyncio.ensure_future(self._watch_disconnect())

        get_task = asyncio.ensure_future(self._channel.receive())
        waiters: set[asyncio.Future] = {self._watch_task, get_task}
        if not self._done_seen:
            waiters.add(self._channel.done)

        try:
            finished, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            get_task.cancel()
            raise

        if self._watch_task in finished:
            get_task.cancel()
            logger.info("Client disconnected; abandoning stream")
            self._disconnected = True
            self._finished = True
            self.close()
            return None

        if get_task in finished:
            item = get_task.result()
            if item is CLOSED:
                self._error = await self._channel.done
                self._done_seen = True
                self._finished = True
                return None
            return item

        get_task.cancel()
        self._done_seen = True
        self._error = self._channel.done.result()
        self._drain_after_done()
        return self._buffer.popleft() if self._buffer else None

    async def next_event(self) -> StreamEvent | None:
        """Next event for the client; None once closed or disconnected."""
        event = await self._next()
        if event is not None:
            self._delivered += 1
        return event

    async def first_event(self) -> StreamEvent | None:
        """Wait for the first event without consuming it.

        Lets the HTTP layer answer with an error status when the producer
        fails before sending anything.
        """
        event = await self._next()
        if event is not None:
            self._buffer.appendleft(event)
        return event

    async def frames(self) -> AsyncIterator[str]:
        """Yield SSE frames until the channel closes or the client leaves.

        A failure after some events were delivered cannot change the status
        code any more; it is reported as a final ``error`` event instead.
        """
        try:
            while (event := await self.next_event()) is not None:
                yield format_event(event)
            if self._error is not None and not self._disconnected:
                yield format_event(StreamEvent(data=str(self._error), event="error"))
        finally:
            self.close()

    def close(self) -> None:
        """Stop watching; abandon the channel if the stream did not finish."""
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()

        if self._done_seen and not self._disconnected:
            return

        self._channel.abandon()
        if self._producer is not None and not self._producer.done() and self._cancel_producer:
            logger.info("Cancelling producer task after early stream exit")
            self._producer.cancel()
