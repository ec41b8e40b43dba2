"""Bounded channel between a turn's producer task and the HTTP consumer."""

import asyncio

from .sse import StreamEvent


class _Closed:
    """Sentinel marking the end of the channel."""


CLOSED = _Closed()


class FragmentChannel:
    """Bounded FIFO of stream events with a one-shot completion signal.

    The producer calls ``send`` for each event and ``close`` exactly once
    (later calls are ignored). ``done`` resolves with the closing error, or
    None on success, and stays resolved, so a consumer that starts waiting
    late never misses it. After ``abandon`` every write is silently
    dropped; this is what a producer sees once its consumer has gone.

    Must be created inside a running event loop.
    """

    def __init__(self, capacity: int = 64):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue: asyncio.Queue[StreamEvent | _Closed] = asyncio.Queue(maxsize=capacity)
        self._done: asyncio.Future[BaseException | None] = asyncio.get_running_loop().create_future()
        self._closed = False
        self._abandoned = False
        self._sent = 0

    @property
    def done(self) -> "asyncio.Future[BaseException | None]":
        return self._done

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    @property
    def sent_count(self) -> int:
        """Number of events accepted from the producer."""
        return self._sent

    async def send(self, event: StreamEvent) -> None:
        """Queue an event, waiting while the channel is full.

        Raises:
            RuntimeError: If the channel was already closed
        """
        if self._abandoned:
            return
        if self._closed:
            raise RuntimeError("send on closed channel")
        await self._queue.put(event)
        self._sent += 1

    async def close(self, error: BaseException | None = None) -> None:
        """Close the channel and publish the completion signal."""
        if self._closed:
            return
        self._closed = True
        if not self._abandoned:
            await self._queue.put(CLOSED)
        if not self._done.done():
            self._done.set_result(error)

    async def receive(self) -> StreamEvent | _Closed:
        """Next queued item; ``CLOSED`` marks the end."""
        return await self._queue.get()

    def receive_nowait(self) -> StreamEvent | _Closed:
        """Next queued item without waiting.

        Raises:
            asyncio.QueueEmpty: If nothing is queued
        """
        return self._queue.get_nowait()

    def abandon(self) -> None:
        """Drop queued events and make further writes unobservable."""
        self._abandoned = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
