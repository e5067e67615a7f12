"""Single-writer event channel carrying one research request's stream.

The writer side (orchestrator, strategy sinks) enqueues events without ever
awaiting; the reader side (the HTTP response body) drains them in order. A
channel carries zero or more status events followed by exactly one terminal
event, and is closed exactly once.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

from app.models.events import ProgressEvent, StreamEvent
from app.research_core.errors import ChannelClosedError
from app.services import logger as log_service
from app.services import streaming

UNTERMINATED_MESSAGE = "Research ended without producing a result"

_CLOSED = object()


class ProgressSink(Protocol):
    """Write-only progress reporting handed to a strategy."""

    def emit(self, event: ProgressEvent) -> None: ...


class ProgressChannel:
    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._terminated = False
        self._closed = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: StreamEvent) -> None:
        if self._closed:
            raise ChannelClosedError("Cannot emit on a closed channel")
        if self._terminated:
            raise ChannelClosedError(
                f"Channel already carries its terminal event; rejected '{event.kind.value}'"
            )
        if event.is_terminal:
            self._terminated = True
        self._queue.put_nowait(event)

    def status(self, event: ProgressEvent) -> None:
        self.emit(streaming.status(event))

    def close(self, error_message: str | None = None) -> None:
        if self._closed:
            return
        if not self._terminated:
            self.emit(streaming.error(error_message or UNTERMINATED_MESSAGE))
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "ProgressChannel":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        message = str(exc) if exc is not None and str(exc) else None
        if exc is not None and not self._terminated:
            log_service.log_event(
                event_type="channel_aborted",
                message="Channel closed by an exception before a terminal event",
                level="ERROR",
                error=repr(exc),
            )
        self.close(message)

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]

    async def lines(self) -> AsyncIterator[str]:
        async for event in self:
            yield event.format()


class ChannelProgressSink:
    """Forwards a strategy's progress into a channel, and nothing else.

    Once the channel holds its terminal event (or is closed), late progress is
    dropped so a strategy never fails because the stream has moved on.
    """

    def __init__(self, channel: ProgressChannel, strategy: str = "unknown"):
        self._channel = channel
        self._strategy = strategy

    def emit(self, event: ProgressEvent) -> None:
        log_service.log_research_step(
            strategy=self._strategy,
            stage=event.stage.value,
            message=event.message,
        )
        if self._channel.closed or self._channel.terminated:
            log_service.log_event(
                event_type="late_progress_dropped",
                message="Progress arrived after the stream finished",
                level="WARNING",
                strategy=self._strategy,
                stage=event.stage.value,
            )
            return
        self._channel.status(event)
