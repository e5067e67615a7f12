from __future__ import annotations

import pytest

from app.models.events import EventKind, ProgressStage
from app.research_core.errors import ChannelClosedError
from app.services import streaming
from app.services.progress_channel import (
    UNTERMINATED_MESSAGE,
    ChannelProgressSink,
    ProgressChannel,
)


async def drain(channel: ProgressChannel):
    return [event async for event in channel]


@pytest.mark.asyncio
async def test_events_are_delivered_in_emit_order():
    channel = ProgressChannel()
    channel.status(streaming.progress(ProgressStage.SEARCHING, "one"))
    channel.status(streaming.progress(ProgressStage.PROCESSING, "two"))
    channel.emit(streaming.error("boom"))
    channel.close()

    events = await drain(channel)

    assert [e.kind for e in events] == [EventKind.STATUS, EventKind.STATUS, EventKind.ERROR]
    assert [e.payload["message"] for e in events[:2]] == ["one", "two"]
    assert events[-1].payload == "boom"


@pytest.mark.asyncio
async def test_second_terminal_event_is_rejected():
    channel = ProgressChannel()
    channel.emit(streaming.error("first"))

    with pytest.raises(ChannelClosedError):
        channel.emit(streaming.error("second"))
    with pytest.raises(ChannelClosedError):
        channel.status(streaming.progress(ProgressStage.ANALYZING, "late"))


@pytest.mark.asyncio
async def test_emit_after_close_is_rejected():
    channel = ProgressChannel()
    channel.close()

    with pytest.raises(ChannelClosedError):
        channel.status(streaming.progress(ProgressStage.SEARCHING, "late"))


@pytest.mark.asyncio
async def test_close_without_terminal_event_synthesizes_error():
    channel = ProgressChannel()
    channel.status(streaming.progress(ProgressStage.SEARCHING, "searching"))
    channel.close()
    channel.close()

    events = await drain(channel)

    assert events[-1].kind is EventKind.ERROR
    assert events[-1].payload == UNTERMINATED_MESSAGE
    assert sum(1 for e in events if e.is_terminal) == 1
    assert channel.closed and channel.terminated


@pytest.mark.asyncio
async def test_context_manager_turns_escaping_exception_into_error_event():
    channel = ProgressChannel()

    with pytest.raises(ValueError):
        async with channel:
            channel.status(streaming.progress(ProgressStage.SEARCHING, "searching"))
            raise ValueError("upstream exploded")

    events = await drain(channel)
    assert events[-1].to_dict() == {"error": "upstream exploded"}
    assert channel.closed


@pytest.mark.asyncio
async def test_lines_are_newline_terminated_json():
    channel = ProgressChannel()
    async with channel:
        channel.emit(streaming.complete())
        channel.emit(streaming.error("done"))

    lines = [line async for line in channel.lines()]

    assert lines == [
        '{"status": {"stage": "complete", "message": "Research complete!"}}\n',
        '{"error": "done"}\n',
    ]


@pytest.mark.asyncio
async def test_sink_forwards_status_and_drops_progress_after_terminal_event():
    channel = ProgressChannel()
    sink = ChannelProgressSink(channel, "web")

    sink.emit(streaming.progress(ProgressStage.PROCESSING, "Processing 3 sources...", 2, 5))
    channel.emit(streaming.error("failed"))
    sink.emit(streaming.progress(ProgressStage.ANALYZING, "too late"))
    channel.close()
    sink.emit(streaming.progress(ProgressStage.ANALYZING, "after close"))

    events = await drain(channel)

    assert [e.kind for e in events] == [EventKind.STATUS, EventKind.ERROR]
    assert events[0].payload == {
        "stage": "processing",
        "message": "Processing 3 sources...",
        "progress": {"current": 2, "total": 5},
    }
