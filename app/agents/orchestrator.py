from __future__ import annotations

import asyncio
import time
from typing import AsyncGenerator

from loguru import logger

from app.agents.academic_strategy import AcademicResearchStrategy
from app.agents.base import ResearchStrategy
from app.agents.web_strategy import WebResearchStrategy
from app.models.events import StreamEvent
from app.models.research import ResearchMode, ResearchQuery
from app.services import logger as log_service
from app.services import streaming
from app.services.progress_channel import ChannelProgressSink, ProgressChannel

STRATEGIES: dict[ResearchMode, type[ResearchStrategy]] = {
    ResearchMode.WEB: WebResearchStrategy,
    ResearchMode.ACADEMIC: AcademicResearchStrategy,
}

FALLBACK_ERROR = "An error occurred during research"


class ResearchOrchestrator:
    """Runs one research request: picks the strategy for its mode, forwards
    progress onto the request's channel and finishes the channel with exactly
    one terminal event.

    Strategy failures never escape ``run``; they become the ``error`` event.
    Each request gets a fresh strategy instance and channel.
    """

    def __init__(self, strategies: dict[ResearchMode, type[ResearchStrategy]] | None = None):
        self.strategies = dict(strategies or STRATEGIES)
        self._tasks: set[asyncio.Task] = set()

    def select(self, mode: ResearchMode) -> type[ResearchStrategy]:
        return self.strategies.get(mode) or self.strategies[ResearchMode.WEB]

    async def run(self, query: ResearchQuery, channel: ProgressChannel) -> None:
        strategy_cls = self.select(query.mode)
        started = time.monotonic()
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            mode=query.mode.value,
            strategy=strategy_cls.name,
            query=query.text[:100],
        )

        async with channel:
            channel.emit(streaming.searching(query.mode))
            try:
                strategy = strategy_cls(progress=ChannelProgressSink(channel, strategy_cls.name))
                artifact = await strategy.research(query.text)
            except Exception as e:
                message = str(e) or FALLBACK_ERROR
                logger.exception(f"{strategy_cls.name} research failed: {message}")
                log_service.log_event(
                    event_type="research_failed",
                    message="Research failed",
                    level="ERROR",
                    strategy=strategy_cls.name,
                    error=message,
                    runtime_ms=int((time.monotonic() - started) * 1000),
                )
                channel.emit(streaming.error(message))
                return

            channel.emit(streaming.complete())
            channel.emit(streaming.research_result(artifact))
            log_service.log_event(
                event_type="research_completed",
                message="Research completed",
                strategy=strategy_cls.name,
                findings=len(artifact.findings),
                runtime_ms=int((time.monotonic() - started) * 1000),
            )

    async def stream(self, query: ResearchQuery) -> AsyncGenerator[StreamEvent, None]:
        """Run the research in the background and yield events as they arrive.

        If the consumer stops early the research task keeps running to
        completion; its remaining events are simply never read.
        """
        channel = ProgressChannel()
        task = asyncio.create_task(self.run(query, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        async for event in channel:
            yield event

        await task

    async def research(self, query: str, mode: str | None = None) -> AsyncGenerator[StreamEvent, None]:
        async for event in self.stream(ResearchQuery(text=query, mode=ResearchMode.resolve(mode))):
            yield event
