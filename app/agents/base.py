from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.models.events import ProgressStage
from app.models.research import ResearchArtifact, ResearchMode
from app.research_core.errors import UpstreamFailure
from app.services import streaming
from app.services.progress_channel import ProgressSink

MIN_QUERY_LENGTH = 3
STAGE_TOTAL = 5


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResearchStrategy:
    """A pluggable implementation of the research operation.

    Subclasses implement ``_research``. ``research`` wraps it with the
    empty-query policy and guarantees that callers receive either a
    ``ResearchArtifact`` or an exception, never a partially typed result.
    Progress goes to the write-only sink given at construction, if any.
    """

    name: str = "base"
    mode: ResearchMode = ResearchMode.WEB

    def __init__(self, progress: ProgressSink | None = None):
        self._progress = progress

    def _report(
        self,
        stage: ProgressStage,
        message: str,
        current: int | None = None,
        total: int | None = STAGE_TOTAL,
    ) -> None:
        if self._progress is None:
            return
        self._progress.emit(
            streaming.progress(stage, message, current, total if current is not None else None)
        )

    async def research(self, query: str) -> ResearchArtifact:
        text = (query or "").strip()
        if len(text) < MIN_QUERY_LENGTH:
            return self.empty_query_artifact()

        result = await self._research(text)
        if not isinstance(result, ResearchArtifact):
            raise UpstreamFailure(f"{self.name} strategy returned no research artifact")
        return result

    async def _research(self, query: str) -> ResearchArtifact:
        raise NotImplementedError

    def empty_query_artifact(self) -> ResearchArtifact:
        """Answer for blank or too-short queries without calling any service."""
        return ResearchArtifact(
            summary="Please provide a more specific research query.",
            suggested_questions=["What specific aspect would you like to research?"],
            metadata=self.base_metadata(sources_count=0, confidence=0.0, depth="None"),
        )

    @staticmethod
    def base_metadata(sources_count: int, confidence: float, depth: str, **extra: Any) -> dict[str, Any]:
        return {
            "sourcesCount": sources_count,
            "confidence": round(confidence, 2),
            "researchDepth": depth,
            "lastUpdated": now_iso(),
            **extra,
        }
