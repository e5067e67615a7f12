from __future__ import annotations

from app.models.events import (
    EventKind,
    Progress,
    ProgressEvent,
    ProgressStage,
    StreamEvent,
)
from app.models.research import ResearchArtifact, ResearchMode

SOURCE_LABELS: dict[ResearchMode, str] = {
    ResearchMode.WEB: "web sources",
    ResearchMode.ACADEMIC: "academic papers and code repositories",
}


def progress(
    stage: ProgressStage,
    message: str,
    current: int | None = None,
    total: int | None = None,
) -> ProgressEvent:
    counter = Progress(current, total) if current is not None and total is not None else None
    return ProgressEvent(stage=stage, message=message, progress=counter)


def status(event: ProgressEvent) -> StreamEvent:
    return StreamEvent(kind=EventKind.STATUS, payload=event.to_dict())


def searching(mode: ResearchMode) -> StreamEvent:
    """Emitted before a strategy runs, naming the class of sources it queries."""
    label = SOURCE_LABELS.get(mode, "sources")
    return status(progress(ProgressStage.SEARCHING, f"Searching {label}..."))


def complete(message: str = "Research complete!") -> StreamEvent:
    return status(progress(ProgressStage.COMPLETE, message))


def research_result(artifact: ResearchArtifact) -> StreamEvent:
    return StreamEvent(kind=EventKind.RESEARCH, payload=artifact.to_wire())


def error(message: str) -> StreamEvent:
    return StreamEvent(
        kind=EventKind.ERROR,
        payload=message or "An error occurred during research",
    )
