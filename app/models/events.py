from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProgressStage(str, Enum):
    SEARCHING = "searching"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Progress:
    current: int
    total: int


@dataclass(frozen=True)
class ProgressEvent:
    stage: ProgressStage
    message: str
    progress: Progress | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"stage": self.stage.value, "message": self.message}
        if self.progress is not None:
            data["progress"] = {
                "current": self.progress.current,
                "total": self.progress.total,
            }
        return data


class EventKind(str, Enum):
    STATUS = "status"
    RESEARCH = "research"
    ERROR = "error"


TERMINAL_KINDS = frozenset({EventKind.RESEARCH, EventKind.ERROR})


@dataclass
class StreamEvent:
    """One line of the research stream, discriminated by its top-level key."""

    kind: EventKind
    payload: Any = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def to_dict(self) -> dict[str, Any]:
        return {self.kind.value: self.payload}

    def format(self) -> str:
        # Non-JSON values (datetimes, enums from strategies) go out as strings.
        return json.dumps(self.to_dict(), default=str) + "\n"
