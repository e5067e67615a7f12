from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResearchMode(str, Enum):
    WEB = "web"
    ACADEMIC = "academic"

    @classmethod
    def resolve(cls, value: str | None) -> "ResearchMode":
        """Map a raw mode selector to a mode; unknown or missing means web."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            for mode in cls:
                if mode.value == normalized:
                    return mode
        return cls.WEB


@dataclass(frozen=True)
class ResearchQuery:
    text: str
    mode: ResearchMode = ResearchMode.WEB


# --- Records a strategy assembles into an artifact ---


@dataclass
class Finding:
    title: str
    content: str
    source: str
    relevance: str
    type: str
    category: str | None = None
    credibility: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class Statistic:
    metric: str
    value: str
    context: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CodeExample:
    title: str
    language: str
    code: str
    description: str
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def coerce_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def coerce_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def coerce_mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


class ResearchArtifact(BaseModel):
    """Structured output of one completed research run.

    Field names follow Python style; aliases carry the camelCase names used on
    the wire. Array fields that arrive as something other than a list become
    empty lists instead of failing validation.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    summary: str = ""
    findings: list[dict[str, Any]] = Field(default_factory=list)
    key_insights: list[str] = Field(default_factory=list, alias="keyInsights")
    statistics: list[dict[str, Any]] = Field(default_factory=list)
    code_examples: list[dict[str, Any]] = Field(default_factory=list, alias="codeExamples")
    suggested_questions: list[str] = Field(default_factory=list, alias="suggestedQuestions")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "findings",
        "key_insights",
        "statistics",
        "code_examples",
        "suggested_questions",
        mode="before",
    )
    @classmethod
    def _coerce_sequence(cls, value: Any) -> list[Any]:
        return coerce_list(value)

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, value: Any) -> dict[str, Any]:
        return coerce_mapping(value)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class SanitizedResearchRecord:
    """Storage-ready projection of a research artifact.

    Column names match the ``research_reports`` table.
    """

    query: str
    summary: str = ""
    findings: list[Any] = field(default_factory=list)
    key_insights: list[Any] = field(default_factory=list)
    statistics: list[Any] = field(default_factory=list)
    code_examples: list[Any] = field(default_factory=list)
    suggested_questions: list[Any] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "summary": self.summary,
            "findings": list(self.findings),
            "key_insights": list(self.key_insights),
            "statistics": list(self.statistics),
            "code_examples": list(self.code_examples),
            "suggested_questions": list(self.suggested_questions),
            "metadata": dict(self.metadata),
        }
