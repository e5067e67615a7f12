from __future__ import annotations

import json

import pytest

from app.models.events import EventKind, ProgressStage, StreamEvent
from app.models.research import CodeExample, Finding, ResearchArtifact, ResearchMode
from app.services import streaming


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("web", ResearchMode.WEB),
        ("academic", ResearchMode.ACADEMIC),
        (" Academic ", ResearchMode.ACADEMIC),
        ("video", ResearchMode.WEB),
        ("", ResearchMode.WEB),
        (None, ResearchMode.WEB),
    ],
)
def test_mode_resolution(raw, expected):
    assert ResearchMode.resolve(raw) is expected


def test_artifact_coerces_malformed_fields():
    artifact = ResearchArtifact.model_validate(
        {"summary": 5, "findings": "oops", "keyInsights": None, "metadata": ["x"]}
    )

    assert artifact.summary == ""
    assert artifact.findings == []
    assert artifact.key_insights == []
    assert artifact.metadata == {}


def test_artifact_wire_form_uses_camel_case():
    wire = ResearchArtifact(summary="s", suggested_questions=["why?"]).to_wire()

    assert set(wire) == {
        "summary",
        "findings",
        "keyInsights",
        "statistics",
        "codeExamples",
        "suggestedQuestions",
        "metadata",
    }
    assert wire["suggestedQuestions"] == ["why?"]


def test_finding_omits_unset_optional_fields():
    finding = Finding(title="t", content="c", source="s", relevance="High", type="web").to_dict()
    assert "credibility" not in finding
    assert "category" not in finding

    example = CodeExample(title="t", language="python", code="pass", description="d").to_dict()
    assert example["source"] == ""


def test_progress_event_wire_form():
    event = streaming.status(streaming.progress(ProgressStage.DOWNLOADING, "Processing paper", 2, 5))

    assert json.loads(event.format()) == {
        "status": {"stage": "downloading", "message": "Processing paper", "progress": {"current": 2, "total": 5}}
    }
    assert event.format().endswith("\n")
    assert not event.is_terminal


def test_terminal_events():
    assert streaming.error("").to_dict() == {"error": "An error occurred during research"}
    assert streaming.research_result(ResearchArtifact(summary="s")).is_terminal
    assert StreamEvent(kind=EventKind.ERROR, payload="x").is_terminal
