from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from app.agents.academic_strategy import AcademicResearchStrategy, key_steps
from app.agents.web_strategy import WebResearchStrategy
from app.config import settings
from app.research_core.errors import UpstreamFailure
from app.tools.arxiv_search import ArxivPaper
from app.tools.document_utils import DocumentChunk
from app.tools.github_search import CodeRepository
from app.tools.search_provider import SearchResponse
from app.tools.tavily_search import SearchResult


class RecordingSink:
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    @property
    def stages(self):
        return [e.stage.value for e in self.events]


def web_results():
    return SearchResponse(
        results=[
            SearchResult(
                title="Raft consensus explained",
                url="https://raft.github.io/",
                content="Raft is a consensus algorithm designed to be easy to understand.",
                score=0.9,
            ),
            SearchResult(
                title="Paxos made simple",
                url="https://en.wikipedia.org/wiki/Paxos_(computer_science)",
                content="Paxos is a family of protocols for solving consensus.",
                score=0.7,
            ),
        ],
        queries=["distributed consensus", "distributed consensus latest research"],
    )


WEB_REPLY = {
    "summary": "Consensus protocols let replicas agree on a single value.",
    "findings": [
        {"title": "Raft", "content": "Leader based consensus.", "source": "https://raft.github.io/", "relevance": "High"},
        "Paxos tolerates f failures with 2f+1 nodes.",
        42,
    ],
    "keyInsights": [{"point": "Leaders simplify", "explanation": "Raft elects one leader."}, "Quorums matter"],
    "statistics": [{"metric": "Fault tolerance", "value": "2f+1"}, {"metric": "empty"}],
    "codeExamples": [{"code": "print('hi')"}],
    "suggestedQuestions": ["How does Raft handle partitions?"],
}


@pytest.mark.asyncio
async def test_web_strategy_builds_artifact_from_sources():
    sink = RecordingSink()
    with patch("app.tools.search_provider.search", AsyncMock(return_value=web_results())), patch(
        "app.agents.web_strategy.complete_json", AsyncMock(return_value=WEB_REPLY)
    ) as mock_llm:
        artifact = await WebResearchStrategy(progress=sink).research("  distributed consensus  ")

    assert artifact.summary == WEB_REPLY["summary"]
    assert [f["title"] for f in artifact.findings] == ["Raft", "Paxos tolerates f failures with 2f+1 nodes."]
    assert artifact.findings[1]["type"] == "web"
    assert artifact.key_insights == ["Leaders simplify: Raft elects one leader.", "Quorums matter"]
    assert artifact.statistics == [
        {"metric": "Fault tolerance", "value": "2f+1", "context": "", "source": ""}
    ]
    # not a programming query
    assert artifact.code_examples == []
    assert artifact.metadata["sourcesCount"] == 2
    assert artifact.metadata["searchQueries"] == 2
    assert artifact.metadata["researchDepth"] == "Comprehensive"
    assert 0 < artifact.metadata["confidence"] <= 1
    assert sink.stages == ["processing", "analyzing"]

    prompt = mock_llm.await_args.args[1]
    assert "Research question: distributed consensus" in prompt
    assert "https://raft.github.io/" in prompt


@pytest.mark.asyncio
async def test_web_strategy_keeps_code_examples_for_programming_queries():
    with patch("app.tools.search_provider.search", AsyncMock(return_value=web_results())), patch(
        "app.agents.web_strategy.complete_json", AsyncMock(return_value=WEB_REPLY)
    ):
        artifact = await WebResearchStrategy().research("python asyncio queues")

    assert len(artifact.code_examples) == 1
    example = artifact.code_examples[0]
    assert example["code"] == "print('hi')"
    assert example["language"] == "text"
    assert example["source"] == "Web research"


@pytest.mark.asyncio
async def test_web_strategy_wraps_search_failure():
    with patch("app.tools.search_provider.search", AsyncMock(side_effect=RuntimeError("quota exceeded"))):
        with pytest.raises(UpstreamFailure, match="quota exceeded"):
            await WebResearchStrategy().research("distributed consensus")


@pytest.mark.asyncio
async def test_web_strategy_rejects_reply_without_summary():
    with patch("app.tools.search_provider.search", AsyncMock(return_value=web_results())), patch(
        "app.agents.web_strategy.complete_json", AsyncMock(return_value={"findings": []})
    ):
        with pytest.raises(UpstreamFailure):
            await WebResearchStrategy().research("distributed consensus")


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy_cls", [WebResearchStrategy, AcademicResearchStrategy])
@pytest.mark.parametrize("query", ["", "   ", "ab"])
async def test_short_query_returns_guidance_without_upstream_calls(strategy_cls, query):
    search = AsyncMock()
    with patch("app.tools.search_provider.search", search), patch(
        "app.tools.arxiv_search.search", search
    ), patch("app.tools.github_search.search", search):
        artifact = await strategy_cls().research(query)

    search.assert_not_awaited()
    assert artifact.summary == "Please provide a more specific research query."
    assert artifact.suggested_questions
    assert artifact.metadata["sourcesCount"] == 0
    assert artifact.metadata["researchDepth"] == "None"


PAPER = ArxivPaper(
    id="http://arxiv.org/abs/2401.00001v1",
    title="Fast Byzantine Consensus",
    summary="We present a distributed consensus protocol that " + "tolerates faults " * 10,
    published="2024-01-01T00:00:00Z",
    link="http://arxiv.org/pdf/2401.00001v1",
    authors=["Ada Lovelace"],
    pdf_link="http://arxiv.org/pdf/2401.00001v1",
)

REPO = CodeRepository(
    title="etcd-io/raft",
    description="Raft library for maintaining a replicated state machine",
    url="https://github.com/etcd-io/raft",
    stars=900,
    language="Go",
)

ACADEMIC_REPLY = {
    "analysis": (
        "Distributed consensus protocols coordinate replicas under failures and delays.\n\n"
        "Byzantine variants add signatures and extra rounds so that faulty nodes cannot equivocate."
    ),
    "statistics": [{"metric": "Latency", "value": "3 rounds"}],
    "questions": ["What are the open problems in this topic?"],
    "codeExamples": [],
    "methodology": {"approach": "Literature review of consensus protocols"},
}


def chunk(text):
    return DocumentChunk(text=text, metadata={"title": PAPER.title, "source": PAPER.link})


@pytest.mark.asyncio
async def test_academic_strategy_combines_papers_and_repositories():
    sink = RecordingSink()
    with patch("app.tools.arxiv_search.search", AsyncMock(return_value=[PAPER])), patch(
        "app.tools.github_search.search", AsyncMock(return_value=[REPO])
    ), patch(
        "app.tools.document_utils.load_paper",
        AsyncMock(return_value=[chunk("consensus under partitions"), chunk("unrelated text")]),
    ), patch(
        "app.agents.academic_strategy.complete_json", AsyncMock(return_value=ACADEMIC_REPLY)
    ) as mock_llm:
        artifact = await AcademicResearchStrategy(progress=sink).research("distributed consensus")

    assert artifact.summary.startswith("Distributed consensus protocols")
    assert artifact.findings[0]["title"] == PAPER.title
    assert artifact.findings[0]["credibility"] == 0.9
    assert artifact.findings[0]["category"] == "Research Paper"
    assert artifact.key_insights[-1] == "Research Methodology: Literature review of consensus protocols"
    assert artifact.code_examples[-1]["source"] == REPO.url
    assert artifact.suggested_questions[0] == "What are the open problems in distributed consensus?"
    assert artifact.metadata["sourcesCount"] == 2
    assert artifact.metadata["researchDepth"] == "Academic"
    assert artifact.metadata["attempts"] == 1
    assert sink.stages == ["searching", "downloading", "processing", "analyzing"]

    prompt = mock_llm.await_args.args[1]
    assert "consensus under partitions" in prompt
    assert "etcd-io/raft" in prompt


@pytest.mark.asyncio
async def test_academic_strategy_continues_when_arxiv_fails():
    sink = RecordingSink()
    with patch("app.tools.arxiv_search.search", AsyncMock(side_effect=RuntimeError("arXiv down"))), patch(
        "app.tools.github_search.search", AsyncMock(return_value=[REPO])
    ), patch("app.agents.academic_strategy.complete_json", AsyncMock(return_value=ACADEMIC_REPLY)):
        artifact = await AcademicResearchStrategy(progress=sink).research("distributed consensus")

    assert artifact.findings == []
    assert artifact.metadata["sourcesCount"] == 1
    assert any("arXiv search encountered issues" in e.message for e in sink.events)
    assert "downloading" not in sink.stages


@pytest.mark.asyncio
async def test_academic_strategy_retries_then_fails(monkeypatch):
    monkeypatch.setattr(settings, "academic_max_attempts", 2)
    monkeypatch.setattr(settings, "academic_retry_delay_seconds", 0)
    sink = RecordingSink()
    arxiv = AsyncMock(return_value=[])
    with patch("app.tools.arxiv_search.search", arxiv), patch(
        "app.tools.github_search.search", AsyncMock(return_value=[])
    ):
        with pytest.raises(UpstreamFailure, match="after 2 attempts"):
            await AcademicResearchStrategy(progress=sink).research("distributed consensus")

    assert arxiv.await_count == 2
    assert sink.events[1].message == "Retrying research (attempt 2)..."


@pytest.mark.asyncio
async def test_academic_strategy_recovers_on_second_attempt(monkeypatch):
    monkeypatch.setattr(settings, "academic_max_attempts", 2)
    monkeypatch.setattr(settings, "academic_retry_delay_seconds", 0)
    llm = AsyncMock(side_effect=[UpstreamFailure("malformed"), ACADEMIC_REPLY])
    with patch("app.tools.arxiv_search.search", AsyncMock(return_value=[])), patch(
        "app.tools.github_search.search", AsyncMock(return_value=[REPO])
    ), patch("app.agents.academic_strategy.complete_json", llm):
        artifact = await AcademicResearchStrategy().research("distributed consensus")

    assert artifact.metadata["attempts"] == 2


def test_key_steps_uses_one_step_per_paragraph():
    steps = key_steps(ACADEMIC_REPLY["analysis"], "distributed consensus")

    assert len(steps) == 2
    assert steps[0].startswith("Research Finding 1: Distributed consensus protocols coordinate replicas")
