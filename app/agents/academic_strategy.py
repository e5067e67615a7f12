from __future__ import annotations

import asyncio
from typing import Any

import httpx

from app.agents import formatting
from app.agents.base import ResearchStrategy
from app.config import settings
from app.llm_client import complete_json
from app.models.events import ProgressStage
from app.models.research import CodeExample, Finding, ResearchArtifact, ResearchMode
from app.research_core.errors import UpstreamFailure
from app.services import logger as log_service
from app.services.prompt_store import render_prompt
from app.tools import arxiv_search, document_utils, github_search
from app.tools.arxiv_search import ArxivPaper
from app.tools.document_utils import DocumentChunk
from app.tools.github_search import CodeRepository
from app.tools.web_utils import query_terms


def determine_relevance(summary: str, query: str) -> str:
    terms = query_terms(query)
    if not terms:
        return "Low"
    lowered = summary.lower()
    ratio = sum(1 for t in terms if t in lowered) / len(terms)
    if ratio >= 0.7:
        return "High"
    if ratio >= 0.4:
        return "Medium"
    return "Low"


def confidence_score(reply: dict[str, Any], analysis: str, paper_count: int) -> float:
    score = 0.5 + min(paper_count * 0.1, 0.3)
    if formatting.statistics(reply.get("statistics")):
        score += 0.1
    if formatting.code_examples(reply.get("codeExamples"), ""):
        score += 0.1
    if len(analysis) > 500:
        score += 0.1
    return min(score, 1.0)


def key_steps(analysis: str, query: str) -> list[str]:
    """One insight per substantial paragraph of the analysis."""
    paragraphs = [p.strip() for p in analysis.split("\n\n") if len(p.strip()) > 50]
    if len(paragraphs) <= 1:
        return [f"Research Overview: {query}: {analysis.strip()}"]

    steps = []
    for index, paragraph in enumerate(paragraphs, 1):
        first_sentence = paragraph.split(".")[0]
        if len(first_sentence) < 60:
            title = first_sentence
        else:
            lead = " ".join(paragraph.split()[:5])
            title = f"Research Finding {index}: {lead} in {query}"
        steps.append(f"{title}: {paragraph}")
    return steps


def contextual_questions(base: list[str], query: str) -> list[str]:
    questions = [q.replace("this topic", query) for q in base]
    questions.append(f"How does {query} compare to alternative approaches?")
    questions.append(f"What are the latest developments in {query}?")
    return questions[:5]


def format_excerpts(chunks: list[DocumentChunk]) -> str:
    if not chunks:
        return "No paper excerpts available."
    return "\n\n".join(
        f"[{i}] {c.metadata.get('title', 'Untitled')} ({c.metadata.get('source', '')})\n{c.text}"
        for i, c in enumerate(chunks, 1)
    )


def format_repositories(repos: list[CodeRepository]) -> str:
    if not repos:
        return "None found."
    return "\n".join(f"- {r.title} ({r.language}, {r.stars} stars): {r.description} <{r.url}>" for r in repos)


class AcademicResearchStrategy(ResearchStrategy):
    """Research over arXiv papers and related GitHub repositories."""

    name = "academic"
    mode = ResearchMode.ACADEMIC

    async def _research(self, query: str) -> ResearchArtifact:
        max_attempts = max(1, settings.academic_max_attempts)
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            self._report(
                ProgressStage.SEARCHING,
                "Starting academic research..." if attempt == 1 else f"Retrying research (attempt {attempt})...",
                current=1,
            )
            try:
                return await self._attempt(query, attempt)
            except Exception as e:
                last_error = e
                log_service.log_event(
                    event_type="academic_attempt_failed",
                    message=f"Academic research attempt {attempt} failed",
                    level="WARNING",
                    query=query[:100],
                    error=str(e),
                )
                if attempt < max_attempts:
                    await asyncio.sleep(settings.academic_retry_delay_seconds)

        raise UpstreamFailure(
            f"Academic research failed after {max_attempts} attempts: {last_error}"
        ) from last_error

    async def _attempt(self, query: str, attempt: int) -> ResearchArtifact:
        papers, repos = await self._search_sources(query)
        if not papers and not repos:
            raise UpstreamFailure("No relevant sources found")

        chunks = await self._load_papers(papers)

        self._report(
            ProgressStage.PROCESSING,
            f"Selecting relevant passages from {len(chunks)} document chunks...",
            current=3,
        )
        relevant = document_utils.select_relevant(chunks, query, settings.academic_top_chunks)

        self._report(ProgressStage.ANALYZING, "Performing comprehensive analysis...", current=4)
        reply = await complete_json(
            render_prompt("academic.system"),
            render_prompt(
                "academic.analysis",
                query=query,
                excerpts=format_excerpts(relevant),
                repositories=format_repositories(repos),
            ),
            caller=self.name,
        )
        analysis = reply.get("analysis")
        if not isinstance(analysis, str) or not analysis.strip():
            raise UpstreamFailure("Generation service returned no analysis")

        return self._format(query, reply, analysis.strip(), papers, repos, attempt)

    async def _search_sources(self, query: str) -> tuple[list[ArxivPaper], list[CodeRepository]]:
        papers_outcome, repos_outcome = await asyncio.gather(
            arxiv_search.search(query),
            github_search.search(query),
            return_exceptions=True,
        )
        papers: list[ArxivPaper] = []
        repos: list[CodeRepository] = []
        if isinstance(papers_outcome, BaseException):
            self._source_failed("arxiv", papers_outcome)
            self._report(
                ProgressStage.SEARCHING,
                "arXiv search encountered issues, continuing with other sources...",
                current=1,
            )
        else:
            papers = papers_outcome
        if isinstance(repos_outcome, BaseException):
            self._source_failed("github", repos_outcome)
        else:
            repos = repos_outcome
        return papers, repos

    @staticmethod
    def _source_failed(source: str, error: BaseException) -> None:
        log_service.log_event(
            event_type="source_failed",
            message=f"{source} search failed",
            level="WARNING",
            source=source,
            error=str(error),
        )

    async def _load_papers(self, papers: list[ArxivPaper]) -> list[DocumentChunk]:
        chunks: list[DocumentChunk] = []
        if not papers:
            return chunks
        async with httpx.AsyncClient(timeout=settings.pdf_timeout_seconds) as client:
            for paper in papers:
                self._report(
                    ProgressStage.DOWNLOADING,
                    f"Processing paper: {paper.title[:50]}...",
                    current=2,
                )
                chunks.extend(await document_utils.load_paper(paper, client))
        return chunks

    def _format(
        self,
        query: str,
        reply: dict[str, Any],
        analysis: str,
        papers: list[ArxivPaper],
        repos: list[CodeRepository],
        attempt: int,
    ) -> ResearchArtifact:
        summary = analysis
        if query.lower()[:15] not in analysis.lower():
            summary = f"Academic research on {query}:\n\n{analysis}"

        insights = key_steps(analysis, query)
        methodology = reply.get("methodology")
        if isinstance(methodology, dict) and methodology.get("approach"):
            insights.append(f"Research Methodology: {methodology['approach']}")

        findings = [
            Finding(
                title=paper.title,
                content=paper.summary,
                source=paper.link,
                relevance=determine_relevance(paper.summary, query),
                type="academic",
                category="Research Paper",
                credibility=0.9,
            ).to_dict()
            for paper in papers
        ]

        repo_examples = [
            CodeExample(
                title=repo.title or "Repository",
                language=repo.language or "text",
                code=(
                    f"// Repository: {repo.title}\n// Description: {repo.description}\n"
                    f"// Stars: {repo.stars}\n// Access full code at: {repo.url}"
                ),
                description=repo.description,
                source=repo.url,
            ).to_dict()
            for repo in repos
        ]

        return ResearchArtifact(
            summary=summary,
            findings=findings,
            key_insights=insights,
            statistics=formatting.statistics(reply.get("statistics")),
            code_examples=formatting.code_examples(reply.get("codeExamples"), query) + repo_examples,
            suggested_questions=contextual_questions(formatting.strings(reply.get("questions")), query),
            metadata=self.base_metadata(
                sources_count=len(papers) + len(repos),
                confidence=confidence_score(reply, analysis, len(papers)),
                depth="Academic",
                attempts=attempt,
            ),
        )
