from __future__ import annotations

from datetime import date

from app.agents import formatting
from app.agents.base import ResearchStrategy
from app.config import settings
from app.llm_client import complete_json
from app.models.events import ProgressStage
from app.models.research import ResearchArtifact, ResearchMode
from app.research_core.errors import UpstreamFailure
from app.services.prompt_store import render_prompt
from app.tools import search_provider
from app.tools.search_provider import is_authoritative
from app.tools.tavily_search import SearchResult
from app.tools.web_utils import clean_content, extract_domain, is_programming_query


def confidence(results: list[SearchResult], findings_count: int) -> float:
    score = 0.5
    score += min(len(results) * 0.05, 0.3)
    score += 0.1 * sum(1 for r in results if is_authoritative(extract_domain(r.url)))
    score += min(findings_count * 0.05, 0.2)
    return min(score, 1.0)


def quality_score(results: list[SearchResult]) -> float:
    if not results:
        return 0.0
    avg_length = sum(len(r.best_content) for r in results) / len(results)
    authoritative = sum(1 for r in results if is_authoritative(extract_domain(r.url)))
    score = 0.5 + min(avg_length / 2000, 0.3) + (authoritative / len(results)) * 0.2
    return min(score, 1.0)


def format_sources(results: list[SearchResult]) -> str:
    blocks = []
    for i, r in enumerate(results, 1):
        content = clean_content(r.best_content, max_length=settings.web_max_document_chars)
        blocks.append(f"[{i}] {r.title}\nURL: {r.url}\n{content}")
    return "\n\n".join(blocks)


class WebResearchStrategy(ResearchStrategy):
    """Research over general web sources found through Tavily."""

    name = "web"
    mode = ResearchMode.WEB

    async def _research(self, query: str) -> ResearchArtifact:
        try:
            search_response = await search_provider.search(query)
        except Exception as e:
            raise UpstreamFailure(f"Web search failed: {e}") from e

        results = search_response.results
        if not results:
            raise UpstreamFailure(f"No web sources found for '{query}'")

        self._report(
            ProgressStage.PROCESSING,
            f"Processing {len(results)} sources...",
            current=2,
        )

        wants_code = is_programming_query(query)
        self._report(ProgressStage.ANALYZING, "Synthesizing findings...", current=3)
        reply = await complete_json(
            render_prompt("web.system", today=date.today().isoformat()),
            render_prompt(
                "web.synthesis",
                query=query,
                sources=format_sources(results),
                code_instruction=render_prompt(
                    "web.code_examples_wanted" if wants_code else "web.code_examples_skipped"
                ),
            ),
            caller=self.name,
        )

        summary = reply.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise UpstreamFailure("Generation service returned no summary")

        findings = formatting.findings(reply.get("findings"), default_type="web")
        return ResearchArtifact(
            summary=summary.strip(),
            findings=findings,
            key_insights=formatting.strings(reply.get("keyInsights")),
            statistics=formatting.statistics(reply.get("statistics")),
            code_examples=(
                formatting.code_examples(reply.get("codeExamples"), query, default_source="Web research")
                if wants_code
                else []
            ),
            suggested_questions=formatting.strings(reply.get("suggestedQuestions")),
            metadata=self.base_metadata(
                sources_count=len(results),
                confidence=confidence(results, len(findings)),
                depth="Comprehensive",
                searchQueries=len(search_response.queries),
                qualityScore=round(quality_score(results), 2),
                sources=source_list(results),
            ),
        )


def source_list(results: list[SearchResult]) -> list[dict[str, str]]:
    return [{"title": r.title, "url": r.url, "domain": extract_domain(r.url)} for r in results]
