from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace

from app.config import settings
from app.services import logger as log_service
from app.tools import tavily_search
from app.tools.tavily_search import SearchResult
from app.tools.web_utils import (
    extract_domain,
    extract_keywords,
    is_programming_query,
    query_terms,
)

AUTHORITATIVE_DOMAINS = (
    "wikipedia.org", "github.com", "stackoverflow.com", "mozilla.org",
    "python.org", "nodejs.org", "reactjs.org", "angular.io", "vuejs.org",
    "arxiv.org", "nature.com", "science.org", "ieee.org",
)


@dataclass
class SearchResponse:
    results: list[SearchResult]
    queries: list[str]
    failed_queries: list[str] = field(default_factory=list)


def generate_search_queries(query: str, limit: int | None = None) -> list[str]:
    """Variations of the query for broader coverage, original first."""
    base = query.strip()
    queries = [base]
    if is_programming_query(base):
        queries += [
            f"{base} tutorial examples",
            f"{base} best practices guide",
            f"{base} documentation official",
        ]
    else:
        queries += [
            f"{base} latest research",
            f"{base} comprehensive guide",
            f"{base} expert analysis",
        ]
    if len(base) > 20:
        keywords = extract_keywords(base)
        if len(keywords) > 1:
            queries.append(" ".join(keywords[:3]))
    return queries[: limit or settings.web_max_search_queries]


def relevant_domains(query: str) -> list[str]:
    lowered = query.lower()
    domains: list[str] = []
    if is_programming_query(query):
        domains += ["stackoverflow.com", "github.com", "developer.mozilla.org", "docs.python.org"]
    if "research" in lowered or "study" in lowered:
        domains += ["arxiv.org", "scholar.google.com", "researchgate.net"]
    if "news" in lowered:
        domains += ["reuters.com", "bbc.com", "techcrunch.com"]
    return domains


def is_authoritative(domain: str) -> bool:
    return any(auth in domain for auth in AUTHORITATIVE_DOMAINS)


def deduplicate(results: list[SearchResult]) -> list[SearchResult]:
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        key = result.url.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


def rank(results: list[SearchResult], query: str) -> list[SearchResult]:
    """Re-score by title/content term matches and domain authority."""
    terms = query_terms(query)
    rescored: list[SearchResult] = []
    for result in results:
        score = result.score or 0.0
        title = result.title.lower()
        content = (result.content or "").lower()
        score += 0.2 * sum(1 for t in terms if t in title)
        score += 0.1 * sum(1 for t in terms if t in content)
        if is_authoritative(extract_domain(result.url)):
            score += 0.3
        rescored.append(replace(result, score=score))
    return sorted(rescored, key=lambda r: r.score, reverse=True)


async def search(query: str) -> SearchResponse:
    """Run every generated query against Tavily; a failing query is skipped.

    Raises only when no query succeeded, so one bad variation does not sink
    the whole search.
    """
    queries = generate_search_queries(query)
    include = relevant_domains(query)

    outcomes = await asyncio.gather(
        *(
            tavily_search.search(
                q,
                max_results=settings.web_results_per_query,
                include_domains=include or None,
                exclude_domains=tavily_search.EXCLUDED_DOMAINS,
            )
            for q in queries
        ),
        return_exceptions=True,
    )

    collected: list[SearchResult] = []
    failed: list[str] = []
    errors: list[str] = []
    for q, outcome in zip(queries, outcomes):
        if isinstance(outcome, BaseException):
            failed.append(q)
            errors.append(str(outcome))
            log_service.log_event(
                event_type="search_failed",
                message="Web search query failed",
                level="WARNING",
                query=q,
                error=str(outcome),
            )
            continue
        collected.extend(outcome)

    if len(failed) == len(queries):
        raise RuntimeError(f"All web searches failed: {errors[0] if errors else 'unknown error'}")

    ranked = rank(deduplicate(collected), query)
    return SearchResponse(
        results=ranked[: settings.web_max_documents],
        queries=queries,
        failed_queries=failed,
    )
