from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tavily import AsyncTavilyClient

from app.config import settings
from app.tools.web_utils import is_valid_url

# social feeds rarely carry citable text
EXCLUDED_DOMAINS = ["pinterest.com", "instagram.com", "facebook.com"]


@dataclass
class SearchResult:
    title: str
    url: str
    content: str
    score: float
    raw_content: str = ""

    @property
    def best_content(self) -> str:
        """Full page text when Tavily returned it, otherwise the snippet."""
        return self.raw_content or self.content


def _to_result(item: dict[str, Any]) -> SearchResult:
    return SearchResult(
        title=item.get("title") or "",
        url=item.get("url") or "",
        content=item.get("content") or "",
        score=float(item.get("score") or 0.0),
        raw_content=item.get("raw_content") or "",
    )


async def search(
    query: str,
    *,
    max_results: int = 5,
    include_domains: list[str] | None = None,
    exclude_domains: list[str] | None = None,
) -> list[SearchResult]:
    """Run one advanced Tavily search with page text, skipping results without a usable URL."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    options: dict[str, Any] = {
        "search_depth": "advanced",
        "max_results": max_results,
        "include_raw_content": True,
        "include_images": False,
    }
    if include_domains:
        options["include_domains"] = include_domains
    if exclude_domains:
        options["exclude_domains"] = exclude_domains

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(query, **options)
    return [_to_result(item) for item in response.get("results", []) if is_valid_url(item.get("url"))]
