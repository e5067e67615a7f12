from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.config import settings
from app.tools.web_utils import query_terms


@dataclass
class CodeRepository:
    title: str
    description: str
    url: str
    stars: int = 0
    language: str = "Unknown"


def enhance_query(query: str) -> str:
    lowered = query.lower()
    enhanced = query
    if "python" in lowered:
        enhanced += " language:python"
    elif "javascript" in lowered:
        enhanced += " language:javascript"
    elif "typescript" in lowered:
        enhanced += " language:typescript"
    return f"{enhanced} stars:>10 pushed:>2022-01-01"


def is_relevant(repo: dict[str, Any], query: str) -> bool:
    description = repo.get("description") or ""
    text = f"{repo.get('full_name', '')} {description}".lower()
    has_terms = any(t in text for t in query_terms(query, min_length=2))
    return has_terms and (repo.get("stargazers_count") or 0) >= 5 and len(description) > 10


def parse_items(payload: dict[str, Any], query: str) -> list[CodeRepository]:
    return [
        CodeRepository(
            title=item.get("full_name", ""),
            description=item.get("description") or "No description available",
            url=item.get("html_url", ""),
            stars=item.get("stargazers_count") or 0,
            language=item.get("language") or "Unknown",
        )
        for item in payload.get("items", []) or []
        if is_relevant(item, query)
    ]


async def search(query: str, *, per_page: int = 8) -> list[CodeRepository]:
    """Search GitHub repositories related to the query, most starred first."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "prime-research",
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"

    params = {"q": enhance_query(query), "sort": "stars", "order": "desc", "per_page": per_page}
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        response = await client.get(settings.github_api_url, params=params, headers=headers)
        response.raise_for_status()
        payload = response.json()

    return parse_items(payload, query)
