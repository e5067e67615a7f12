from __future__ import annotations

import re
from urllib.parse import urlparse

PROGRAMMING_KEYWORDS = (
    "code", "program", "function", "algorithm", "develop", "software",
    "app", "application", "website", "web", "javascript", "python", "java",
    "c++", "programming", "developer", "development", "script", "library",
    "framework", "api", "backend", "frontend", "fullstack", "database",
    "sql", "nosql", "react", "angular", "vue", "node", "express", "django",
    "flask", "spring", "boot", "docker", "kubernetes", "devops", "git",
    "github", "gitlab", "bitbucket", "ci/cd", "continuous integration",
    "deployment", "testing", "unit test", "integration test", "e2e test",
)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "how", "what", "when", "where", "why",
})

_DISALLOWED_CHARS = re.compile(r"[^\w\s.,!?;:()\-\"']")


def is_valid_url(url: object) -> bool:
    """True for absolute http(s) URLs with a host; sources we cannot link to are dropped."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def clean_content(text: str, max_length: int = 8000) -> str:
    """Collapse whitespace, drop stray symbols, trim to max length."""
    text = re.sub(r"\s+", " ", text or "")
    text = _DISALLOWED_CHARS.sub("", text).strip()
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def extract_domain(url: str) -> str:
    """Extract domain from URL for display."""
    try:
        return urlparse(url).netloc
    except ValueError:
        return ""


def query_terms(query: str, min_length: int = 0) -> list[str]:
    return [t for t in query.lower().split() if len(t) > min_length]


def is_programming_query(query: str) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in PROGRAMMING_KEYWORDS)


def extract_keywords(query: str, limit: int = 5) -> list[str]:
    return [w for w in query_terms(query, 2) if w not in STOP_WORDS][:limit]
