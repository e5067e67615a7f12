"""Normalize loosely shaped generation output into artifact records."""
from __future__ import annotations

from typing import Any

from app.models.research import CodeExample, Finding, Statistic, coerce_list


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def insight_text(item: Any) -> str:
    """Flatten ``{"point", "explanation"}`` style insights into one line."""
    if isinstance(item, dict):
        point = _text(item.get("point") or item.get("title")).strip()
        explanation = _text(item.get("explanation") or item.get("content")).strip()
        if point and explanation:
            return f"{point}: {explanation}"
        return point or explanation
    return _text(item).strip()


def strings(value: Any) -> list[str]:
    return [s for s in (insight_text(item) for item in coerce_list(value)) if s]


def findings(value: Any, default_type: str = "web") -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for item in coerce_list(value):
        if isinstance(item, str):
            item = {"content": item}
        if not isinstance(item, dict):
            continue
        content = _text(item.get("content")).strip()
        title = _text(item.get("title")).strip() or content[:80]
        if not (title or content):
            continue
        records.append(
            Finding(
                title=title,
                content=content,
                source=_text(item.get("source")),
                relevance=_text(item.get("relevance")) or "Medium",
                type=_text(item.get("type")) or default_type,
                category=_text(item.get("category")) or None,
            ).to_dict()
        )
    return records


def statistics(value: Any) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for item in coerce_list(value):
        if not isinstance(item, dict) or not item.get("value"):
            continue
        records.append(
            Statistic(
                metric=_text(item.get("metric")),
                value=_text(item.get("value")),
                context=_text(item.get("context")),
                source=_text(item.get("source")),
            ).to_dict()
        )
    return records


def code_examples(value: Any, query: str, default_source: str = "Research data") -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for item in coerce_list(value):
        if not isinstance(item, dict):
            continue
        code = _text(item.get("code"))
        if not code.strip():
            continue
        records.append(
            CodeExample(
                title=_text(item.get("title")) or code_title(code, query),
                language=_text(item.get("language")) or "text",
                code=code,
                description=_text(item.get("description")) or code_description(code, query),
                source=_text(item.get("source")) or default_source,
            ).to_dict()
        )
    return records


def code_title(code: str, query: str) -> str:
    if "def " in code or "function" in code:
        return f"Implementation Example for {query}"
    if "class " in code:
        return f"Class Structure for {query}"
    return f"Code Example: {query}"


def code_description(code: str, query: str) -> str:
    lines = len(code.split("\n"))
    return f"A {lines}-line code example demonstrating {query} implementation with practical applications."
