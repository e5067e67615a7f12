"""Re-validation of a client-supplied research artifact before it is stored.

The save path gets the artifact back from the caller rather than from a
strategy, so its shape cannot be trusted. ``query`` and ``research`` are hard
requirements; every other field is coerced to an empty value of the right type
when it has the wrong shape.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from app.models.research import SanitizedResearchRecord
from app.research_core.errors import InvalidPayload
from app.services import logger as log_service

# record field -> accepted payload keys (wire name first)
LIST_FIELDS: dict[str, tuple[str, ...]] = {
    "findings": ("findings",),
    "key_insights": ("keyInsights", "key_insights"),
    "statistics": ("statistics",),
    "code_examples": ("codeExamples", "code_examples"),
    "suggested_questions": ("suggestedQuestions", "suggested_questions"),
}


def _lookup(research: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    for key in keys:
        if key in research:
            return True, research[key]
    return False, None


def _coerce(
    research: Mapping[str, Any],
    keys: tuple[str, ...],
    accepts: Callable[[Any], bool],
    convert: Callable[[Any], Any],
    empty: Callable[[], Any],
    coerced: list[str],
) -> Any:
    present, value = _lookup(research, keys)
    if not present:
        return empty()
    if accepts(value):
        return convert(value)
    coerced.append(keys[0])
    return empty()


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def sanitize_research(payload: Any) -> SanitizedResearchRecord:
    """Build a storage-ready record from a ``{"query", "research"}`` payload.

    Raises:
        InvalidPayload: ``query`` is missing or blank, or ``research`` is
            missing, empty or not an object.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayload("Request body must be a JSON object")

    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise InvalidPayload("Missing required field: query")

    research = payload.get("research")
    if not isinstance(research, Mapping) or not research:
        raise InvalidPayload("Missing required field: research")

    coerced: list[str] = []
    lists = {
        name: _coerce(research, keys, _is_sequence, list, list, coerced)
        for name, keys in LIST_FIELDS.items()
    }
    summary = _coerce(research, ("summary",), lambda v: isinstance(v, str), str, str, coerced)
    metadata = _coerce(research, ("metadata",), lambda v: isinstance(v, Mapping), dict, dict, coerced)

    if coerced:
        log_service.log_event(
            event_type="research_payload_coerced",
            message="Malformed research fields replaced with empty values",
            level="WARNING",
            fields=coerced,
            query=query[:100],
        )

    return SanitizedResearchRecord(query=query, summary=summary, metadata=metadata, **lists)
