"""OpenRouter client factory and JSON completion helper for the strategies."""
from __future__ import annotations

import json
import re
import time
from typing import Any

from openai import AsyncOpenAI

from app.config import settings
from app.research_core.errors import UpstreamFailure
from app.services import logger as log_service

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def get_client() -> AsyncOpenAI:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(api_key=settings.openrouter_api_key, base_url=base_url)


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


_client: AsyncOpenAI | None = None


def client() -> AsyncOpenAI:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


def parse_json_reply(text: str) -> dict[str, Any]:
    """Parse a model reply that should hold one JSON object.

    Models like to wrap JSON in markdown fences or add a sentence around it,
    so the outermost ``{...}`` span is tried when the raw text does not parse.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise UpstreamFailure("Generation service returned a malformed response")
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise UpstreamFailure("Generation service returned a malformed response") from exc
    if not isinstance(parsed, dict):
        raise UpstreamFailure("Generation service returned JSON that is not an object")
    return parsed


async def complete_json(
    system: str,
    prompt: str,
    *,
    caller: str,
    model: str | None = None,
    max_tokens: int | None = None,
) -> dict[str, Any]:
    """Run one chat completion and return its reply parsed as a JSON object."""
    if not settings.openrouter_api_key:
        raise UpstreamFailure("OPENROUTER_API_KEY is not configured")

    active_model = model or get_model()
    t0 = time.monotonic()
    try:
        response = await client().chat.completions.create(
            model=active_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens or settings.llm_max_tokens,
            temperature=0.3,
            response_format={"type": "json_object"},
        )
    except Exception as e:
        log_service.log_llm_call(
            model=active_model,
            caller=caller,
            duration_ms=int((time.monotonic() - t0) * 1000),
            status="error",
            error=str(e),
        )
        raise UpstreamFailure(f"Generation service request failed: {e}") from e

    usage = getattr(response, "usage", None)
    log_service.log_llm_call(
        model=active_model,
        caller=caller,
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        duration_ms=int((time.monotonic() - t0) * 1000),
    )

    choices = getattr(response, "choices", None) or []
    if not choices:
        raise UpstreamFailure("Generation service returned no choices")
    return parse_json_reply(choices[0].message.content or "")
