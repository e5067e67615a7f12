from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator


# --- Requests ---


class ResearchRequest(BaseModel):
    query: str
    mode: str | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _non_text_mode_is_unset(cls, value: Any) -> str | None:
        # unrecognised selectors fall back to web in ResearchMode.resolve
        return value if isinstance(value, str) else None


# --- Responses ---


class SaveResearchResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    message: str = "Research saved successfully"


class HealthResponse(BaseModel):
    status: str
    service: str
