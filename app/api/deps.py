from __future__ import annotations

from fastapi import Header

from app.agents.orchestrator import ResearchOrchestrator
from app.research_core.errors import Unauthorized
from app.services import supabase as db


def get_orchestrator() -> ResearchOrchestrator:
    return ResearchOrchestrator()


async def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise Unauthorized("Unauthorized")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Unauthorized")

    user_id = await db.get_user_id(token.strip())
    if not user_id:
        raise Unauthorized("Unauthorized")
    return user_id
