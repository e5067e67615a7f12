from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import StreamingResponse

from app.agents.orchestrator import ResearchOrchestrator
from app.api.deps import get_current_user_id, get_orchestrator
from app.models.research import ResearchMode, ResearchQuery
from app.models.schemas import ResearchRequest, SaveResearchResponse
from app.services import logger as log_service
from app.services import supabase as db
from app.services.sanitizer import sanitize_research

router = APIRouter(prefix="/api/research", tags=["research"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


@router.post("")
async def stream_research(
    request: ResearchRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Run research and stream newline-delimited JSON events.

    Each line is one of ``{"status": ...}``, ``{"research": ...}`` or
    ``{"error": ...}``; the last line is always ``research`` or ``error``.
    """
    query = ResearchQuery(text=request.query, mode=ResearchMode.resolve(request.mode))

    async def body():
        async for event in orchestrator.stream(query):
            yield event.format()

    return StreamingResponse(
        body(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/save", response_model=SaveResearchResponse)
async def save_research(
    payload: Any = Body(...),
    user_id: str = Depends(get_current_user_id),
):
    record = sanitize_research(payload)
    stored = await db.save_research(user_id, record)
    log_service.log_event(
        event_type="research_saved",
        message="Research saved",
        user_id=user_id,
        query=record.query[:100],
    )
    return SaveResearchResponse(data=stored)
