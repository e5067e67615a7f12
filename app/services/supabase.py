from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from supabase import create_client, Client

from app.config import settings
from app.models.research import SanitizedResearchRecord
from app.research_core.errors import PersistenceFailure
from app.services import logger as log_service


def get_client() -> Client:
    return create_client(settings.supabase_url, settings.supabase_anon_key)


_client: Client | None = None


def client() -> Client:
    global _client
    if _client is None:
        _client = get_client()
    return _client


async def _execute(query: Any) -> Any:
    """Run blocking Supabase query execution in a worker thread."""
    return await asyncio.to_thread(query.execute)


def _error_message(error: Exception) -> str:
    message = getattr(error, "message", None)
    return message if isinstance(message, str) and message else str(error) or "Failed to save research"


# --- Auth ---


async def get_user_id(token: str) -> str | None:
    """Resolve a bearer token to the caller's user id, or None if it is invalid."""
    try:
        response = await asyncio.to_thread(client().auth.get_user, token)
    except Exception as e:
        log_service.log_event(
            event_type="auth_failed",
            message="Token verification failed",
            level="WARNING",
            error=str(e),
        )
        return None
    user = getattr(response, "user", None)
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


# --- Research reports ---


def saved_research_data(record: SanitizedResearchRecord) -> dict[str, Any]:
    """Quick-access copy kept in ``saved_research``, in wire field names."""
    return {
        "query": record.query,
        "summary": record.summary,
        "findings": list(record.findings),
        "keyInsights": list(record.key_insights),
        "statistics": list(record.statistics),
        "codeExamples": list(record.code_examples),
        "suggestedQuestions": list(record.suggested_questions),
        "metadata": dict(record.metadata),
    }


async def _discard_report(stored: dict[str, Any]) -> None:
    report_id = stored.get("id")
    if report_id is None:
        log_service.log_db_operation("delete", "research_reports", "failed", error="stored row has no id")
        return
    try:
        await _execute(client().table("research_reports").delete().eq("id", report_id))
    except Exception as e:
        log_service.log_db_operation(
            "delete", "research_reports", "failed", details=f"id={report_id}", error=_error_message(e)
        )
        return
    log_service.log_db_operation("delete", "research_reports", "success", details=f"id={report_id}")


async def save_research(user_id: str, record: SanitizedResearchRecord) -> dict[str, Any]:
    """Store a sanitized record for a user and return the stored report row.

    Raises:
        PersistenceFailure: either insert was rejected; carries the storage
            error message unchanged. A report row whose quick-access copy
            failed is deleted again so a failed save leaves nothing behind.
    """
    created_at = datetime.now(timezone.utc).isoformat()
    row = {"user_id": user_id, **record.to_row(), "created_at": created_at}

    try:
        result = await _execute(client().table("research_reports").insert(row))
    except Exception as e:
        log_service.log_db_operation("insert", "research_reports", "failed", error=_error_message(e))
        raise PersistenceFailure(_error_message(e)) from e
    if not result.data:
        log_service.log_db_operation("insert", "research_reports", "failed", error="no row returned")
        raise PersistenceFailure("Failed to save research")
    stored = result.data[0]
    log_service.log_db_operation("insert", "research_reports", "success", details=f"id={stored.get('id')}")

    try:
        await _execute(
            client().table("saved_research").insert(
                {
                    "user_id": user_id,
                    "research_data": saved_research_data(record),
                    "created_at": created_at,
                }
            )
        )
    except Exception as e:
        log_service.log_db_operation("insert", "saved_research", "failed", error=_error_message(e))
        await _discard_report(stored)
        raise PersistenceFailure(_error_message(e)) from e
    log_service.log_db_operation("insert", "saved_research", "success")

    return stored
