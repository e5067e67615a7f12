from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from app.models.research import SanitizedResearchRecord
from app.research_core.errors import PersistenceFailure
from app.services import supabase as db

RECORD = SanitizedResearchRecord(
    query="distributed consensus",
    summary="Replicas agree on one value.",
    key_insights=["Quorums matter"],
    metadata={"sourcesCount": 2},
)


def fake_client(report_result=None, saved_error=None):
    mock_client = MagicMock()
    tables = {"research_reports": MagicMock(), "saved_research": MagicMock()}
    mock_client.table.side_effect = lambda name: tables[name]
    tables["research_reports"].insert.return_value.execute.return_value = report_result
    if saved_error:
        tables["saved_research"].insert.return_value.execute.side_effect = saved_error
    return mock_client, tables


@pytest.mark.asyncio
async def test_save_research_writes_report_and_quick_access_copy():
    stored = {"id": 1, "user_id": "user-1", "query": RECORD.query}
    mock_client, tables = fake_client(SimpleNamespace(data=[stored]))

    with patch("app.services.supabase.client", return_value=mock_client):
        result = await db.save_research("user-1", RECORD)

    assert result == stored
    row = tables["research_reports"].insert.call_args.args[0]
    assert row["user_id"] == "user-1"
    assert row["key_insights"] == ["Quorums matter"]
    assert row["created_at"]

    saved = tables["saved_research"].insert.call_args.args[0]
    assert saved["user_id"] == "user-1"
    assert saved["research_data"]["keyInsights"] == ["Quorums matter"]
    assert saved["research_data"]["query"] == RECORD.query
    assert saved["created_at"] == row["created_at"]
    tables["research_reports"].delete.assert_not_called()


@pytest.mark.asyncio
async def test_save_research_passes_storage_message_through():
    error = Exception("permission denied for table saved_research")
    mock_client, tables = fake_client(SimpleNamespace(data=[{"id": 1}]), saved_error=error)

    with patch("app.services.supabase.client", return_value=mock_client):
        with pytest.raises(PersistenceFailure, match="permission denied for table saved_research"):
            await db.save_research("user-1", RECORD)

    # the orphaned report row is removed again
    tables["research_reports"].delete.return_value.eq.assert_called_once_with("id", 1)


@pytest.mark.asyncio
async def test_save_research_keeps_storage_message_when_rollback_fails():
    mock_client, tables = fake_client(
        SimpleNamespace(data=[{"id": 1}]), saved_error=Exception("saved_research unavailable")
    )
    tables["research_reports"].delete.return_value.eq.return_value.execute.side_effect = Exception("offline")

    with patch("app.services.supabase.client", return_value=mock_client):
        with pytest.raises(PersistenceFailure, match="saved_research unavailable"):
            await db.save_research("user-1", RECORD)


@pytest.mark.asyncio
async def test_save_research_fails_when_no_row_returned():
    mock_client, tables = fake_client(SimpleNamespace(data=[]))

    with patch("app.services.supabase.client", return_value=mock_client):
        with pytest.raises(PersistenceFailure):
            await db.save_research("user-1", RECORD)

    tables["saved_research"].insert.assert_not_called()


@pytest.mark.asyncio
async def test_get_user_id_resolves_token():
    mock_client = MagicMock()
    mock_client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(id="user-1"))

    with patch("app.services.supabase.client", return_value=mock_client):
        assert await db.get_user_id("token") == "user-1"

    mock_client.auth.get_user.assert_called_once_with("token")


@pytest.mark.asyncio
async def test_get_user_id_returns_none_for_rejected_token():
    mock_client = MagicMock()
    mock_client.auth.get_user.side_effect = Exception("invalid JWT")

    with patch("app.services.supabase.client", return_value=mock_client):
        assert await db.get_user_id("bad") is None
