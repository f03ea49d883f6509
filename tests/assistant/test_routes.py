"""HTTP tests for the assistant and query history routes."""
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from spendsense.config import settings
from spendsense.database import get_db
from spendsense.main import app
from spendsense.middleware.rate_limit import limiter
from spendsense.assistant.dependencies import _shared_orchestrator, get_orchestrator
from spendsense.assistant.errors import (
    CompletionEndpointError,
    CompletionErrorCategory,
    RunTimeoutError,
)
from spendsense.assistant.schemas import ChatResponse, RunResult


CHAT_URL = "/api/assistant/chat"
CREATED_AT = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "id": "aiq_1",
        "user_id": "user_a",
        "query_text": "What are my total expenses?",
        "ai_response": "$128.50",
        "created_at": CREATED_AT,
    }
    row.update(overrides)
    return SimpleNamespace(**row)


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.run = AsyncMock(return_value=RunResult(
        answer="You've spent $128.50 in total.",
        tools_used=["get_total_expenses"],
        iterations=1,
    ))
    return mock


@pytest.fixture
def client(db, orchestrator):
    async def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with patch.object(limiter, "enabled", False):
        yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# CHAT
# ============================================================================

class TestChatRoute:

    def test_chat_success(self, client, orchestrator):
        with patch("spendsense.assistant.service.ensure_user_exists", new_callable=AsyncMock), \
                patch("spendsense.assistant.service.create_ai_query", new_callable=AsyncMock) as mock_save:
            mock_save.return_value = SimpleNamespace(id="aiq_42", created_at=CREATED_AT)
            response = client.post(CHAT_URL, json={
                "user_id": "user_a",
                "message": "What are my total expenses?",
            })

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "aiq_42"
        assert data["query"] == "What are my total expenses?"
        assert data["response"] == "You've spent $128.50 in total."
        assert data["tools_used"] == ["get_total_expenses"]

    def test_chat_forwards_history(self, client, orchestrator):
        with patch("spendsense.assistant.service.ensure_user_exists", new_callable=AsyncMock), \
                patch("spendsense.assistant.service.create_ai_query", new_callable=AsyncMock) as mock_save:
            mock_save.return_value = SimpleNamespace(id="aiq_1", created_at=CREATED_AT)
            client.post(CHAT_URL, json={
                "user_id": "user_a",
                "message": "And last month?",
                "conversation_history": [
                    {"role": "user", "content": "How much this month?"},
                    {"role": "assistant", "content": "$40."},
                ],
            })

        history = orchestrator.run.await_args.kwargs["conversation_history"]
        assert [h.content for h in history] == ["How much this month?", "$40."]

    @pytest.mark.parametrize("message", ["", "   "])
    def test_blank_message_rejected(self, client, orchestrator, message):
        response = client.post(CHAT_URL, json={"user_id": "user_a", "message": message})

        assert response.status_code == 422
        orchestrator.run.assert_not_awaited()

    def test_missing_user_id_rejected(self, client):
        response = client.post(CHAT_URL, json={"message": "Hi"})

        assert response.status_code == 422

    @pytest.mark.parametrize("category, expected_status", [
        (CompletionErrorCategory.RATE_LIMIT, 429),
        (CompletionErrorCategory.AUTHENTICATION, 401),
        (CompletionErrorCategory.TIMEOUT, 504),
        (CompletionErrorCategory.CONNECTION, 502),
        (CompletionErrorCategory.GENERIC, 502),
    ])
    def test_completion_errors_are_mapped(self, client, category, expected_status):
        with patch("spendsense.assistant.service.chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.side_effect = CompletionEndpointError(category, "upstream said no")
            response = client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"})

        assert response.status_code == expected_status

    def test_run_timeout_is_gateway_timeout(self, client):
        with patch("spendsense.assistant.service.chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.side_effect = RunTimeoutError(60.0)
            response = client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"})

        assert response.status_code == 504

    def test_unexpected_error_is_500(self, client):
        with patch("spendsense.assistant.service.chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.side_effect = RuntimeError("kaboom")
            response = client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"})

        assert response.status_code == 500
        assert "kaboom" in response.json()["detail"]

    def test_missing_credential_is_500(self, client):
        app.dependency_overrides.pop(get_orchestrator)
        _shared_orchestrator.cache_clear()
        try:
            with patch.object(settings, "GROQ_API_KEY", ""):
                response = client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"})
        finally:
            _shared_orchestrator.cache_clear()

        assert response.status_code == 500
        assert "GROQ_API_KEY" in response.json()["detail"]


class TestChatRateLimit:

    def test_chat_has_its_own_tighter_limit(self, client):
        answer = ChatResponse(id="aiq_1", query="Hi", response="Hello", timestamp=CREATED_AT)
        limiter.reset()
        try:
            with patch.object(limiter, "enabled", True), \
                    patch.object(settings, "RATE_LIMIT_CHAT", "2/minute"), \
                    patch("spendsense.assistant.service.chat", new_callable=AsyncMock) as mock_chat:
                mock_chat.return_value = answer
                statuses = [
                    client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"}).status_code
                    for _ in range(3)
                ]
                blocked = client.post(CHAT_URL, json={"user_id": "user_a", "message": "Hi"})
                status_check = client.get(CHAT_URL)
        finally:
            limiter.reset()

        assert statuses == [200, 200, 429]
        assert blocked.json()["detail"].startswith("Rate limit exceeded")
        assert mock_chat.await_count == 2
        assert status_check.status_code == 200


class TestAssistantStatus:

    def test_status_configured(self, client):
        with patch.object(settings, "GROQ_API_KEY", "gsk_test"):
            response = client.get(CHAT_URL)

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "completion_configured": True,
            "message": "Chat API is ready",
        }

    def test_status_not_configured(self, client):
        with patch.object(settings, "GROQ_API_KEY", ""):
            response = client.get(CHAT_URL)

        assert response.json()["completion_configured"] is False
        assert response.json()["message"] == "Completion API key not configured"


# ============================================================================
# QUERY HISTORY
# ============================================================================

class TestAIQueryRoutes:

    def test_list_queries(self, client, db):
        with patch("spendsense.data.ai_queries.service.list_ai_queries", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = [_row(), _row(id="aiq_2")]
            response = client.get("/api/ai-queries", params={"user_id": "user_a", "limit": 2})

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == ["aiq_1", "aiq_2"]
        mock_list.assert_awaited_once_with(db, "user_a", limit=2)

    def test_search_takes_precedence_over_limit(self, client, db):
        with patch("spendsense.data.ai_queries.service.list_ai_queries", new_callable=AsyncMock) as mock_list, \
                patch("spendsense.data.ai_queries.service.search_ai_queries", new_callable=AsyncMock) as mock_search:
            mock_search.return_value = [_row()]
            response = client.get(
                "/api/ai-queries",
                params={"user_id": "user_a", "limit": 5, "search": "total"},
            )

        assert response.status_code == 200
        mock_search.assert_awaited_once_with(db, "user_a", "total")
        mock_list.assert_not_awaited()

    def test_list_requires_user_id(self, client):
        response = client.get("/api/ai-queries")

        assert response.status_code == 422

    def test_get_query(self, client):
        with patch("spendsense.data.ai_queries.service.get_ai_query", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = _row()
            response = client.get("/api/ai-queries/aiq_1")

        assert response.status_code == 200
        assert response.json()["ai_response"] == "$128.50"

    def test_get_missing_query(self, client):
        with patch("spendsense.data.ai_queries.service.get_ai_query", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = None
            response = client.get("/api/ai-queries/missing")

        assert response.status_code == 404

    def test_delete_query(self, client):
        with patch("spendsense.data.ai_queries.service.delete_ai_query", new_callable=AsyncMock) as mock_delete:
            mock_delete.return_value = True
            response = client.delete("/api/ai-queries/aiq_1")

        assert response.status_code == 200
        assert response.json() == {"success": True, "id": "aiq_1"}

    def test_delete_missing_query(self, client):
        with patch("spendsense.data.ai_queries.service.delete_ai_query", new_callable=AsyncMock) as mock_delete:
            mock_delete.return_value = False
            response = client.delete("/api/ai-queries/missing")

        assert response.status_code == 404


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
