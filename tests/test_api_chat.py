"""Tests for chat and contact search API routes."""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from scribe_chat.api.deps import (
    get_chat_responder,
    get_chat_store,
    get_contact_search,
    get_current_user,
)
from scribe_chat.core.exceptions import NotFoundError, TransportError
from scribe_chat.main import app
from scribe_chat.models.chat import ChatMessage, ChatThread, MessageRole
from scribe_chat.models.context import Citation
from scribe_chat.services.chat_responder import ChatTurnResult
from scribe_chat.services.contact_search import ContactSearchResult

THREAD = ChatThread(id=10, user_id="test-user-123", title=None)


@pytest.fixture
def mock_store() -> MagicMock:
    store = MagicMock()
    store.create_thread = AsyncMock(return_value=THREAD)
    store.list_threads = AsyncMock(return_value=[THREAD])
    store.get_thread_for_user = AsyncMock(return_value=THREAD)
    store.list_messages = AsyncMock(
        return_value=[ChatMessage(id=1, thread_id=10, role=MessageRole.USER, content="hi")]
    )
    return store


@pytest.fixture
def mock_responder() -> MagicMock:
    responder = MagicMock()
    responder.respond = AsyncMock(
        return_value=ChatTurnResult(
            content="See [January 15, 2025](meeting:1).",
            metadata={"meeting_refs": [{"meeting_id": 1, "title": "Sync", "date": "2025-01-15"}]},
            citations=[Citation("January 15, 2025", 1, "Sync", "2025-01-15", True)],
        )
    )
    return responder


@pytest.fixture
def mock_search() -> MagicMock:
    search = MagicMock()
    search.search = AsyncMock(
        return_value=[
            ContactSearchResult(
                id="hubspot:5", source="hubspot", name="Jo Park", email="jo@acme.com", crm_id="5"
            )
        ]
    )
    return search


@pytest.fixture
def test_client(
    mock_current_user: MagicMock,
    mock_store: MagicMock,
    mock_responder: MagicMock,
    mock_search: MagicMock,
) -> Generator[TestClient, None, None]:
    """Create test client with mocked authentication and services."""

    async def override_get_current_user() -> MagicMock:
        return mock_current_user

    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_chat_store] = lambda: mock_store
    app.dependency_overrides[get_chat_responder] = lambda: mock_responder
    app.dependency_overrides[get_contact_search] = lambda: mock_search
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


class TestThreadRoutes:
    """Tests for thread endpoints."""

    def test_create_thread(self, test_client, mock_store):
        response = test_client.post("/api/v1/chat/threads", json={})

        assert response.status_code == 201
        assert response.json()["id"] == 10
        mock_store.create_thread.assert_awaited_once_with(user_id="test-user-123", title=None)

    def test_list_threads(self, test_client, mock_store):
        response = test_client.get("/api/v1/chat/threads?limit=5")

        assert response.status_code == 200
        assert [t["id"] for t in response.json()["threads"]] == [10]
        mock_store.list_threads.assert_awaited_once_with(
            user_id="test-user-123", limit=5, offset=0
        )

    def test_get_messages(self, test_client):
        response = test_client.get("/api/v1/chat/threads/10/messages")

        assert response.status_code == 200
        assert response.json()[0]["role"] == "user"

    def test_get_messages_for_unknown_thread(self, test_client, mock_store):
        mock_store.get_thread_for_user.side_effect = NotFoundError("Chat thread", 99)

        response = test_client.get("/api/v1/chat/threads/99/messages")

        assert response.status_code == 404
        assert response.json()["detail"] == "The requested resource was not found."


class TestSendMessage:
    """Tests for POST /chat/threads/{id}/messages."""

    def test_returns_reply_with_citations(self, test_client, mock_responder):
        metadata = {"mentions": [{"contact_id": 7}]}

        response = test_client.post(
            "/api/v1/chat/threads/10/messages",
            json={"content": "What did Jo say?", "metadata": metadata},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["citations"][0]["verified"] is True
        assert data["metadata"]["meeting_refs"][0]["meeting_id"] == 1
        mock_responder.respond.assert_awaited_once_with(
            thread=THREAD, user_id="test-user-123", content="What did Jo say?", metadata=metadata
        )

    def test_requires_content(self, test_client):
        response = test_client.post("/api/v1/chat/threads/10/messages", json={"content": ""})

        assert response.status_code == 422

    def test_unknown_thread(self, test_client, mock_store, mock_responder):
        mock_store.get_thread_for_user.side_effect = NotFoundError("Chat thread", 99)

        response = test_client.post("/api/v1/chat/threads/99/messages", json={"content": "hi"})

        assert response.status_code == 404
        mock_responder.respond.assert_not_awaited()

    def test_model_failure_is_user_visible(self, test_client, mock_responder):
        mock_responder.respond.side_effect = TransportError("rate limited", status=429)

        response = test_client.post("/api/v1/chat/threads/10/messages", json={"content": "hi"})

        assert response.status_code == 503
        assert "too many requests" in response.json()["detail"]


class TestContactSearchRoute:
    """Tests for GET /contacts/search."""

    def test_search(self, test_client, mock_search):
        response = test_client.get("/api/v1/contacts/search", params={"q": "jo"})

        assert response.status_code == 200
        assert response.json()["contacts"][0]["id"] == "hubspot:5"
        mock_search.search.assert_awaited_once_with(user_id="test-user-123", query="jo")


def test_unauthenticated_request_rejected():
    app.dependency_overrides.clear()
    client = TestClient(app)

    response = client.get("/api/v1/chat/threads")

    assert response.status_code == 401


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "healthy"}
