from __future__ import annotations

from uuid import uuid4

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from api.features.conversation.controller import ConversationController
from api.features.conversation.exceptions import UpstreamError, UpstreamTimeout
from api.main import app
from api.shared.db import get_db_session

CHATS = "/api/v1/chats"
OWNER = {"X-User-Id": "1"}
STRANGER = {"X-User-Id": "2"}


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_db_session] = lambda: None
    app.container.controllers.conversation_controller.override(
        providers.Object(ConversationController(manager))
    )
    # No context manager: the lifespan would connect to the real database
    yield TestClient(app)
    app.container.controllers.conversation_controller.reset_override()
    app.dependency_overrides.clear()


def create_chat(client, text="Hello", headers=OWNER):
    response = client.post(f"{CHATS}/", json={"initial_message": text}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_chat(client, completion):
    completion.replies.append("Hi there")

    data = create_chat(client)

    assert data["chat"]["title"] == "New Chat"
    assert data["chat"]["owner_id"] == 1
    assert [(m["role"], m["content"]) for m in data["messages"]] == [
        ("user", "Hello"),
        ("assistant", "Hi there"),
    ]
    assert data["awaiting_reply"] is False


def test_missing_identity_is_unauthorized(client):
    response = client.post(f"{CHATS}/", json={"initial_message": "Hello"})

    assert response.status_code == 401


def test_non_numeric_identity_is_unauthorized(client):
    response = client.get(f"{CHATS}/", headers={"X-User-Id": "alice"})

    assert response.status_code == 401


def test_empty_initial_message_is_rejected(client, backend):
    response = client.post(f"{CHATS}/", json={"initial_message": ""}, headers=OWNER)

    assert response.status_code == 422
    assert backend.sessions == {}


def test_blank_message_is_rejected(client):
    chat = create_chat(client)

    response = client.post(
        f"{CHATS}/{chat['chat']['id']}/messages", json={"message": "   "}, headers=OWNER
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_list_and_get_chat(client):
    chat = create_chat(client)
    chat_id = chat["chat"]["id"]

    listed = client.get(f"{CHATS}/", headers=OWNER).json()["data"]
    fetched = client.get(f"{CHATS}/{chat_id}", headers=OWNER).json()["data"]

    assert [item["id"] for item in listed["items"]] == [chat_id]
    assert listed["total"] == 1
    assert fetched["messages"] == chat["messages"]
    assert client.get(f"{CHATS}/", headers=STRANGER).json()["data"]["items"] == []


def test_stranger_is_forbidden(client, backend):
    chat_id = create_chat(client)["chat"]["id"]

    read = client.get(f"{CHATS}/{chat_id}", headers=STRANGER)
    write = client.post(
        f"{CHATS}/{chat_id}/messages", json={"message": "hi"}, headers=STRANGER
    )

    assert read.status_code == 403
    assert read.json()["error_code"] == "SESSION_ACCESS_DENIED"
    assert write.status_code == 403
    assert len(backend.messages[chat_id]) == 2


def test_unknown_chat_is_not_found(client):
    response = client.get(f"{CHATS}/{uuid4()}", headers=OWNER)

    assert response.status_code == 404
    assert response.json()["error_code"] == "SESSION_NOT_FOUND"


def test_failed_reply_then_retry(client, completion):
    chat_id = create_chat(client)["chat"]["id"]
    completion.replies.extend([UpstreamError("bad gateway"), "Recovered"])

    failed = client.post(
        f"{CHATS}/{chat_id}/messages", json={"message": "More?"}, headers=OWNER
    )

    assert failed.status_code == 502
    body = failed.json()
    assert body["error_code"] == "UPSTREAM_ERROR"
    assert body["details"]["user_message_saved"] is True
    assert body["details"]["session_id"] == chat_id

    pending = client.get(f"{CHATS}/{chat_id}", headers=OWNER).json()["data"]
    assert pending["awaiting_reply"] is True

    retried = client.post(f"{CHATS}/{chat_id}/retry", headers=OWNER)

    assert retried.status_code == 200
    data = retried.json()["data"]
    assert [m["content"] for m in data["messages"]] == ["Hello", "ok", "More?", "Recovered"]
    assert data["awaiting_reply"] is False


def test_retry_without_pending_message_conflicts(client):
    chat_id = create_chat(client)["chat"]["id"]

    response = client.post(f"{CHATS}/{chat_id}/retry", headers=OWNER)

    assert response.status_code == 409
    assert response.json()["error_code"] == "NOTHING_TO_RETRY"


def test_timeout_maps_to_gateway_timeout(client, completion):
    completion.replies.append(UpstreamTimeout(30.0))

    response = client.post(f"{CHATS}/", json={"initial_message": "Hello"}, headers=OWNER)

    assert response.status_code == 504
    details = response.json()["details"]
    assert details["user_message_saved"] is True
    assert details["timeout_seconds"] == 30.0


def test_rename_chat(client):
    chat_id = create_chat(client)["chat"]["id"]

    response = client.patch(f"{CHATS}/{chat_id}", json={"title": "Trip"}, headers=OWNER)

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Trip"


def test_health(client):
    response = client.get(f"{CHATS}/health")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"
