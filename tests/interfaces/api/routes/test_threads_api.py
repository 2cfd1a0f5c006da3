"""Integration tests for the thread and message endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from marketplace_messaging.interfaces.api.dependencies import get_realtime_fanout


@pytest.fixture()
def listing_id(make_listing):
    return make_listing("bike-42", owner_id="seller", title="Road bike")


def _open_thread(client, auth_headers, listing_id, user_id="buyer", **body):
    response = client.post(
        "/threads", json={"listing_id": listing_id, **body}, headers=auth_headers(user_id)
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_requests_without_token_are_unauthenticated(client: TestClient) -> None:
    response = client.get("/threads")

    assert response.status_code == 401
    assert response.json() == {
        "ok": False,
        "code": "unauthenticated",
        "message": "Authentication required",
    }


def test_invalid_token_is_unauthenticated(client: TestClient) -> None:
    response = client.get("/threads", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_conversation_flow(client: TestClient, auth_headers, listing_id) -> None:
    opened = _open_thread(client, auth_headers, listing_id)
    assert opened["is_new"] is True
    thread_id = opened["thread_id"]

    reopened = _open_thread(client, auth_headers, listing_id, user_id="seller", other_party_id="buyer")
    assert reopened == {**opened, "is_new": False}

    buyer = auth_headers("buyer", name="Bob")
    seller = auth_headers("seller")
    sent = client.post(f"/threads/{thread_id}/messages", json={"content": "Hi"}, headers=buyer)
    assert sent.status_code == 201
    assert sent.json()["message"]["content"] == "Hi"
    assert sent.json()["message_id"] == sent.json()["message"]["id"]
    client.post(f"/threads/{thread_id}/messages", json={"content": "Hello"}, headers=seller)

    assert client.get("/threads/unread-count", headers=seller).json() == {"count": 1}

    inbox = client.get("/threads", headers=seller).json()
    assert len(inbox) == 1
    assert inbox[0]["other_party_id"] == "buyer"
    assert inbox[0]["listing_id"] == listing_id
    assert inbox[0]["has_unread"] is True
    assert inbox[0]["last_message_preview"] == "Hello"

    messages = client.get(f"/threads/{thread_id}/messages", headers=seller).json()
    assert [message["content"] for message in messages] == ["Hi", "Hello"]
    assert client.get("/threads/unread-count", headers=seller).json() == {"count": 0}

    read = client.post(f"/threads/{thread_id}/read", headers=buyer)
    assert read.json() == {"success": True, "updated": 1}
    assert client.post(f"/threads/{thread_id}/read", headers=buyer).json() == {"success": True, "updated": 0}

    notifications = client.get("/notifications", headers=seller).json()
    assert notifications["items"][0]["title"] == "New message from Bob"


def test_read_endpoint_publishes_through_the_injected_fanout(
    client: TestClient, auth_headers, listing_id, fanout
) -> None:
    client.app.dependency_overrides[get_realtime_fanout] = lambda: fanout
    thread_id = _open_thread(client, auth_headers, listing_id)["thread_id"]
    client.post(f"/threads/{thread_id}/messages", json={"content": "Hi"}, headers=auth_headers("buyer"))
    fanout.sent.clear()

    first = client.post(f"/threads/{thread_id}/read", headers=auth_headers("seller"))
    repeat = client.post(f"/threads/{thread_id}/read", headers=auth_headers("seller"))

    assert first.json() == {"success": True, "updated": 1}
    assert repeat.json() == {"success": True, "updated": 0}
    read_frames = fanout.frames(f"thread:{thread_id}", "thread_updated")
    assert [frame["data"]["change_type"] for frame in read_frames] == ["read"]
    assert len(fanout.sent) == 1

def test_retried_send_returns_the_same_message(client: TestClient, auth_headers, listing_id) -> None:
    thread_id = _open_thread(client, auth_headers, listing_id)["thread_id"]
    body = {"content": "Is it available?", "client_token": "retry-1"}

    first = client.post(f"/threads/{thread_id}/messages", json=body, headers=auth_headers("buyer"))
    second = client.post(f"/threads/{thread_id}/messages", json=body, headers=auth_headers("buyer"))

    assert first.json()["message_id"] == second.json()["message_id"]
    assert client.get("/notifications/counts", headers=auth_headers("seller")).json() == {
        "total": 1,
        "unread": 1,
    }


def test_error_bodies(client: TestClient, auth_headers, listing_id) -> None:
    thread_id = _open_thread(client, auth_headers, listing_id)["thread_id"]

    empty = client.post(f"/threads/{thread_id}/messages", json={"content": "   "}, headers=auth_headers("buyer"))
    assert empty.status_code == 422
    assert empty.json() == {
        "ok": False,
        "code": "validation_error",
        "message": "Message cannot be empty",
        "field": "content",
    }

    stranger = client.get(f"/threads/{thread_id}/messages", headers=auth_headers("stranger"))
    assert stranger.status_code == 403
    assert stranger.json()["code"] == "forbidden"

    missing = client.get(f"/threads/{thread_id + 10}/messages", headers=auth_headers("buyer"))
    assert missing.status_code == 404

    no_listing = client.post("/threads", json={"listing_id": "nope"}, headers=auth_headers("buyer"))
    assert no_listing.status_code == 404
    assert no_listing.json()["code"] == "not_found"

    self_contact = client.post("/threads", json={"listing_id": listing_id}, headers=auth_headers("seller"))
    assert self_contact.status_code == 422
    assert self_contact.json()["field"] == "other_party_id"

    malformed = client.post(f"/threads/{thread_id}/messages", json={}, headers=auth_headers("buyer"))
    assert malformed.status_code == 422
    assert malformed.json()["field"] == "content"


def test_thread_websocket_is_limited_to_participants(
    client: TestClient, auth_headers, listing_id
) -> None:
    thread_id = _open_thread(client, auth_headers, listing_id)["thread_id"]
    stranger_token = auth_headers("stranger")["Authorization"].split()[1]
    buyer_token = auth_headers("buyer")["Authorization"].split()[1]

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/threads/{thread_id}/ws?token={stranger_token}"):
            pass

    with client.websocket_connect(f"/threads/{thread_id}/ws?token={buyer_token}") as websocket:
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        client.post(f"/threads/{thread_id}/messages", json={"content": "Hey"}, headers=auth_headers("seller"))
        frame = websocket.receive_json()

    assert frame["type"] == "new_message"
    assert frame["channel"] == f"thread:{thread_id}"
    assert frame["data"]["content"] == "Hey"
