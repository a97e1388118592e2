from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from convo_service.client.cache import ConversationCache, is_provisional
from convo_service.client.session import ClientError, ConversationClient

CID = "c-1"


def _summary(cid=CID, participants=("u-alice", "u-bob"), **overrides):
    summary = {
        "_id": cid,
        "participants": list(participants),
        "name": "alice, bob",
        "canReply": True,
        "lastMessage": "",
        "lastMessageTime": "2024-01-01T00:00:00+00:00",
        "unread": False,
        "messageCount": 0,
    }
    summary.update(overrides)
    return summary


def _server_message(body, sender="u-alice", mid="m-1", at=None):
    return {
        "_id": mid,
        "from": sender,
        "message": body,
        "time": (at or datetime.now(timezone.utc)).isoformat(),
        "senderUsername": sender.removeprefix("u-"),
    }


def _ok(data, status_code=200):
    return httpx.Response(status_code, json={"status": True, "message": "", "data": data})


def _client(handler) -> ConversationClient:
    http = httpx.AsyncClient(base_url="http://test", transport=httpx.MockTransport(handler))
    return ConversationClient("http://test", "token", "u-alice", username="alice", http=http)


def _open(client: ConversationClient, *messages):
    client.cache.load_conversation({**_summary(), "messages": list(messages)})
    client.cache.open_conversation_id = CID


# --- cache ------------------------------------------------------------------


def test_provisional_message_is_replaced_by_push():
    cache = ConversationCache(user_id="u-alice", username="alice")
    cache.load_conversation({**_summary(), "messages": []})

    provisional = cache.add_provisional(CID, "hi")
    assert is_provisional(provisional)
    assert cache.get(CID).summary["lastMessage"] == "hi"

    server = _server_message("hi")
    cache.apply_event("message:new", {"conversationId": CID, "message": server})
    cache.confirm(CID, provisional["_id"], server)

    assert cache.get(CID).messages == [server]
    assert cache.get(CID).summary["messageCount"] == 1


def test_push_outside_match_window_is_a_new_message():
    cache = ConversationCache(user_id="u-alice")
    cache.load_conversation({**_summary(), "messages": []})
    old = datetime.now(timezone.utc) - timedelta(seconds=30)
    cache.add_provisional(CID, "hi", now=old)

    cache.apply_event("message:new", {"conversationId": CID, "message": _server_message("hi")})

    assert len(cache.get(CID).messages) == 2


def test_message_from_other_user_marks_unread_unless_open():
    cache = ConversationCache(user_id="u-alice")
    cache.load_list([_summary(), _summary("c-2")])
    cache.open_conversation_id = "c-2"

    for cid, mid in ((CID, "m-1"), ("c-2", "m-2")):
        cache.apply_event(
            "message:new",
            {"conversationId": cid, "message": _server_message("yo", sender="u-bob", mid=mid)},
        )

    assert cache.get(CID).summary["unread"] is True
    assert cache.get("c-2").summary["unread"] is False
    assert cache.get(CID).summary["messageCount"] == 1
    assert cache.summaries()[0]["lastMessage"] == "yo"


def test_message_deleted_event():
    cache = ConversationCache(user_id="u-alice")
    first, second = _server_message("a", mid="m-1"), _server_message("b", mid="m-2")
    cache.load_conversation({**_summary(messageCount=2), "messages": [first, second]})

    cache.apply_event("message:deleted", {"conversationId": CID, "messageId": "m-1"})

    assert cache.get(CID).messages == [second]
    assert cache.get(CID).summary["messageCount"] == 1


def test_deleted_open_conversation_requests_redirect():
    cache = ConversationCache(user_id="u-alice")
    cache.load_list([_summary(), _summary("c-2")])
    cache.open_conversation_id = CID

    cache.apply_event("conversation:update", {"conversationId": CID, "update": {"deleted": True}})

    assert cache.get(CID) is None
    assert cache.redirect_requested is True


def test_removed_from_conversation_drops_it():
    cache = ConversationCache(user_id="u-alice")
    cache.load_list([_summary()])

    cache.apply_event(
        "conversation:update",
        {"conversationId": CID, "update": {"participants": ["u-bob"]}},
    )

    assert cache.get(CID) is None
    assert cache.redirect_requested is False


def test_conversation_update_merges_fields():
    cache = ConversationCache(user_id="u-alice")
    cache.load_list([_summary()])

    cache.apply_event("conversation:update", {"conversationId": CID, "update": {"name": "Plans"}})

    assert cache.get(CID).summary["name"] == "Plans"


def test_conversation_new_requests_refresh():
    cache = ConversationCache(user_id="u-alice")

    cache.apply_event("conversation:new", {"conversation": _summary("c-9", unread=True)})

    assert cache.get("c-9").summary["unread"] is True
    assert cache.needs_refresh is True


def test_notifications_are_capped_and_updated():
    cache = ConversationCache(user_id="u-alice")
    for i in range(12):
        cache.apply_event(
            "notification:new", {"notification": {"_id": f"n-{i}", "unread": True}},
        )

    assert len(cache.notifications) == 10
    assert cache.notifications[0]["_id"] == "n-11"

    cache.apply_event("notification:update", {"notificationId": "n-11", "update": {"unread": False}})
    assert [n["unread"] for n in cache.notifications[:2]] == [False, True]

    cache.apply_event("notification:update", {"notificationId": "all", "update": {"unread": False}})
    assert not any(n["unread"] for n in cache.notifications)


# --- session ----------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_message_confirms_provisional():
    server = _server_message("hello", mid="m-10")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/v1/conversations/{CID}/messages"
        assert request.headers["Authorization"] == "Bearer token"
        assert json.loads(request.content) == {"message": "hello"}
        return _ok(server, 201)

    client = _client(handler)
    _open(client)

    result = await client.send_message(CID, "hello")

    assert result == server
    assert client.cache.get(CID).messages == [server]


@pytest.mark.asyncio
async def test_push_before_response_does_not_duplicate():
    server = _server_message("hello", mid="m-10")
    client: ConversationClient

    def handler(request: httpx.Request) -> httpx.Response:
        client.handle_frame(json.dumps({
            "type": "message:new",
            "data": {"conversationId": CID, "message": server},
        }))
        return _ok(server, 201)

    client = _client(handler)
    _open(client)

    await client.send_message(CID, "hello")

    assert client.cache.get(CID).messages == [server]


@pytest.mark.asyncio
async def test_failed_send_restores_snapshot():
    existing = _server_message("before", mid="m-1")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403, json={"status": False, "message": "Replies are disabled for this conversation"},
        )

    client = _client(handler)
    _open(client, existing)
    before = client.cache.snapshot(CID)

    with pytest.raises(ClientError) as exc_info:
        await client.send_message(CID, "hello")

    assert exc_info.value.message == "Replies are disabled for this conversation"
    assert exc_info.value.status_code == 403
    assert client.cache.get(CID) == before


@pytest.mark.asyncio
async def test_failed_mark_read_is_retried():
    calls: list[str] = []
    responses = iter([503, 200, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        status = next(responses)
        if status != 200:
            return httpx.Response(status, json={"status": False, "message": "Unavailable"})
        return _ok(None)

    client = _client(handler)
    client.cache.load_list([_summary(unread=True), _summary("c-2", unread=True)])

    await client.mark_read(CID)
    assert client.cache.get(CID).summary["unread"] is True

    await client.mark_read("c-2")

    assert calls == [
        f"/api/v1/conversations/{CID}/read",
        f"/api/v1/conversations/{CID}/read",
        "/api/v1/conversations/c-2/read",
    ]
    assert client.cache.get(CID).summary["unread"] is False
    assert client.cache.get("c-2").summary["unread"] is False


@pytest.mark.asyncio
async def test_handle_frame_ignores_malformed_input():
    client = _client(lambda request: _ok(None))

    assert client.handle_frame("not json") is None
    assert client.handle_frame(json.dumps({"type": "pong"})) == "pong"
    assert client.handle_frame(json.dumps({"type": "message:new", "data": {}})) == "message:new"


@pytest.mark.asyncio
async def test_create_conversation_sends_initial_message():
    created = {**_summary("c-5"), "messages": [_server_message("hi", mid="m-5")]}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/conversations"
        assert json.loads(request.content) == {"participants": ["u-bob"], "message": "hi"}
        return _ok(created, 201)

    client = _client(handler)

    await client.create_conversation(["u-bob"], "hi")

    assert [m["message"] for m in client.cache.get("c-5").messages] == ["hi"]
