import asyncio
import json

import pytest

from nexus_crm.services.supabase.realtime_client import CHANNEL_TOPIC, RealtimeChangeFeed


class FakeWebSocket:
    def __init__(self):
        self.sent: list[dict] = []
        self.closed = False

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        raise StopAsyncIteration


def _frame(event: str, payload: dict) -> str:
    return json.dumps({"topic": CHANNEL_TOPIC, "event": event, "payload": payload, "ref": None})


def test_join_payload_lists_tables():
    feed = RealtimeChangeFeed("wss://proj.supabase.co/realtime/v1/websocket", "anon-key")
    feed.set_access_token("user-token")

    payload = feed.join_payload(["contacts", "alerts"])

    changes = payload["config"]["postgres_changes"]
    assert [c["table"] for c in changes] == ["contacts", "alerts"]
    assert all(c["event"] == "*" and c["schema"] == "public" for c in changes)
    assert payload["access_token"] == "user-token"


def test_handle_message_dispatches_postgres_changes():
    feed = RealtimeChangeFeed("wss://example", "anon-key")
    received = []
    feed._callback = received.append

    event = feed.handle_message(
        _frame("postgres_changes", {"data": {"table": "alerts", "type": "INSERT", "record": {}}})
    )

    assert event.table == "alerts"
    assert event.event_type == "INSERT"
    assert received == [event]


def test_handle_message_ignores_control_frames():
    feed = RealtimeChangeFeed("wss://example", "anon-key")
    received = []
    feed._callback = received.append

    assert feed.handle_message(_frame("phx_reply", {"status": "ok", "response": {}})) is None
    assert feed.handle_message(_frame("phx_reply", {"status": "error", "response": {"reason": "x"}})) is None
    assert feed.handle_message(_frame("phx_close", {})) is None
    assert feed.handle_message("not json") is None
    assert received == []


@pytest.mark.asyncio
async def test_subscribe_and_unsubscribe():
    ws = FakeWebSocket()
    urls = []

    async def connect(url):
        urls.append(url)
        return ws

    feed = RealtimeChangeFeed("wss://proj.supabase.co/realtime/v1/websocket", "anon-key", connect=connect)
    await feed.subscribe(["contacts"], lambda event: None)
    assert feed.connected

    await feed.unsubscribe()

    assert urls == ["wss://proj.supabase.co/realtime/v1/websocket?apikey=anon-key&vsn=1.0.0"]
    assert [m["event"] for m in ws.sent] == ["phx_join", "phx_leave"]
    assert ws.sent[0]["topic"] == CHANNEL_TOPIC
    assert ws.closed is True
    assert not feed.connected


@pytest.mark.asyncio
async def test_server_disconnect_clears_connection():
    ws = FakeWebSocket()

    async def connect(url):
        return ws

    feed = RealtimeChangeFeed("wss://example", "anon-key", connect=connect)
    await feed.subscribe(["contacts"], lambda event: None)
    receive, heartbeat = feed._tasks

    await receive
    await asyncio.gather(heartbeat, return_exceptions=True)

    assert not feed.connected
    assert heartbeat.cancelled()

    await feed.unsubscribe()
    assert [m["event"] for m in ws.sent] == ["phx_join"]
