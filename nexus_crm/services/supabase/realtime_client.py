"""
Supabase Realtime change feed.

Speaks the Phoenix channel protocol over a websocket: one channel joined with
a `postgres_changes` subscription per watched table, plus a heartbeat. Each
insert/update/delete on a watched table is delivered to the callback as a
ChangeEvent. A dropped connection is logged and not retried here.
"""

import asyncio
import itertools
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from nexus_crm.config import settings
from nexus_crm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CHANNEL_TOPIC = "realtime:nexus-crm"
HEARTBEAT_INTERVAL_SECONDS = 30.0
PROTOCOL_VERSION = "1.0.0"


@dataclass(slots=True)
class ChangeEvent:
    """One row change on a watched table."""

    table: str
    event_type: str  # INSERT / UPDATE / DELETE


ChangeCallback = Callable[[ChangeEvent], None]


class ChangeFeed(Protocol):
    async def subscribe(self, tables: list[str], callback: ChangeCallback) -> None: ...

    async def unsubscribe(self) -> None: ...


class RealtimeChangeFeed:
    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        *,
        connect: Callable[..., Any] = ws_connect,
        heartbeat_seconds: float = HEARTBEAT_INTERVAL_SECONDS,
    ):
        self._url = url
        self._api_key = api_key or settings.SUPABASE_ANON_KEY or ""
        self._connect = connect
        self._heartbeat_seconds = heartbeat_seconds
        self._access_token: str | None = None
        self._refs = itertools.count(1)
        self._ws = None
        self._tasks: list[asyncio.Task] = []
        self._callback: ChangeCallback | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def set_access_token(self, token: str | None) -> None:
        self._access_token = token

    def _endpoint(self) -> str:
        base = self._url or settings.realtime_url()
        return f"{base}?apikey={self._api_key}&vsn={PROTOCOL_VERSION}"

    def _message(self, event: str, payload: dict[str, Any], topic: str = CHANNEL_TOPIC) -> str:
        ref = str(next(self._refs))
        return json.dumps({"topic": topic, "event": event, "payload": payload, "ref": ref, "join_ref": ref})

    def join_payload(self, tables: list[str]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "config": {
                "broadcast": {"self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": "*", "schema": "public", "table": table} for table in tables
                ],
            }
        }
        if self._access_token:
            payload["access_token"] = self._access_token
        return payload

    async def subscribe(self, tables: list[str], callback: ChangeCallback) -> None:
        if self._ws is not None:
            await self.unsubscribe()

        self._callback = callback
        self._ws = await self._connect(self._endpoint())
        await self._ws.send(self._message("phx_join", self.join_payload(tables)))
        logger.info("Realtime channel joined", topic=CHANNEL_TOPIC, tables=tables)

        self._tasks = [
            asyncio.create_task(self._receive_loop()),
            asyncio.create_task(self._heartbeat_loop()),
        ]

    async def unsubscribe(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        ws, self._ws = self._ws, None
        self._callback = None
        if ws is None:
            return
        try:
            await ws.send(self._message("phx_leave", {}))
            await ws.close()
        except ConnectionClosed:
            pass
        logger.info("Realtime channel left", topic=CHANNEL_TOPIC)

    def handle_message(self, raw: str | bytes) -> ChangeEvent | None:
        """Decode one frame; returns the change event it carried, if any."""
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed realtime frame")
            return None

        event = message.get("event")
        payload = message.get("payload") or {}

        if event == "phx_reply":
            if payload.get("status") != "ok":
                logger.warning("Realtime request rejected", response=payload.get("response"))
            return None
        if event in ("phx_error", "phx_close"):
            logger.warning("Realtime channel closed by server", event=event)
            return None
        if event != "postgres_changes":
            return None

        data = payload.get("data") or {}
        change = ChangeEvent(table=data.get("table", ""), event_type=data.get("type", ""))
        logger.debug("Realtime change received", table=change.table, event_type=change.event_type)
        if self._callback is not None:
            self._callback(change)
        return change

    async def _receive_loop(self) -> None:
        try:
            async for raw in self._ws:
                self.handle_message(raw)
        except ConnectionClosed as e:
            logger.warning("Realtime connection lost", error=str(e))
        else:
            logger.warning("Realtime connection closed")
        self._connection_lost()

    def _connection_lost(self) -> None:
        """Forget the dead socket and stop the heartbeat that uses it."""
        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current:
                task.cancel()
        self._tasks = []
        self._ws = None

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_seconds)
            try:
                await self._ws.send(self._message("heartbeat", {}, topic="phoenix"))
            except ConnectionClosed:
                logger.warning("Realtime heartbeat failed, connection closed")
                return
