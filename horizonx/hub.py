"""WebSocket rooms: clients subscribe to channels and receive broadcasts."""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any

from aiohttp import WSMsgType, web

from .models import Metrics

WRITE_WAIT = 10.0
PONG_WAIT = 60.0
PING_PERIOD = PONG_WAIT * 9 / 10
MAX_MESSAGE_SIZE = 512
SEND_BUFFER = 256
METRICS_ROOM = "metrics"

_SEND_ERRORS = (OSError, RuntimeError, asyncio.TimeoutError)


def _decode_client_message(data: str | bytes) -> tuple[str, str]:
    """Return ``(type, channel)`` of a client message; raises ValueError if malformed."""
    parsed = json.loads(data)
    if parsed is None:
        return "", ""
    if not isinstance(parsed, dict):
        raise ValueError(f"cannot decode {type(parsed).__name__} into a client message")
    result = []
    for key in ("type", "channel"):
        value = parsed.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"field {key!r} must be a string")
        result.append(value)
    return result[0], result[1]


def _remote_addr(request: web.BaseRequest) -> str:
    transport = request.transport
    peer = transport.get_extra_info("peername") if transport is not None else None
    if isinstance(peer, (tuple, list)) and len(peer) >= 2:
        host, port = peer[0], peer[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return request.remote or ""


class Client:
    """One WebSocket connection with its outgoing message queue."""

    def __init__(self, hub: Hub, ws: Any, log: Any, remote_addr: str = "") -> None:
        self.hub = hub
        self.ws = ws
        self.log = log
        self.remote_addr = remote_addr
        self.send: asyncio.Queue[str | None] = asyncio.Queue(maxsize=SEND_BUFFER)

    async def read_loop(self) -> None:
        """Handle subscribe requests until the connection ends, then leave every room."""
        subscribed: set[str] = set()
        try:
            while True:
                try:
                    message = await self.ws.receive(timeout=PONG_WAIT)
                except asyncio.TimeoutError:
                    break
                if message.type not in (WSMsgType.TEXT, WSMsgType.BINARY):
                    break
                try:
                    kind, channel = _decode_client_message(message.data)
                except ValueError as exc:
                    self.log.error("unmarshal message", error=exc)
                    continue
                if kind == "subscribe" and channel not in subscribed:
                    subscribed.add(channel)
                    self.hub.subscribe(self, channel)
        finally:
            for room in subscribed:
                self.hub.unsubscribe(self, room)
            await self.ws.close()

    async def write_loop(self) -> None:
        """Send queued messages and periodic pings; a ``None`` entry closes the connection."""
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + PING_PERIOD
        try:
            while True:
                try:
                    message = await asyncio.wait_for(
                        self.send.get(), max(0.0, next_ping - loop.time())
                    )
                except asyncio.TimeoutError:
                    next_ping += PING_PERIOD
                    try:
                        await asyncio.wait_for(self.ws.ping(), WRITE_WAIT)
                    except _SEND_ERRORS:
                        return
                    continue
                if message is None:
                    return
                try:
                    await asyncio.wait_for(self.ws.send_str(message), WRITE_WAIT)
                except _SEND_ERRORS:
                    return
        finally:
            await self.ws.close()


class Hub:
    """Tracks which clients are in which room and fans messages out to them.

    All methods are meant to be called from the event loop thread.
    """

    def __init__(self, log: Any) -> None:
        self.log = log
        self.connections: set[Client] = set()
        self._rooms: dict[str, set[Client]] = {}

    def subscribe(self, client: Client, room: str) -> None:
        self._rooms.setdefault(room, set()).add(client)
        self.log.info("client subscribed", room=room, remote_addr=client.remote_addr)

    def unsubscribe(self, client: Client, room: str) -> None:
        clients = self._rooms.get(room)
        if clients is None or client not in clients:
            return
        clients.discard(client)
        if not clients:
            del self._rooms[room]
            self.log.info("room closed", room=room)
        self.log.info("client unsubscribed", room=room, remote_addr=client.remote_addr)

    def room_names(self) -> list[str]:
        """Names of rooms that have at least one subscriber, sorted."""
        return sorted(self._rooms)

    def broadcast(self, room: str, message: str) -> None:
        """Queue ``message`` for every subscriber of ``room``, skipping full queues."""
        for client in list(self._rooms.get(room, ())):
            try:
                client.send.put_nowait(message)
            except asyncio.QueueFull:
                self.log.warn("client send channel full, skipping", remote_addr=client.remote_addr)

    def broadcast_metrics(self, metrics: Metrics) -> None:
        """Send a metrics snapshot to the metrics room."""
        try:
            message = json.dumps(
                {"channel": METRICS_ROOM, "payload": metrics.to_dict()},
                separators=(",", ":"),
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            self.log.error("marshal metrics", error=exc)
            return
        self.broadcast(METRICS_ROOM, message)


async def serve_ws(hub: Hub, request: web.Request, log: Any) -> web.StreamResponse:
    """Upgrade ``request`` to a WebSocket and serve it until it closes."""
    ws = web.WebSocketResponse(max_msg_size=MAX_MESSAGE_SIZE)
    try:
        await ws.prepare(request)
    except web.HTTPException as exc:
        log.error("upgrade", error=exc.reason)
        return web.Response(status=400, text="Bad Request")

    remote = _remote_addr(request)
    client = Client(hub, ws, log, remote)
    hub.connections.add(client)
    writer = asyncio.create_task(client.write_loop())
    log.info("client connected", remote_addr=remote)
    try:
        await client.read_loop()
    finally:
        hub.connections.discard(client)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
    return ws