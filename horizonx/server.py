"""HTTP server exposing the metrics snapshot and the live WebSocket feed."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import signal
import socket
import threading
from typing import Any

from aiohttp import WSCloseCode, web

from .config import Config, load
from .hub import Hub, serve_ws
from .logger import new_logger
from .models import Metrics
from .sampler import Sampler
from .scheduler import Scheduler
from .store import SnapshotStore

SHUTDOWN_TIMEOUT = 5.0


def _parse_port(text: str) -> int:
    if not text:
        return 0
    if text.isascii() and text.isdigit():
        port = int(text)
        if port > 65535:
            raise ValueError(f"invalid port {text!r}")
        return port
    try:
        return socket.getservbyname(text, "tcp")
    except OSError as exc:
        raise ValueError(f"unknown port {text!r}") from exc


def parse_address(address: str) -> tuple[str | None, int]:
    """Split ``host:port`` into a host (None for all interfaces) and a port number.

    Raises ValueError for malformed addresses.
    """
    if not address:
        return None, 80
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if host.startswith("["):
        if not host.endswith("]"):
            raise ValueError(f"missing ']' in address {address!r}")
        host = host[1:-1]
    elif ":" in host or "[" in host or "]" in host:
        raise ValueError(f"too many colons in address {address!r}")
    return host or None, _parse_port(port_text)


def create_app(store: SnapshotStore, hub: Hub, log: Any) -> web.Application:
    """Build the application serving ``/metrics`` and ``/ws``."""

    async def handle_metrics(request: web.Request) -> web.Response:
        try:
            body = json.dumps(store.get().to_dict(), separators=(",", ":"), allow_nan=False) + "\n"
        except ValueError:
            body = ""
        return web.Response(body=body.encode(), content_type="application/json")

    async def handle_ws(request: web.Request) -> web.StreamResponse:
        return await serve_ws(hub, request, log)

    async def close_connections(app: web.Application) -> None:
        for client in list(hub.connections):
            await client.ws.close(code=WSCloseCode.GOING_AWAY)

    app = web.Application()
    app.router.add_route("*", "/metrics", handle_metrics)
    app.router.add_route("*", "/ws", handle_ws)
    app.on_shutdown.append(close_connections)
    return app


async def run(config: Config, log: Any) -> None:
    """Sample metrics and serve them until SIGINT or SIGTERM arrives."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)

    store = SnapshotStore()
    hub = Hub(log)
    sampler = Sampler(log)

    def sink(metrics: Metrics) -> None:
        store.set(metrics)
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(hub.broadcast_metrics, metrics)

    scheduler = Scheduler(config.interval, log, sampler.collect, sink)
    scheduler_stop = threading.Event()
    threading.Thread(
        target=scheduler.start, args=(scheduler_stop,), name="scheduler", daemon=True
    ).start()

    runner = web.AppRunner(create_app(store, hub, log), handle_signals=False)
    await runner.setup()
    try:
        log.info("starting http server", address=config.address)
        try:
            host, port = parse_address(config.address)
            await web.TCPSite(runner, host, port).start()
        except (OSError, ValueError) as exc:
            log.error("http server error", error=exc)
        else:
            await stop.wait()
    finally:
        scheduler_stop.set()
        try:
            await asyncio.wait_for(runner.cleanup(), SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            log.error("http server shutdown error", error="shutdown timed out")
        for sig in installed:
            loop.remove_signal_handler(sig)
    log.info("server stopped")


def main(argv: list[str] | None = None) -> int:
    """Command entry point."""
    parser = argparse.ArgumentParser(
        prog="horizonx-server",
        description="Serve live system metrics over HTTP and WebSocket.",
    )
    parser.parse_args(argv)
    config = load()
    log = new_logger(config)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(config, log))
    return 0