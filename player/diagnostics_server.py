"""LiveEdge WebSocket diagnostics publisher."""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Optional

import websockets

from catchup.diagnostics import DiagnosticsHub, DiagnosticsSnapshot
from catchup.protocol import (
    make_envelope, parse_envelope,
    MSG_HELLO_ACK, MSG_DIAGNOSTICS, MSG_REQUEST_STATUS,
)

logger = logging.getLogger("liveedge.player.diagnostics_server")


class DiagnosticsServer:
    """
    Broadcasts every diagnostics snapshot to connected monitors.
    Purely observational: monitors can only ask for the latest snapshot.
    """

    def __init__(self, hub: DiagnosticsHub, port: int, host: str = "127.0.0.1"):
        self.hub = hub
        self.host = host
        self.port = port
        self._monitors: set[Any] = set()
        self._ws_server = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def monitor_count(self) -> int:
        return len(self._monitors)

    async def start(self) -> None:
        self._ws_server = await websockets.serve(self._handle_monitor, self.host, self.port)
        self.hub.subscribe(self)
        logger.info("Diagnostics server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        self.hub.unsubscribe(self)
        for task in list(self._tasks):
            task.cancel()
        if self._ws_server:
            self._ws_server.close()
            await self._ws_server.wait_closed()
            self._ws_server = None

    def __call__(self, snap: DiagnosticsSnapshot) -> None:
        if not self._monitors:
            return
        task = asyncio.get_running_loop().create_task(
            self._broadcast(make_envelope(MSG_DIAGNOSTICS, snap.as_dict()))
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _broadcast(self, message: str) -> None:
        for ws in list(self._monitors):
            await self._send(ws, message)

    async def _send(self, ws: Any, message: str) -> None:
        try:
            await ws.send(message)
        except websockets.exceptions.ConnectionClosed:
            self._monitors.discard(ws)
        except Exception as e:
            logger.warning("Failed to send to monitor: %s", e)

    async def _handle_monitor(self, ws: Any) -> None:
        self._monitors.add(ws)
        logger.info("Monitor connected (%d total)", len(self._monitors))
        await self._send(ws, make_envelope(MSG_HELLO_ACK, {"sinks": self.hub.sink_count}))
        try:
            async for raw in ws:
                try:
                    msg_type, _, _ = parse_envelope(raw)
                except (ValueError, KeyError) as e:
                    logger.debug("Bad monitor message: %s", e)
                    continue
                if msg_type == MSG_REQUEST_STATUS:
                    await self._send(ws, self.status_message())
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._monitors.discard(ws)
            logger.info("Monitor disconnected")

    def status_message(self) -> str:
        last: Optional[DiagnosticsSnapshot] = self.hub.last
        return make_envelope(MSG_DIAGNOSTICS, last.as_dict() if last else {})
