"""LiveEdge mpv controller via JSON IPC socket."""
from __future__ import annotations
import asyncio
import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Any, Callable

logger = logging.getLogger("liveedge.player.mpv")

_REQUEST_ID = 0

# Properties mirrored into the local cache via observe_property
OBSERVED_PROPERTIES = (
    "time-pos",
    "pause",
    "paused-for-cache",
    "idle-active",
    "seeking",
    "duration",
    "demuxer-cache-state",
    "metadata",
    "path",
)


def _next_id() -> int:
    global _REQUEST_ID
    _REQUEST_ID += 1
    return _REQUEST_ID


class MpvController:
    """
    Controls mpv via JSON IPC socket.
    Runs mpv as a subprocess and keeps a cache of observed properties so
    readers never have to wait on the socket.
    """

    def __init__(self, mpv_path: str = "mpv", extra_args: Optional[list[str]] = None):
        self.mpv_path = mpv_path
        self.extra_args = list(extra_args or [])
        self._proc: Optional[subprocess.Popen] = None
        self._socket_path = str(Path(tempfile.gettempdir()) / f"liveedge_mpv_{os.getpid()}.sock")
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._pending: dict[int, asyncio.Future] = {}
        self._background: set[asyncio.Task] = set()
        self._running = False
        self._connected = False
        self._read_task: Optional[asyncio.Task] = None
        self.properties: dict[str, Any] = {}
        self._event_handlers: dict[str, list[Callable[[dict], None]]] = {}

    def on(self, event: str, handler: Callable[[dict], None]) -> None:
        """Register a handler for an mpv event name (e.g. "file-loaded")."""
        self._event_handlers.setdefault(event, []).append(handler)

    async def start(self) -> bool:
        """Start mpv subprocess."""
        if os.path.exists(self._socket_path):
            os.unlink(self._socket_path)

        cmd = [
            self.mpv_path,
            "--idle=yes",
            "--no-terminal",
            f"--input-ipc-server={self._socket_path}",
            "--keep-open=yes",
            "--cache=yes",
            *self.extra_args,
        ]
        try:
            self._proc = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            logger.info("mpv started (pid=%d)", self._proc.pid)
        except FileNotFoundError:
            logger.error("mpv not found at '%s'; install mpv to use playback", self.mpv_path)
            return False

        for _ in range(50):
            await asyncio.sleep(0.1)
            if os.path.exists(self._socket_path):
                break
        else:
            logger.error("mpv IPC socket did not appear")
            return False

        await self._connect_socket()
        if self._connected:
            for i, name in enumerate(OBSERVED_PROPERTIES, start=1):
                await self._command("observe_property", i, name)
        return self._connected

    async def _connect_socket(self) -> None:
        try:
            self._reader, self._writer = await asyncio.open_unix_connection(self._socket_path)
            self._connected = True
            self._running = True
            self._read_task = asyncio.create_task(self._read_loop())
            logger.info("Connected to mpv IPC socket")
        except Exception as e:
            logger.error("Failed to connect to mpv socket: %s", e)
            self._connected = False

    async def _read_loop(self) -> None:
        """Read responses and events from mpv."""
        while self._running and self._reader:
            try:
                line = await self._reader.readline()
                if not line:
                    break
                self.handle_line(line.decode().strip())
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.debug("mpv read error: %s", e)
                break
        self._connected = False

    def handle_line(self, raw: str) -> None:
        if not raw:
            return
        data = json.loads(raw)
        if "event" in data:
            self._handle_event(data)
        elif "request_id" in data:
            fut = self._pending.pop(data["request_id"], None)
            if fut and not fut.done():
                fut.set_result(data)

    def _handle_event(self, data: dict) -> None:
        event = data.get("event")
        if event == "property-change":
            self.properties[data.get("name")] = data.get("data")
        for handler in self._event_handlers.get(event, []):
            try:
                handler(data)
            except Exception:
                logger.exception("mpv event handler for %s failed", event)

    async def _command(self, *args: Any) -> Optional[dict]:
        """Send a command to mpv and wait for response."""
        if not self._connected or not self._writer:
            return None
        req_id = _next_id()
        cmd = json.dumps({"command": list(args), "request_id": req_id}) + "\n"
        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()
        self._pending[req_id] = fut
        try:
            self._writer.write(cmd.encode())
            await self._writer.drain()
            return await asyncio.wait_for(fut, timeout=3.0)
        except asyncio.TimeoutError:
            self._pending.pop(req_id, None)
            logger.warning("mpv command timed out: %s", args[0] if args else "")
            return None
        except Exception as e:
            self._pending.pop(req_id, None)
            logger.error("mpv command error: %s", e)
            return None

    def post(self, *args: Any, on_failure: Optional[Callable[[], None]] = None) -> bool:
        """
        Queue a command without waiting for the reply. False if not connected.
        on_failure runs if mpv later rejects the command or never answers.
        """
        if not self._connected:
            return False
        task = asyncio.get_running_loop().create_task(self._command_checked(args, on_failure))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    async def _command_checked(self, args: tuple, on_failure: Optional[Callable[[], None]]) -> None:
        result = await self._command(*args)
        if result is not None and result.get("error") == "success":
            return
        if result is not None:
            logger.warning("mpv rejected %s: %s", args[0], result.get("error"))
        if on_failure is not None:
            on_failure()

    async def load_file(self, url: str) -> bool:
        result = await self._command("loadfile", url, "replace")
        return result is not None

    async def stop_subprocess(self) -> None:
        """Terminate mpv."""
        self._running = False
        self._connected = False
        if self._read_task:
            self._read_task.cancel()
        for task in list(self._background):
            task.cancel()
        if self._writer:
            try:
                self._writer.close()
            except OSError as e:
                logger.debug("Closing mpv socket: %s", e)
        if self._proc:
            self._proc.terminate()
            try:
                self._proc.wait(timeout=3)
            except subprocess.TimeoutExpired:
                self._proc.kill()
        if os.path.exists(self._socket_path):
            os.unlink(self._socket_path)
        logger.info("mpv stopped")

    async def wait_closed(self) -> None:
        """Return once mpv closes the IPC connection (e.g. its window was closed)."""
        if self._read_task:
            await asyncio.shield(self._read_task)
