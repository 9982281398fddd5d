"""LiveEdge player entry point."""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from catchup.config import AppConfig, load_config
from catchup.controller import CatchupController
from catchup.diagnostics import DiagnosticsHub, JsonlSink, LoggingSink
from catchup.interaction import InteractionGuard
from catchup.logging_utils import setup_rotating_logger
from catchup.session import SessionNotifier
from player.diagnostics_server import DiagnosticsServer
from player.mpv_controller import MpvController
from player.mpv_source import MpvSignalSource

logger = logging.getLogger("liveedge.player")


@dataclass
class Runtime:
    mpv: MpvController
    controller: CatchupController
    source: MpvSignalSource
    server: Optional[DiagnosticsServer] = None


def _run_asyncio_loop(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


def build_hub(config: AppConfig) -> DiagnosticsHub:
    hub = DiagnosticsHub()
    hub.subscribe(LoggingSink())
    if config.diagnostics.jsonl:
        hub.subscribe(JsonlSink(Path(config.diagnostics.log_dir)))
    return hub


async def start_runtime(config: AppConfig, url: str, hub: DiagnosticsHub) -> Optional[Runtime]:
    mpv = MpvController(config.player.mpv_path, config.player.extra_args)
    if not await mpv.start():
        return None
    notifier = SessionNotifier()
    guard = InteractionGuard(config.catchup.scrub_grace_ms)
    controller = CatchupController(config.catchup, diagnostics=hub, guard=guard)
    controller.bind(notifier)
    source = MpvSignalSource(mpv, notifier, guard, config.classifier, config.player)
    runtime = Runtime(mpv=mpv, controller=controller, source=source)
    if config.diagnostics.websocket_port:
        runtime.server = DiagnosticsServer(hub, config.diagnostics.websocket_port)
        await runtime.server.start()
    if not await mpv.load_file(url):
        logger.error("mpv did not accept %s", url)
    return runtime


async def stop_runtime(runtime: Runtime) -> None:
    runtime.controller.unbind()
    runtime.controller.detach()
    if runtime.server:
        await runtime.server.stop()
    await runtime.mpv.stop_subprocess()


async def run_headless(config: AppConfig, url: str) -> int:
    runtime = await start_runtime(config, url, build_hub(config))
    if runtime is None:
        return 1
    try:
        await runtime.mpv.wait_closed()
    finally:
        await stop_runtime(runtime)
    return 0


def run_gui(config: AppConfig, url: str) -> int:
    from PySide6.QtWidgets import QApplication
    from player.ui.main_window import PlayerMainWindow

    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=_run_asyncio_loop, args=(loop,), daemon=True)
    thread.start()

    app = QApplication(sys.argv)
    app.setApplicationName("LiveEdge")
    app.setOrganizationName("LiveEdge")

    hub = build_hub(config)
    window = PlayerMainWindow(hub, url, config.diagnostics.overlay_hotkey)
    runtime = asyncio.run_coroutine_threadsafe(start_runtime(config, url, hub), loop).result()
    if runtime is None:
        loop.call_soon_threadsafe(loop.stop)
        return 1
    window.show()

    exit_code = app.exec()

    asyncio.run_coroutine_threadsafe(stop_runtime(runtime), loop).result(timeout=10)
    loop.call_soon_threadsafe(loop.stop)
    return exit_code


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="liveedge", description="Play a live stream and keep it near the live edge.")
    parser.add_argument("url", help="live stream URL or path understood by mpv")
    parser.add_argument("-c", "--config", type=Path, default=Path("liveedge.toml"),
                        help="TOML config file (default: ./liveedge.toml if present)")
    parser.add_argument("--overlay", action="store_true", help="show the diagnostics window")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    config = load_config(args.config)
    errors = config.validate()
    if errors:
        for err in errors:
            print(f"config error: {err}", file=sys.stderr)
        sys.exit(2)

    setup_rotating_logger("liveedge", Path(config.diagnostics.log_dir))
    logger.info("LiveEdge starting: %s", args.url)

    if args.overlay or config.diagnostics.overlay:
        sys.exit(run_gui(config, args.url))
    sys.exit(asyncio.run(run_headless(config, args.url)))


if __name__ == "__main__":
    main()
