"""LiveEdge player status window."""
from __future__ import annotations
import logging

from PySide6.QtCore import Qt, Signal, QObject
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import QMainWindow, QLabel, QStatusBar

from catchup.diagnostics import DiagnosticsHub, DiagnosticsSnapshot
from player.ui.overlay import DiagnosticsOverlay

logger = logging.getLogger("liveedge.player.ui")


class _SnapshotSignaler(QObject):
    snapshot_received = Signal(object)


class PlayerMainWindow(QMainWindow):
    """Small status window; owns the overlay and its hotkey."""

    def __init__(self, hub: DiagnosticsHub, url: str, overlay_hotkey: str = "Ctrl+Shift+D"):
        super().__init__()
        self.hub = hub
        self._signaler = _SnapshotSignaler()
        self.overlay = DiagnosticsOverlay()

        self.setWindowTitle("LiveEdge")
        self.resize(480, 160)

        self.status_label = QLabel(f"Waiting for {url}")
        self.status_label.setAlignment(Qt.AlignCenter)
        self.status_label.setStyleSheet("font-size: 18px; color: #4CAF50;")
        self.setCentralWidget(self.status_label)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage(f"{overlay_hotkey}: toggle diagnostics overlay")

        shortcut = QShortcut(QKeySequence(overlay_hotkey), self)
        shortcut.activated.connect(self.overlay.toggle)

        # Snapshots arrive on the asyncio thread; Qt queues them to the GUI thread
        self._signaler.snapshot_received.connect(self._on_snapshot)
        hub.subscribe(self._sink)

    def _sink(self, snap: DiagnosticsSnapshot) -> None:
        self._signaler.snapshot_received.emit(snap)

    def _on_snapshot(self, snap: DiagnosticsSnapshot) -> None:
        lag = "-" if snap.lag is None else f"{snap.lag:.2f}s"
        self.status_label.setText(f"{snap.reason}  (lag {lag})")
        self.overlay.update_snapshot(snap)

    def closeEvent(self, event) -> None:
        self.hub.unsubscribe(self._sink)
        self.overlay.close()
        super().closeEvent(event)
