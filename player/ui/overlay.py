"""LiveEdge diagnostics overlay."""
from __future__ import annotations
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import QWidget, QVBoxLayout, QLabel

from catchup.diagnostics import DiagnosticsSnapshot


def _sec(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.2f}s"


class DiagnosticsOverlay(QWidget):
    """
    Semi-transparent always-on-top panel showing the controller's view of
    the stream. Toggle visibility with a hotkey.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowFlags(Qt.Window | Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint)
        self.setAttribute(Qt.WA_TranslucentBackground)
        self.setStyleSheet("background: rgba(0,0,0,180);")
        self._setup_ui()
        self._visible = False
        self.hide()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 20, 20, 20)
        font = QFont("Monospace", 12)

        self.lbl_reason = QLabel("Decision: -")
        self.lbl_reason.setFont(QFont("Monospace", 16))
        self.lbl_reason.setStyleSheet("color: #4CAF50;")
        layout.addWidget(self.lbl_reason)

        self.lbl_player = QLabel("")
        self.lbl_positions = QLabel("")
        self.lbl_learned = QLabel("")
        self.lbl_seek = QLabel("")
        for lbl in (self.lbl_player, self.lbl_positions, self.lbl_learned, self.lbl_seek):
            lbl.setFont(font)
            lbl.setStyleSheet("color: white;")
            layout.addWidget(lbl)

    def update_snapshot(self, snap: DiagnosticsSnapshot) -> None:
        self.lbl_reason.setText(f"Decision: {snap.reason}")
        self.lbl_player.setText(
            f"Live badge: {'yes' if snap.indicator else 'no'}  "
            f"ready: {snap.ready_state}  paused: {'yes' if snap.paused else 'no'}"
        )
        self.lbl_positions.setText(
            f"Pos {_sec(snap.current)}  Edge {_sec(snap.edge)}  "
            f"Buffered {_sec(snap.buffered_end)}  Lag {_sec(snap.lag)}"
        )
        self.lbl_learned.setText(
            f"Tolerance {snap.tolerance:.2f}s  gapEMA {snap.gap_ema:.2f}s  Offset {_sec(snap.offset)}"
        )
        since = "never" if snap.since_last_seek_ms is None else f"{snap.since_last_seek_ms / 1000.0:.1f}s ago"
        self.lbl_seek.setText(f"Target {_sec(snap.target)}  Last seek {since}")

    def toggle(self) -> None:
        if self._visible:
            self.hide()
            self._visible = False
        else:
            self.show()
            self._visible = True
