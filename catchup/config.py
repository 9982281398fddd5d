"""LiveEdge configuration file (TOML) parsing and validation."""
from __future__ import annotations
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import re


@dataclass
class CatchupConfig:
    max_allowed_lag: float = 2.8
    min_safety_offset: float = 0.10
    max_safety_offset: float = 3.0
    playable_margin: float = 0.25
    seek_min_step: float = 0.30
    check_interval_ms: int = 1000
    post_seek_cooldown_ms: int = 15000
    buffering_grace_ms: int = 5000
    # paused + lag above max_allowed_lag + this counts as buffering
    buffering_lag_margin: float = 1.0
    tolerance_prior: float = 0.20
    # automatic seeks stay off this long after the user stops scrubbing
    scrub_grace_ms: int = 3000
    gap_alpha: float = 0.2
    fallback_offset: float = 1.0

    def validate(self) -> list[str]:
        errors = []
        if self.max_allowed_lag <= 0:
            errors.append("catchup.max_allowed_lag must be > 0")
        if self.min_safety_offset < 0:
            errors.append("catchup.min_safety_offset must be >= 0")
        if self.max_safety_offset < self.min_safety_offset:
            errors.append("catchup.max_safety_offset must be >= min_safety_offset")
        if self.playable_margin < 0:
            errors.append("catchup.playable_margin must be >= 0")
        if self.seek_min_step < 0:
            errors.append("catchup.seek_min_step must be >= 0")
        if self.check_interval_ms <= 0:
            errors.append("catchup.check_interval_ms must be > 0")
        if self.post_seek_cooldown_ms < 0 or self.buffering_grace_ms < 0 or self.scrub_grace_ms < 0:
            errors.append("catchup cooldown windows must be >= 0")
        if not (0.0 < self.gap_alpha <= 1.0):
            errors.append("catchup.gap_alpha must be in (0, 1]")
        if not (0.0 <= self.tolerance_prior <= self.max_safety_offset):
            errors.append("catchup.tolerance_prior must be within [0, max_safety_offset]")
        return errors


@dataclass
class ClassifierConfig:
    live_url_patterns: list[str] = field(
        default_factory=lambda: [r"/live/", r"[?&]live=(1|true)", r"\.m3u8(\?|$)"]
    )
    metadata_live_keys: list[str] = field(
        default_factory=lambda: ["is_live", "live", "live_status"]
    )

    def validate(self) -> list[str]:
        errors = []
        for pattern in self.live_url_patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(f"classifier.live_url_patterns: bad regex '{pattern}': {e}")
        return errors


@dataclass
class PlayerConfig:
    mpv_path: str = "mpv"
    extra_args: list[str] = field(default_factory=list)
    live_indicator_window: float = 1.0

    def validate(self) -> list[str]:
        errors = []
        if not self.mpv_path:
            errors.append("player.mpv_path is required")
        if self.live_indicator_window < 0:
            errors.append("player.live_indicator_window must be >= 0")
        return errors


@dataclass
class DiagnosticsConfig:
    log_dir: str = "logs"
    jsonl: bool = False
    websocket_port: int = 0  # 0 disables the publisher
    overlay: bool = False
    overlay_hotkey: str = "Ctrl+Shift+D"

    def validate(self) -> list[str]:
        errors = []
        if not (0 <= self.websocket_port <= 65535):
            errors.append("diagnostics.websocket_port must be 0-65535")
        return errors


@dataclass
class AppConfig:
    catchup: CatchupConfig = field(default_factory=CatchupConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)

    def validate(self) -> list[str]:
        errors = []
        errors.extend(self.catchup.validate())
        errors.extend(self.classifier.validate())
        errors.extend(self.player.validate())
        errors.extend(self.diagnostics.validate())
        return errors


def _parse_catchup(raw: dict) -> CatchupConfig:
    d = CatchupConfig()
    return CatchupConfig(
        max_allowed_lag=float(raw.get("max_allowed_lag", d.max_allowed_lag)),
        min_safety_offset=float(raw.get("min_safety_offset", d.min_safety_offset)),
        max_safety_offset=float(raw.get("max_safety_offset", d.max_safety_offset)),
        playable_margin=float(raw.get("playable_margin", d.playable_margin)),
        seek_min_step=float(raw.get("seek_min_step", d.seek_min_step)),
        check_interval_ms=int(raw.get("check_interval_ms", d.check_interval_ms)),
        post_seek_cooldown_ms=int(raw.get("post_seek_cooldown_ms", d.post_seek_cooldown_ms)),
        buffering_grace_ms=int(raw.get("buffering_grace_ms", d.buffering_grace_ms)),
        buffering_lag_margin=float(raw.get("buffering_lag_margin", d.buffering_lag_margin)),
        tolerance_prior=float(raw.get("tolerance_prior", d.tolerance_prior)),
        scrub_grace_ms=int(raw.get("scrub_grace_ms", d.scrub_grace_ms)),
        gap_alpha=float(raw.get("gap_alpha", d.gap_alpha)),
        fallback_offset=float(raw.get("fallback_offset", d.fallback_offset)),
    )


def _parse_classifier(raw: dict) -> ClassifierConfig:
    d = ClassifierConfig()
    return ClassifierConfig(
        live_url_patterns=list(raw.get("live_url_patterns", d.live_url_patterns)),
        metadata_live_keys=list(raw.get("metadata_live_keys", d.metadata_live_keys)),
    )


def _parse_player(raw: dict) -> PlayerConfig:
    return PlayerConfig(
        mpv_path=raw.get("mpv_path", "mpv"),
        extra_args=list(raw.get("extra_args", [])),
        live_indicator_window=float(raw.get("live_indicator_window", 1.0)),
    )


def _parse_diagnostics(raw: dict) -> DiagnosticsConfig:
    return DiagnosticsConfig(
        log_dir=raw.get("log_dir", "logs"),
        jsonl=raw.get("jsonl", False),
        websocket_port=raw.get("websocket_port", 0),
        overlay=raw.get("overlay", False),
        overlay_hotkey=raw.get("overlay_hotkey", "Ctrl+Shift+D"),
    )


def parse_config(data: dict) -> AppConfig:
    return AppConfig(
        catchup=_parse_catchup(data.get("catchup", {})),
        classifier=_parse_classifier(data.get("classifier", {})),
        player=_parse_player(data.get("player", {})),
        diagnostics=_parse_diagnostics(data.get("diagnostics", {})),
    )


def load_config(path: Optional[Path]) -> AppConfig:
    """Load a liveedge.toml file. A missing path yields the defaults."""
    if path is None or not path.exists():
        return AppConfig()
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return parse_config(data)
