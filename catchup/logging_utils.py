"""LiveEdge logging utilities."""
from __future__ import annotations
import logging
import logging.handlers
import json
import time
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_rotating_logger(name: str, log_dir: Path, level: int = logging.DEBUG,
                          console_level: int = logging.INFO) -> logging.Logger:
    """Set up a rotating file logger + console output."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{name}.log"

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        # 5MB x 5 files
        fh = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        fh.setLevel(level)
        fmt = logging.Formatter(LOG_FORMAT)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(console_level)
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    return logger


def jsonl_path(log_dir: Path) -> Path:
    return log_dir / f"liveedge-{time.strftime('%Y-%m-%d')}.jsonl"


def log_jsonl(log_dir: Path, record: dict) -> None:
    """Append a JSONL record to the daily diagnostics file."""
    log_dir.mkdir(parents=True, exist_ok=True)
    with open(jsonl_path(log_dir), "a", encoding="utf-8") as f:
        f.write(json.dumps(record) + "\n")
