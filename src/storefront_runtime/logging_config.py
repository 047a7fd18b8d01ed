"""Centralized logging configuration for the pipeline processes."""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict

from rich.logging import RichHandler


def _file_handler(cfg: Dict[str, Any], level: int) -> logging.Handler:
    log_path = Path(cfg["file"])
    log_path.parent.mkdir(parents=True, exist_ok=True)
    h = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=int(cfg.get("max_bytes", 10 * 1024 * 1024)),
        backupCount=int(cfg.get("backup_count", 3)),
        encoding="utf-8",
    )
    h.setLevel(level)
    h.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return h


def _console_handler(level: int) -> logging.Handler:
    h = RichHandler(rich_tracebacks=True, show_path=False)
    h.setLevel(level)
    h.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    return h


def setup_logging(settings: Dict[str, Any]) -> None:
    """Configure the root logger from settings["logging"].

    Console output goes through rich; a rotating file handler is added when
    logging.file is set.
    """
    cfg = settings.get("logging", {})
    level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    if cfg.get("log_to_console", True):
        root.addHandler(_console_handler(level))
    if cfg.get("file"):
        root.addHandler(_file_handler(cfg, level))
