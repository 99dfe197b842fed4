"""Shared helpers."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE_NAME = "support_chat.log"


def setup_logging(log_dir: str, level: int = logging.INFO) -> None:
    """Configure console and file logging under ``log_dir``.

    Safe to call more than once; handlers are only attached the first time a
    given log file is configured.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.abspath(os.path.join(log_dir, LOG_FILE_NAME))

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    has_file = any(
        isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == log_path for h in root.handlers
    )
    if not has_file:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    has_console = any(type(h) is logging.StreamHandler for h in root.handlers)
    if not has_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    logging.getLogger(__name__).debug("Logging configured at %s", log_path)
