"""
skillshelf.logs

Console + rotating file logging for the package, and a JSON-lines audit log of
every mutation applied to a skill directory.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOGGER_NAME = "skillshelf"

_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def configure_logging(
    log_file: Path, level: int = logging.INFO, console: bool = True
) -> logging.Logger:
    """
    function_purpose: Configure package-wide logging to console and a rotating file.

    - Creates the log directory if needed.
    - Safe to call more than once; handlers are only attached the first time.
    - Returns the configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if getattr(logger, "_skillshelf_configured", False):
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(_FORMAT)

    if console:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(formatter)
        logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each)
    fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    fh.setLevel(level)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger._skillshelf_configured = True  # type: ignore[attr-defined]
    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


def log_operation(ops_log: Path | None, op: str, payload: dict[str, Any]) -> None:
    """
    function_purpose: Append a single JSON line describing a mutation.

    Does nothing when ``ops_log`` is None. A failed write is logged and swallowed
    so auditing never breaks the mutation it describes.
    """
    if ops_log is None:
        return

    ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    record: dict[str, Any] = {"ts": ts, "op": op}
    record.update(payload)

    try:
        ops_log.parent.mkdir(parents=True, exist_ok=True)
        with open(ops_log, "a", encoding="utf-8") as f:
            _ = f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
    except OSError:
        logging.getLogger(LOGGER_NAME).warning(
            "Failed to write operation log entry", exc_info=True
        )


__all__: list[str] = ["LOGGER_NAME", "configure_logging", "log_operation"]
