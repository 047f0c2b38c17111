# utils/logging_setup.py
import json as _json
import logging
import logging.handlers
import os
from datetime import datetime as _dt, timezone as _tz
from pathlib import Path

ROOT_LOGGER = "shift_sync"
LOG_FILE_NAME = "shift_sync.log"


class _JsonFormatter(logging.Formatter):
    """One JSON object per line for the rotating file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _dt.fromtimestamp(record.created, tz=_tz.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return _json.dumps(entry, ensure_ascii=False)


def configure_logging(log_dir=None, level=None, console=True) -> logging.Logger:
    """
    Attach handlers to the package logger. Safe to call twice.
    - level: explicit, else SHIFT_SYNC_LOG_LEVEL, else INFO
    - log_dir: rotating JSON log file (10 MiB x 3); None = console only
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level_str = (level or os.environ.get("SHIFT_SYNC_LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, level_str, logging.INFO))

    for h in list(logger.handlers):
        if getattr(h, "_shift_sync", False):
            logger.removeHandler(h)
            h.close()

    if log_dir is not None:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            path / LOG_FILE_NAME, maxBytes=10 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        fh.setFormatter(_JsonFormatter())
        fh._shift_sync = True
        logger.addHandler(fh)

    if console:
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"))
        sh._shift_sync = True
        logger.addHandler(sh)
    return logger
