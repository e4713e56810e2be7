from typing import Optional
import logging
import os
import sys

_CONFIGURED = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _QuietThirdParty(logging.Filter):
    """Keep our own logs; let third-party loggers through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "todo" or record.name.startswith("todo."):
            return True
        return record.levelno >= logging.WARNING


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single stderr handler on the root logger (idempotent).

    Level: explicit argument, else TODO_LOG_LEVEL, else INFO.
    Logs go to stderr so CLI output on stdout stays clean.
    """
    global _CONFIGURED

    level_name = (level or os.getenv("TODO_LOG_LEVEL") or "INFO").upper()
    resolved_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not _CONFIGURED:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(_QuietThirdParty())
        root.addHandler(handler)
        for name in ("filelock", "uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
            logging.getLogger(name).setLevel(logging.WARNING)
        _CONFIGURED = True

    root.setLevel(resolved_level)
