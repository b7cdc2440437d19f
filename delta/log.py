"""Logging set-up shared by the engine, the capture pipeline and the server.

Modules log through ``logging.getLogger(__name__)``.  :func:`configure_logging`
installs the handlers once, at start-up:

* a stream handler,
* an optional file handler (``logging.file`` in the config),
* an in-memory history handler whose text :func:`read_all` returns and
  whose listeners are called with every formatted record (the monitoring
  server and any settings UI use this to show a live log).
"""

from __future__ import annotations

import io
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

LOG_FORMAT = "[%(asctime)s %(levelname)s] [VAS] %(message)s"
DATE_FORMAT = "%H:%M:%S"


class LogHistoryHandler(logging.Handler):
    """Keep every formatted record in memory and notify listeners."""

    def __init__(self) -> None:
        super().__init__()
        self._buffer = io.StringIO()
        self._buffer_lock = threading.Lock()
        self.listeners: List[Callable[[str], None]] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record) + "\n"
        except Exception:
            self.handleError(record)
            return
        with self._buffer_lock:
            self._buffer.write(text)
        for listener in list(self.listeners):
            try:
                listener(text)
            except Exception:
                self.handleError(record)

    def read_all(self) -> str:
        with self._buffer_lock:
            return self._buffer.getvalue()


_history_handler: Optional[LogHistoryHandler] = None


def configure_logging(config: Optional[Dict[str, Any]] = None) -> LogHistoryHandler:
    """Configure the root logger from the ``logging`` config section.

    Calling it again replaces the handlers installed by the previous call.
    """
    global _history_handler
    log_cfg = (config or {}).get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_file = log_cfg.get("file")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    _history_handler = LogHistoryHandler()
    handlers.append(_history_handler)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    return _history_handler


def read_all() -> str:
    """Return everything logged since :func:`configure_logging`."""
    if _history_handler is None:
        return ""
    return _history_handler.read_all()
