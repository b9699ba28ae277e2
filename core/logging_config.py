from __future__ import annotations

import json
import logging
import sys
from typing import Any

# Dashboard defaults; app.py passes these on every script run.
LOG_LEVEL = "INFO"
LOG_FORMAT = "text"
DASHBOARD_LOGGER = "core"

_HANDLER_NAME = "car-dashboard"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT) -> logging.Logger:
    """Route the ``core`` package loggers to a single stdout handler.

    Streamlit owns the root logger and re-executes app.py on every
    interaction, so only the dashboard's own logger is touched and its
    handler is swapped rather than stacked.
    """
    log = logging.getLogger(DASHBOARD_LOGGER)
    log.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in log.handlers[:]:
        if h.get_name() == _HANDLER_NAME:
            log.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s [%(name)s] %(message)s"))
    log.addHandler(handler)
    log.propagate = False
    return log
