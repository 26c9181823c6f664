"""
Structured logging configuration.

- Production: one JSON object per line
- Development / testing: short colored lines
- ``LOG_FORMAT`` ("json" | "readable") overrides the environment default
- ``LOG_LEVEL`` sets the level

A ``RequestContextFilter`` stamps every record emitted inside a request with
the request id and the resolved user, so service-layer logs carry them too.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_app_context, has_request_context

# Attributes copied from ``logger.*(..., extra={...})`` into JSON output
_EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "role",
    "method",
    "path",
    "status",
    "duration_ms",
    "strategy_id",
    "purpose",
    "phase",
    "error_code",
)

_QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "anthropic", "werkzeug", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Fill request_id / user_id / role from ``flask.g`` when not given explicitly."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context() and has_app_context():
            for key in ("request_id", "user_id", "role"):
                if getattr(record, key, None) is None:
                    setattr(record, key, getattr(g, key, None))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored one-liners for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = []
        rid = getattr(record, "request_id", None)
        if rid:
            tags.append(rid)
        user = getattr(record, "user_id", None)
        if user:
            tags.append(f"user={user}")
        strategy = getattr(record, "strategy_id", None)
        if strategy:
            tags.append(f"strategy={strategy}")
        tag_str = f" [{' '.join(tags)}]" if tags else ""
        line = f"{color}{ts} {record.levelname:<7}{self.RESET} {record.name}{tag_str} {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    Level: LOG_LEVEL (INFO in production, DEBUG otherwise).
    Format: LOG_FORMAT, else JSON in production and readable otherwise.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (app.config.get("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = (app.config.get("LOG_FORMAT") or ("json" if is_prod else "readable")).lower()
    formatter = JSONFormatter() if fmt == "json" else ReadableFormatter()

    root = logging.getLogger()
    # create_app may run several times in one process (tests)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
