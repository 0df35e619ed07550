"""
Structured logging configuration.

- Production: one JSON object per line on stderr
- Development / testing: short colored lines
- LOG_LEVEL picks the level, LOG_FORMAT ("json" | "text") overrides the format

Every record emitted while a request is active is stamped with the request
id, the acting user and the node id (when the request names one), so service
logs such as "Node created ..." can be joined with the access line written
by ``middleware.timing``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes copied into JSON output when set
EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
    "user_id",
    "node_id",
    "bytes_in",
)


class RequestContextFilter(logging.Filter):
    """Fill request_id / user_id / node_id from the active request, if any.

    Values passed explicitly through ``extra=`` win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        if getattr(record, "user_id", None) is None:
            record.user_id = getattr(g, "jwt_user_id", None) or request.args.get("userId")
        if getattr(record, "node_id", None) is None:
            view_args = request.view_args or {}
            record.node_id = request.args.get("nodeId") or view_args.get("file_id")
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        entry.update(
            (key, getattr(record, key)) for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tail = []
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            tail.append(f"[{duration:.0f}ms]")
        for key in ("request_id", "user_id", "node_id"):
            value = getattr(record, key, None)
            if value:
                tail.append(f"{key.split('_')[0]}={value}")
        color = self.COLORS.get(record.levelname, "")
        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        if tail:
            line += " " + " ".join(tail)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _pick_formatter(is_prod):
    fmt = os.getenv("LOG_FORMAT", "json" if is_prod else "text").lower()
    return JSONFormatter() if fmt == "json" else ReadableFormatter()


def configure_logging(app):
    """
    Install the root handler for the Flask app.

    Level defaults to INFO in production and DEBUG elsewhere. The handler list
    is replaced, not appended to, so building several apps in one process
    (the test suite) does not duplicate output.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_pick_formatter(is_prod))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s formatter=%s",
                        level_name, type(handler.formatter).__name__)
