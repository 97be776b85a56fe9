"""
Logging setup for the tracker.

Two output styles share one root handler:

    json      one object per line, for log shipping (production default)
    readable  coloured single lines with request id and user (dev default)

``LOG_LEVEL`` and ``LOG_FORMAT`` (env or app config) override the defaults.
Request fields passed through ``extra=`` by the timing middleware end up in
both styles.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_FIELDS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "user_id",
    "user_role",
)

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic.runtime.migration")


def _request_fields(record):
    return {k: getattr(record, k) for k in REQUEST_FIELDS if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    def __init__(self, service="intern_tracker"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(_request_fields(record))
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    LEVEL_COLOURS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        fields = _request_fields(record)

        prefix = f"{colour}{stamp} {record.levelname[:4]}{self.RESET}"
        ctx = ""
        if "request_id" in fields:
            ctx = f" [{fields['request_id']}"
            if "user_id" in fields:
                ctx += f" u{fields['user_id']}"
            ctx += "]"
        line = f"{prefix}{ctx} {record.name}: {record.getMessage()}"
        if "duration_ms" in fields:
            line += f" ({fields['duration_ms']:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the root handler for *app*.

    Level:  LOG_LEVEL, else INFO in production and DEBUG otherwise.
    Format: LOG_FORMAT ("json" | "readable"), else json in production.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL")
                  or ("INFO" if production else "DEBUG")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    style = (app.config.get("LOG_FORMAT") or os.getenv("LOG_FORMAT")
             or ("json" if production else "readable")).lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if style == "json" else ReadableFormatter())

    root = logging.getLogger()
    # create_app runs once per test session as well; never stack handlers
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready: level=%s style=%s", level_name, style)
