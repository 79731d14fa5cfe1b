"""
Structured logging configuration.

- Development: colored one-line format with a bracketed portal context
- Production: JSON format (log aggregator compatible)
- LOG_LEVEL picks the level, LOG_FORMAT=json|readable overrides the format

Services attach portal context through ``extra``:

    logger.info("Project %s → %s", pid, status, extra={"project_id": pid})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Set by middleware.timing for every request
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id", "user_id")

# Set by the services; (record attribute, short label for the readable format)
CONTEXT_FIELDS = (
    ("project_id", "project"),
    ("template_id", "template"),
    ("feature", "feature"),
)


def record_context(record: logging.LogRecord) -> dict:
    """Portal context carried by a record, skipping fields that were not set."""
    context = {}
    for key, _label in CONTEXT_FIELDS:
        val = getattr(record, key, None)
        if val is not None:
            context[key] = val
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record; request and portal extras are top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        for key in REQUEST_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        log_entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored development format: ``12:00:01 INFO  logger: msg [project=3 feature=chat]``."""

    COLORS = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[35m",   # magenta
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        color, reset = (self.COLORS.get(record.levelname, ""), self.RESET) if self.color else ("", "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname:<8}{reset} {record.name}: {record.getMessage()}"

        context = record_context(record)
        if context:
            labels = dict(CONTEXT_FIELDS)
            line += " [" + " ".join(f"{labels[k]}={v}" for k, v in context.items()) + "]"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install a single root stream handler for the app.

    Production (neither DEBUG nor TESTING) defaults to JSON at INFO,
    everything else to the readable format at DEBUG.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    fmt = os.getenv("LOG_FORMAT", "json" if is_prod else "readable").lower()
    formatter = JSONFormatter() if fmt == "json" else ReadableFormatter(color=sys.stderr.isatty())

    # clearing avoids duplicate handlers across test apps
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
