"""Logging setup with context injection.

Features:
- console handler
- JSON logs optional (easy ingestion)
- context injection (request_id/user_id/provider/stage) through a LoggerAdapter
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from typing import Any

CONTEXT_FIELDS = ("request_id", "user_id", "provider", "stage")

# ---------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": time.time(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in CONTEXT_FIELDS:
            if hasattr(record, k):
                base[k] = getattr(record, k)

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            base["payload"] = payload

        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Format log records as human-readable text."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [self.formatTime(record), record.levelname, record.name]

        ctx = [
            f"{k}={getattr(record, k)}"
            for k in CONTEXT_FIELDS
            if getattr(record, k, None)
        ]
        if ctx:
            parts.append("[" + " ".join(ctx) + "]")

        parts.append(record.getMessage())
        s = " ".join(parts)

        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)

        return s


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingOptions:
    """Configure logging behavior."""

    level: str = "INFO"
    json_logs: bool = False


_HANDLER_MARKER = "_eventradar_handler"


def setup_logging(options: LoggingOptions | None = None) -> logging.Logger:
    """
    Configure the root logger with a single stdout handler.

    Calling it again replaces the handler it installed earlier instead of
    stacking a second one.
    """
    options = options or LoggingOptions()
    root = logging.getLogger()
    root.setLevel(getattr(logging, options.level.upper(), logging.INFO))

    for h in list(root.handlers):
        if getattr(h, _HANDLER_MARKER, False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(root.level)
    handler.setFormatter(JsonFormatter() if options.json_logs else TextFormatter())
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)

    # geopy and httpx are chatty at INFO
    for noisy in ("httpx", "httpcore", "geopy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root


# ---------------------------------------------------------------------
# Context injection
# ---------------------------------------------------------------------


class ContextAdapter(logging.LoggerAdapter):
    """Inject context fields into log records."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        merged = dict(self.extra)
        merged.update(extra)
        kwargs["extra"] = merged
        return msg, kwargs


def with_context(
    logger: logging.Logger,
    *,
    request_id: str | None = None,
    user_id: str | None = None,
    provider: str | None = None,
    stage: str | None = None,
) -> ContextAdapter:
    """Create a context adapter carrying request, user, provider and stage info."""
    extra: dict[str, Any] = {}
    if request_id:
        extra["request_id"] = request_id
    if user_id:
        extra["user_id"] = user_id
    if provider:
        extra["provider"] = provider
    if stage:
        extra["stage"] = stage
    return ContextAdapter(logger, extra)
