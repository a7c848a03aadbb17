from __future__ import annotations

import json
import logging
import os
import re
from datetime import UTC, datetime

from flask import g, has_request_context, request

LOG_FORMAT = (os.environ.get("INNERCIRCLE_LOG_FORMAT", "json") or "json").strip().lower()
LOG_LEVEL = (os.environ.get("INNERCIRCLE_LOG_LEVEL", "INFO") or "INFO").strip().upper()
REQUEST_ID_HEADER = (
    os.environ.get("INNERCIRCLE_REQUEST_ID_HEADER", "X-Request-ID") or "X-Request-ID"
).strip()
REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,128}$")

# Filled from the request by RequestContextFilter.
CONTEXT_FIELDS = ("request_id", "client_ip", "method", "path")
# Passed by callers through ``extra=``: access log status, gate outcome,
# share link id and bytes sent by an aborted download.
EVENT_FIELDS = ("status", "decision", "link_id", "bytes_sent")


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context = dict.fromkeys(CONTEXT_FIELDS)
        if has_request_context():
            context.update(
                request_id=getattr(g, "request_id", None),
                client_ip=getattr(g, "client_ip", None) or request.remote_addr,
                method=request.method,
                path=request.path,
            )
        for key, value in context.items():
            setattr(record, key, value)
        return True


def _record_fields(record: logging.LogRecord) -> dict:
    fields = {}
    for key in CONTEXT_FIELDS + EVENT_FIELDS:
        value = getattr(record, key, None)
        if value is not None and value != "":
            fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_record_fields(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


class TextFormatter(logging.Formatter):
    """Classic one-line format with the request and event fields as ``key=value``."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _record_fields(record)
        if not fields:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{suffix}]{sep}{tail}"


def configure_logging(app) -> None:
    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    formatter = JsonFormatter() if LOG_FORMAT == "json" else TextFormatter()
    for handler in root.handlers:
        handler.setFormatter(formatter)
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(RequestContextFilter())
    root.setLevel(LOG_LEVEL)
    app.logger.handlers = root.handlers
    app.logger.setLevel(LOG_LEVEL)
    app.logger.propagate = False
