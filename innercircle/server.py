"""
innercircle media server

Provides:
- File browsing under the configured base directory:
  - GET /api/files: paged directory listing with name search
  - GET /api/files/download?file=<path>: attachment download, honours Range
  - POST /api/create-folder, /api/upload, /api/delete-file
- Public share links (bearer links, exempt from the IP gate):
  - POST /api/create-public-link, /api/create-public-directory-link
  - GET /api/public-download/<id>: range-capable download of a shared file
  - GET /api/public-links/<id>: share link metadata
  - GET /api/media-gallery/<id>: files of a shared folder
- Operational endpoints behind the IP gate: /health, /version, /metrics

Every request passes the access gate first: public path prefixes are served to
anyone, everything else only to whitelisted IPs or configured ranges.
"""

from __future__ import annotations

import logging
import os
import secrets
import time

import sentry_sdk
from flask import Flask, g, has_request_context, request
from sentry_sdk.integrations.flask import FlaskIntegration

from .config import load_flask_config
from .errors import register_error_handlers
from .logging_config import REQUEST_ID_HEADER, REQUEST_ID_RE, configure_logging
from .metrics import (
    METRICS_ENABLED,
    REQUEST_COUNT,
    REQUEST_ERRORS,
    REQUEST_IN_FLIGHT,
    REQUEST_LATENCY,
)
from .middleware.access_gate import AccessGate, IpAllowlist
from .middleware.rate_limit import init_rate_limiter
from .routes.files import create_files_blueprint
from .routes.health import health_bp
from .routes.links import create_links_blueprint
from .routes.metrics import metrics_bp
from .services.container import ServiceContainer, get_services, init_services
from .tracing import configure_tracing
from .utils.config_validation import validate_config

logger = logging.getLogger("innercircle.server")
access_logger = logging.getLogger("innercircle.access")

SENTRY_DSN = (os.environ.get("INNERCIRCLE_SENTRY_DSN") or "").strip()
SENTRY_ENV = (
    os.environ.get("INNERCIRCLE_SENTRY_ENV") or os.environ.get("SENTRY_ENVIRONMENT") or "production"
).strip()
SENTRY_RELEASE = (os.environ.get("INNERCIRCLE_RELEASE") or "").strip() or None
try:
    SENTRY_TRACES_SAMPLE_RATE = float(os.environ.get("INNERCIRCLE_SENTRY_TRACES_SAMPLE_RATE", "0"))
except (TypeError, ValueError):
    SENTRY_TRACES_SAMPLE_RATE = 0.0

_sentry_initialized = False


def _sentry_before_send(event, _hint):
    if has_request_context():
        request_id = getattr(g, "request_id", None)
        if request_id:
            event.setdefault("tags", {})["request_id"] = request_id
    return event


def _init_sentry() -> None:
    global _sentry_initialized
    if not SENTRY_DSN or _sentry_initialized:
        return
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENV,
        release=SENTRY_RELEASE,
        integrations=[FlaskIntegration()],
        traces_sample_rate=max(0.0, SENTRY_TRACES_SAMPLE_RATE),
        send_default_pii=False,
        before_send=_sentry_before_send,
    )
    _sentry_initialized = True


def _generate_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    if candidate and REQUEST_ID_RE.fullmatch(candidate):
        return candidate
    return secrets.token_urlsafe(12)


def _record_request_metrics(response) -> None:
    if not METRICS_ENABLED or REQUEST_COUNT is None:
        return
    if getattr(g, "_metrics_done", False):
        return
    g._metrics_done = True
    if getattr(g, "_metrics_inflight", False):
        if REQUEST_IN_FLIGHT is not None:
            REQUEST_IN_FLIGHT.dec()
        g._metrics_inflight = False

    endpoint = request.endpoint or "unknown"
    method = request.method
    status = str(response.status_code)
    REQUEST_COUNT.labels(method, endpoint, status).inc()
    if REQUEST_LATENCY is not None and hasattr(g, "_request_started_at"):
        duration = time.perf_counter() - g._request_started_at
        REQUEST_LATENCY.labels(method, endpoint).observe(duration)
    if REQUEST_ERRORS is not None and response.status_code >= 400:
        REQUEST_ERRORS.labels(method, endpoint, status).inc()


def _init_request_context():
    g.request_id = _generate_request_id(request.headers.get(REQUEST_ID_HEADER))
    g._request_started_at = time.perf_counter()
    if METRICS_ENABLED and REQUEST_IN_FLIGHT is not None:
        REQUEST_IN_FLIGHT.inc()
        g._metrics_inflight = True


def _finalize_request(response):
    if hasattr(g, "request_id"):
        response.headers[REQUEST_ID_HEADER] = g.request_id
    _record_request_metrics(response)
    access_logger.info(
        "%s %s %s",
        request.method,
        request.full_path.rstrip("?"),
        response.status_code,
        extra={"status": response.status_code},
    )
    return response


def _teardown_request(_exc):
    if METRICS_ENABLED and getattr(g, "_metrics_inflight", False) and REQUEST_IN_FLIGHT is not None:
        REQUEST_IN_FLIGHT.dec()
        g._metrics_inflight = False


def create_app(overrides: dict | None = None, services: ServiceContainer | None = None) -> Flask:
    app = Flask(__name__)
    for key, value in load_flask_config().items():
        app.config.setdefault(key, value)
    if overrides:
        app.config.update(overrides)

    configure_logging(app)
    _init_sentry()
    configure_tracing(app)
    validate_config(app.config)
    register_error_handlers(app)
    init_rate_limiter(app)
    container = init_services(app, services)

    # Request ids must exist before the gate logs a rejection.
    app.before_request(_init_request_context)
    gate = AccessGate(
        app.config["PUBLIC_PATH_PREFIXES"],
        [IpAllowlist(app.config["IP_WHITELIST"], app.config["IP_RANGES"])],
        container.suspicious_log,
    )
    gate.init_app(app)
    app.after_request(_finalize_request)
    app.teardown_request(_teardown_request)

    deps = {"get_services": get_services}
    app.register_blueprint(health_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(create_files_blueprint(deps))
    app.register_blueprint(create_links_blueprint(deps))

    if app.config.get("SUSPICIOUS_FLUSH_ENABLED", True):
        container.suspicious_log.start()

    logger.info(
        "Serving %s; %d whitelisted IPs, %d ranges, public prefixes: %s",
        app.config["FILE_DIRECTORY"],
        len(gate.rules[0].exact),
        len(gate.rules[0].ranges),
        ", ".join(gate.public_prefixes),
    )
    return app
