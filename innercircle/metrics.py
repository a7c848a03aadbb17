from __future__ import annotations

import os

from prometheus_client import Counter, Gauge, Histogram

from .config import parse_bool

METRICS_ENABLED = parse_bool(os.environ.get("INNERCIRCLE_METRICS_ENABLED", "true"))

if METRICS_ENABLED:
    REQUEST_LATENCY = Histogram(
        "innercircle_http_request_duration_seconds",
        "HTTP request latency",
        ["method", "endpoint"],
    )
    REQUEST_COUNT = Counter(
        "innercircle_http_requests_total",
        "Total HTTP requests",
        ["method", "endpoint", "status"],
    )
    REQUEST_ERRORS = Counter(
        "innercircle_http_request_errors_total",
        "HTTP error responses",
        ["method", "endpoint", "status"],
    )
    REQUEST_IN_FLIGHT = Gauge(
        "innercircle_http_requests_in_flight",
        "In-flight HTTP requests",
    )
    GATE_DECISIONS = Counter(
        "innercircle_gate_decisions_total",
        "Access gate decisions",
        ["decision"],
    )
    BYTES_STREAMED = Counter(
        "innercircle_download_bytes_total",
        "File bytes written to download responses",
        ["status"],
    )
    LINKS_CREATED = Counter(
        "innercircle_share_links_created_total",
        "Share links created",
        ["kind"],
    )
    SUSPICIOUS_FLUSHES = Counter(
        "innercircle_suspicious_log_flushes_total",
        "Suspicious request log flushes",
        ["status"],
    )
else:
    REQUEST_LATENCY = None
    REQUEST_COUNT = None
    REQUEST_ERRORS = None
    REQUEST_IN_FLIGHT = None
    GATE_DECISIONS = None
    BYTES_STREAMED = None
    LINKS_CREATED = None
    SUSPICIOUS_FLUSHES = None
