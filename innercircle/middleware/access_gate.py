from __future__ import annotations

import enum
import ipaddress
import logging
from typing import Callable, Iterable

from flask import Response, g, request

from ..metrics import GATE_DECISIONS
from ..services.suspicious import SuspiciousRequestLog, is_suspicious_path
from ..utils.request import _get_request_ip, _normalize_ip

logger = logging.getLogger("innercircle.gate")

AccessRule = Callable[[str, "str | None"], bool]


class Decision(enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


def ip_to_int(value: str | None) -> int | None:
    try:
        return int(ipaddress.IPv4Address((value or "").strip()))
    except ValueError:
        return None


class IpAllowlist:
    """Allow exact IPs plus inclusive IPv4 ranges compared as 32-bit integers."""

    def __init__(self, exact_ips: Iterable[str] = (), ranges: Iterable[tuple[str, str]] = ()):
        self.exact: set[str] = set()
        for raw in exact_ips:
            ip = _normalize_ip(raw)
            if ip:
                self.exact.add(ip)
            else:
                logger.warning("Invalid whitelist entry: %s", raw)

        self.ranges: list[tuple[int, int]] = []
        for start_raw, end_raw in ranges:
            start, end = ip_to_int(start_raw), ip_to_int(end_raw)
            if start is None or end is None or start > end:
                logger.warning("Invalid IP range: %s-%s", start_raw, end_raw)
                continue
            self.ranges.append((start, end))

    def __call__(self, path: str, ip: str | None) -> bool:
        if not ip:
            return False
        if ip in self.exact:
            return True
        value = ip_to_int(ip)
        if value is None:
            return False
        return any(start <= value <= end for start, end in self.ranges)


def _request_url() -> str:
    query = request.query_string.decode("latin-1")
    return f"{request.path}?{query}" if query else request.path


class AccessGate:
    """Perimeter check run before every request.

    Public prefixes skip the caller check entirely; share links live under
    them. Everything else needs at least one rule to allow the caller.
    """

    def __init__(
        self,
        public_prefixes: Iterable[str],
        rules: Iterable[AccessRule],
        suspicious_log: SuspiciousRequestLog | None = None,
    ):
        self.public_prefixes = tuple(public_prefixes)
        self.rules = list(rules)
        self.suspicious_log = suspicious_log

    def is_public(self, url: str) -> bool:
        return url.startswith(self.public_prefixes)

    def decide(self, url: str, ip: str | None) -> Decision:
        if self.is_public(url):
            return Decision.ALLOW
        if any(rule(url, ip) for rule in self.rules):
            return Decision.ALLOW
        return Decision.DENY

    def check_request(self):
        url = _request_url()
        ip = _get_request_ip()
        g.client_ip = ip

        if self.suspicious_log is not None and is_suspicious_path(url):
            self.suspicious_log.record(ip, url)

        decision = self.decide(url, ip)
        if GATE_DECISIONS is not None:
            GATE_DECISIONS.labels(decision.value).inc()
        if decision is Decision.DENY:
            logger.warning(
                "Blocked %s %s from %s",
                request.method,
                url,
                ip or "unknown",
                extra={"decision": decision.value},
            )
            return Response("DENIED", status=403, content_type="text/plain")
        return None

    def init_app(self, app) -> None:
        app.extensions["access_gate"] = self
        app.before_request(self.check_request)
